"""FastAPI dependencies."""
import logging
from functools import lru_cache

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from survey_backend.config import get_settings
from survey_backend.database import get_db
from survey_backend.models.employee import Employee
from survey_backend.services.schema_resolver import SchemaResolver
from survey_backend.services.scoring_service import ScoringService
from survey_backend.services.survey_response_service import SurveyResponseService
from survey_backend.services.survey_service import SurveyService
from survey_backend.utils.cache import ResponseCache, SimpleCache

logger = logging.getLogger(__name__)


@lru_cache()
def get_response_cache() -> ResponseCache:
    """Process-wide rollup cache, overridable in tests."""
    return SimpleCache(default_ttl=get_settings().category_scores_cache_ttl_seconds)


@lru_cache()
def get_schema_resolver() -> SchemaResolver:
    return SchemaResolver()


def get_survey_response_service(
    db: AsyncSession = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache),
    resolver: SchemaResolver = Depends(get_schema_resolver),
) -> SurveyResponseService:
    return SurveyResponseService(db, resolver=resolver, cache=cache, scoring=ScoringService())


def get_survey_service(
    db: AsyncSession = Depends(get_db),
    cache: ResponseCache = Depends(get_response_cache),
    resolver: SchemaResolver = Depends(get_schema_resolver),
) -> SurveyService:
    return SurveyService(db, resolver=resolver, cache=cache)


async def get_current_employee(
        x_employee_id: str | None = Header(default=None, alias="X-Employee-Id"),
        db: AsyncSession = Depends(get_db),
) -> Employee:
    """Resolve the caller forwarded by the authentication proxy."""
    if not x_employee_id:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        employee_id = int(x_employee_id)
    except ValueError:
        logger.warning(f"Malformed X-Employee-Id header: {x_employee_id[:20]!r}")
        raise HTTPException(status_code=401, detail="Not authenticated")

    employee = await db.get(Employee, employee_id)
    if employee is None:
        logger.warning(f"Unknown employee in X-Employee-Id header: {employee_id=}")
        raise HTTPException(status_code=401, detail="Not authenticated")

    return employee


async def require_admin(employee: Employee = Depends(get_current_employee)) -> Employee:
    if not employee.is_admin:
        logger.warning(f"Non-admin employee {employee.id} attempted an admin operation")
        raise HTTPException(status_code=403, detail="Administrator access required")
    return employee
