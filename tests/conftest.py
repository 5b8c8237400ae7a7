"""Pytest configuration and fixtures."""
import os

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Point the application at a throwaway SQLite database before anything imports it
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_survey.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["STORE_RETRY_BASE_DELAY_SECONDS"] = "0"
os.environ["STORE_RETRY_MAX_DELAY_SECONDS"] = "0"

from survey_backend.database import Base, enable_sqlite_savepoints
from survey_backend.models import Employee, GrowthQuestion, Job, Problem, Survey
from survey_backend.models.base import EmployeeRole, QuestionType, SurveyType
from survey_backend.services.schema_resolver import SchemaResolver
from survey_backend.services.scoring_service import ScoringService
from survey_backend.services.survey_response_service import SurveyResponseService
from survey_backend.utils.cache import SimpleCache

DEFAULT_OPTION_SCORES = [10, 20, 30, 40, 50, 60]


@pytest.fixture
async def test_engine(tmp_path):
    """Fresh SQLite database per test, built from the model metadata."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'survey_test.db'}", echo=False)
    enable_sqlite_savepoints(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()
        await session.close()


@pytest.fixture
def resolver():
    return SchemaResolver()


@pytest.fixture
def cache():
    return SimpleCache(default_ttl=60)


@pytest.fixture
def scoring():
    return ScoringService()


@pytest.fixture
def response_service(db_session, resolver, cache, scoring):
    return SurveyResponseService(db_session, resolver=resolver, cache=cache, scoring=scoring)


@pytest.fixture
async def test_app(session_factory, resolver, cache):
    """Create test app with database, cache and resolver overrides."""
    from survey_backend.main import app
    from survey_backend.database import get_db
    from survey_backend.dependencies import get_response_cache, get_schema_resolver

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_response_cache] = lambda: cache
    app.dependency_overrides[get_schema_resolver] = lambda: resolver
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def seed(session_factory):
    """Factories that insert and commit rows through a short-lived session of their own."""

    class Seeder:
        async def _add(self, obj):
            async with session_factory() as session:
                session.add(obj)
                await session.commit()
            return obj

        async def survey(self, survey_type: SurveyType = SurveyType.ORGANIZATIONAL, running: bool = True, name: str = "Survey"):
            return await self._add(Survey(name=name, survey_type=survey_type.value, running=running, status="active"))

        async def job(self, name: str):
            return await self._add(Job(name=name))

        async def employee(self, name: str = "Employee", job: Job | None = None, admin: bool = False):
            count = getattr(self, "_employee_count", 0) + 1
            self._employee_count = count
            return await self._add(
                Employee(
                    name=name,
                    email=f"employee{count}@example.com",
                    role=EmployeeRole.ADMIN.value if admin else EmployeeRole.EMPLOYEE.value,
                    job_id=job.id if job else None,
                )
            )

        async def problem(self, category_id: int | None = 1, scores=None, free_text: bool = False, display_order=None):
            values = {}
            if not free_text:
                for index, score in enumerate(scores or DEFAULT_OPTION_SCORES, start=1):
                    values[f"answer{index}_score"] = score
            return await self._add(
                Problem(
                    title="Problem",
                    content="Problem content",
                    category_id=None if free_text else category_id,
                    question_type=QuestionType.FREE_TEXT.value if free_text else QuestionType.SINGLE_CHOICE.value,
                    display_order=display_order,
                    **values,
                )
            )

        async def growth_question(
            self,
            category: str | None = "Leadership",
            weight: float | None = 2.0,
            scores=(0.0, 0.5, 0.9, 1.0),
            target_jobs=None,
            free_text: bool = False,
            is_active: bool = True,
            answers=None,
        ):
            if answers is None:
                answers = [] if free_text else [{"text": f"Option {i}", "score": s} for i, s in enumerate(scores, start=1)]
            return await self._add(
                GrowthQuestion(
                    question_text="Growth question",
                    category=category,
                    weight=weight,
                    target_jobs=target_jobs or [],
                    answers=answers,
                    question_type=QuestionType.FREE_TEXT.value if free_text else QuestionType.SINGLE_CHOICE.value,
                    is_active=is_active,
                )
            )

    return Seeder()
