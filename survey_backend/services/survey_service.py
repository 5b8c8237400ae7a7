"""Survey lookups, answer-store selection and survey deletion."""
import logging

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from survey_backend.models.base import SurveyType
from survey_backend.models.survey import Survey
from survey_backend.services.answer_store import AnswerStore
from survey_backend.services.growth_store import GrowthAnswerStore
from survey_backend.services.organizational_store import OrganizationalAnswerStore
from survey_backend.services.progress_service import ProgressTracker
from survey_backend.services.question_bank import GrowthQuestionBank, OrganizationalQuestionBank
from survey_backend.services.schema_resolver import SchemaResolver
from survey_backend.services.scoring_service import ScoringService
from survey_backend.utils.cache import NullCache, ResponseCache
from survey_backend.utils.exceptions import NotFoundError
from survey_backend.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)


def category_scores_cache_key(survey_id: int) -> str:
    return f"category_scores:{survey_id}"


def growth_category_scores_cache_key(survey_id: int) -> str:
    return f"growth_category_scores:{survey_id}"


def build_answer_store(
    survey_type: SurveyType,
    db: AsyncSession,
    resolver: SchemaResolver,
    scoring: ScoringService | None = None,
) -> AnswerStore:
    """Answer store for a survey type, wired to its question bank."""
    if survey_type == SurveyType.GROWTH:
        return GrowthAnswerStore(db, resolver, GrowthQuestionBank(db), scoring)
    return OrganizationalAnswerStore(db, resolver, OrganizationalQuestionBank(db), scoring)


class SurveyService:
    """Service for survey lookups and administrative deletion."""

    def __init__(
        self,
        db: AsyncSession,
        resolver: SchemaResolver | None = None,
        cache: ResponseCache | None = None,
    ):
        self.db = db
        self.resolver = resolver or SchemaResolver()
        self.cache = cache if cache is not None else NullCache()

    async def get_survey(self, survey_id: int) -> Survey:
        survey = await self.db.get(Survey, survey_id)
        if survey is None:
            raise NotFoundError("Survey", survey_id)
        return survey

    def invalidate_survey_cache(self, survey_id: int) -> None:
        self.cache.delete(category_scores_cache_key(survey_id))
        self.cache.delete(growth_category_scores_cache_key(survey_id))

    async def delete_survey(self, survey_id: int) -> dict[str, int]:
        """Delete a survey and every response, free-text, summary and completion row tied to it.

        Both layouts are purged regardless of the survey's type so rows written
        under a previous type do not linger.

        Returns:
            Counts of removed rows per kind
        """

        async def _delete() -> dict[str, int]:
            try:
                await self.get_survey(survey_id)
                removed = {
                    "organizational_rows": await build_answer_store(
                        SurveyType.ORGANIZATIONAL, self.db, self.resolver
                    ).delete_survey_rows(survey_id),
                    "growth_rows": await build_answer_store(
                        SurveyType.GROWTH, self.db, self.resolver
                    ).delete_survey_rows(survey_id),
                    "completions": await ProgressTracker(self.db).delete_survey_completions(survey_id),
                }
                await self.db.execute(delete(Survey).where(Survey.id == survey_id))
                await self.db.commit()
                return removed
            except Exception:
                await self.db.rollback()
                raise

        removed = await retry_with_backoff(
            _delete, operation_name=f"delete_survey survey={survey_id}", on_retry=self.db.rollback
        )
        self.invalidate_survey_cache(survey_id)
        logger.info(f"Deleted survey {survey_id} with {removed}")
        return removed
