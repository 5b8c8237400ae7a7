"""Answer submission, response reads and score rollups.

Every operation runs as one transaction wrapped in :func:`retry_with_backoff`,
so connection drops and timeouts are retried from a clean session and then
surfaced as :class:`TransientStoreError`.
"""
import logging
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from survey_backend.config import get_settings
from survey_backend.models.base import SurveyType
from survey_backend.models.employee import Employee
from survey_backend.models.survey import Survey
from survey_backend.services.growth_store import GrowthAnswerStore
from survey_backend.services.organizational_store import OrganizationalAnswerStore
from survey_backend.services.progress_service import Progress, ProgressTracker
from survey_backend.services.schema_resolver import SchemaResolver
from survey_backend.services.scoring_service import ScoringService
from survey_backend.services.survey_service import (
    SurveyService,
    build_answer_store,
    category_scores_cache_key,
    growth_category_scores_cache_key,
)
from survey_backend.utils.cache import NullCache, ResponseCache
from survey_backend.utils.exceptions import NotFoundError, SurveyClosedError, ValidationError
from survey_backend.utils.retry import retry_with_backoff

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SurveyResponseService:
    """Service for saving, reading and scoring survey answers."""

    def __init__(
        self,
        db: AsyncSession,
        resolver: SchemaResolver | None = None,
        cache: ResponseCache | None = None,
        scoring: ScoringService | None = None,
    ):
        self.db = db
        self.resolver = resolver or SchemaResolver()
        self.cache = cache if cache is not None else NullCache()
        self.scoring = scoring or ScoringService()
        self.surveys = SurveyService(db, self.resolver, self.cache)
        self.progress = ProgressTracker(db)
        self.settings = get_settings()

    def _store(self, survey: Survey):
        return build_answer_store(survey.kind, self.db, self.resolver, self.scoring)

    async def _run(self, operation: Callable[[], Awaitable[T]], operation_name: str, write: bool = False) -> T:
        """Run ``operation`` with retries, committing writes and rolling back on failure."""

        async def _attempt() -> T:
            try:
                result = await operation()
                if write:
                    await self.db.commit()
                return result
            except Exception:
                await self.db.rollback()
                raise

        return await retry_with_backoff(_attempt, operation_name=operation_name, on_retry=self.db.rollback)

    async def save_answer(self, survey_id: int, question_id: int, user_id: int, payload: dict[str, Any]) -> dict:
        """
        Save one answer, given as ``{"score": ...}`` or ``{"text": ...}``.

        Returns:
            Progress after the write: progress_count, total_questions, completed, completed_at

        Raises:
            ValidationError: Payload missing, ambiguous or not matching the question
            SurveyClosedError: Survey is not running
            NotFoundError: Survey or question does not exist for this user
        """
        has_score = payload.get("score") is not None
        has_text = payload.get("text") is not None
        if has_score == has_text:
            raise ValidationError("Provide exactly one of score or text")

        async def _save() -> Progress:
            survey = await self._get_open_survey(survey_id)
            store = self._store(survey)
            question = await store.questions.get_question_for_user(user_id, question_id)
            if question is None:
                raise NotFoundError("Question", question_id)

            if has_text:
                await store.upsert_free_text(user_id, survey_id, question, payload["text"])
            else:
                await store.upsert_single_choice(user_id, survey_id, question, payload["score"])

            return await self.progress.sync_completion(store, user_id, survey_id)

        progress = await self._run(_save, f"save_answer survey={survey_id} question={question_id}", write=True)
        self.surveys.invalidate_survey_cache(survey_id)
        return progress.to_dict()

    async def delete_answer(self, survey_id: int, question_id: int, user_id: int) -> dict:
        """Remove one answer. Removing an answer that does not exist is not an error."""

        async def _delete() -> bool:
            survey = await self._get_open_survey(survey_id)
            store = self._store(survey)
            removed = await store.remove_answer(user_id, survey_id, question_id)
            await self.progress.sync_completion(store, user_id, survey_id)
            return removed

        removed = await self._run(_delete, f"delete_answer survey={survey_id} question={question_id}", write=True)
        if removed:
            self.surveys.invalidate_survey_cache(survey_id)
        return {"ok": True}

    async def get_my_responses(self, survey_id: int, user_id: int) -> dict:
        """The user's answers plus progress."""

        async def _read() -> dict:
            survey = await self.surveys.get_survey(survey_id)
            store = self._store(survey)
            answers = await store.user_answers(user_id, survey_id)
            progress = await self.progress.get_progress(store, user_id, survey_id)
            return {"responses": [answer.to_dict() for answer in answers], **progress.to_dict()}

        return await self._run(_read, f"get_my_responses survey={survey_id} user={user_id}")

    async def get_category_scores(self, survey_id: int) -> dict[str, float | None]:
        """Average organizational category scores across respondents, cached per survey."""
        cache_key = category_scores_cache_key(survey_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return dict(cached)

        async def _read() -> dict[str, float | None]:
            survey = await self.surveys.get_survey(survey_id)
            if survey.kind != SurveyType.ORGANIZATIONAL:
                raise ValidationError("Category scores are only available for organizational surveys")
            store: OrganizationalAnswerStore = self._store(survey)
            summaries = await store.survey_summaries(survey_id)
            return self.scoring.average_category_rollup(
                [summary.summary_values() for summary in summaries],
                self.scoring.category_count,
            )

        scores = await self._run(_read, f"get_category_scores survey={survey_id}")
        self.cache.set(cache_key, scores, ttl=self.settings.category_scores_cache_ttl_seconds)
        return scores

    async def get_growth_category_scores(self, survey_id: int) -> dict[str, float]:
        """Sum of growth question scores per category label, cached per survey."""
        cache_key = growth_category_scores_cache_key(survey_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return dict(cached)

        async def _read() -> dict[str, float]:
            survey = await self.surveys.get_survey(survey_id)
            if survey.kind != SurveyType.GROWTH:
                raise ValidationError("Growth category scores are only available for growth surveys")
            store: GrowthAnswerStore = self._store(survey)
            return await store.category_rollup(survey_id)

        scores = await self._run(_read, f"get_growth_category_scores survey={survey_id}")
        self.cache.set(cache_key, scores, ttl=self.settings.category_scores_cache_ttl_seconds)
        return scores

    async def get_response_status(self, survey_id: int) -> dict:
        """Progress and response rate of every employee, for administrators."""

        async def _read() -> dict:
            survey = await self.surveys.get_survey(survey_id)
            store = self._store(survey)
            result = await self.db.execute(select(Employee).order_by(Employee.id))
            employees = list(result.scalars().unique().all())

            statuses = []
            for employee in employees:
                progress = await self.progress.get_progress(store, employee.id, survey_id)
                statuses.append(
                    {
                        "employee_id": employee.id,
                        "name": employee.name,
                        "job_name": employee.job.name if employee.job else None,
                        "response_rate": progress.response_rate,
                        **progress.to_dict(),
                    }
                )

            completed = sum(1 for status in statuses if status["completed"])
            return {
                "survey_id": survey_id,
                "survey_type": survey.kind.value,
                "employee_count": len(statuses),
                "completed_count": completed,
                "employees": statuses,
            }

        return await self._run(_read, f"get_response_status survey={survey_id}")

    async def _get_open_survey(self, survey_id: int) -> Survey:
        survey = await self.surveys.get_survey(survey_id)
        if not survey.running:
            raise SurveyClosedError(survey_id)
        return survey
