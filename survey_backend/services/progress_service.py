"""Per-user progress, completion flags and completion timestamps."""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from survey_backend.models.organizational_result import OrganizationalSurveySummary
from survey_backend.models.survey_completion import SurveyCompletion
from survey_backend.services.answer_store import AnswerStore
from survey_backend.services.scoring_service import ScoringService
from survey_backend.utils.datetime_helpers import ensure_utc, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Progress:
    """How far a user is through a survey."""

    answered: int
    total: int
    completed: bool
    completed_at: datetime | None = None

    @property
    def response_rate(self) -> float:
        return ScoringService.calculate_response_rate(self.answered, 0, self.total)

    def to_dict(self) -> dict:
        return {
            "progress_count": self.answered,
            "total_questions": self.total,
            "completed": self.completed,
            "completed_at": self.completed_at,
        }


def is_complete(answered: int, total: int) -> bool:
    return total > 0 and answered >= total


class ProgressTracker:
    """Progress computed from the answer stores plus recorded completion moments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_progress(self, store: AnswerStore, user_id: int, survey_id: int) -> Progress:
        """Answered/total counts with the completion timestamp when complete."""
        answered = len(await store.answered_question_ids(user_id, survey_id))
        total = await store.questions.count_applicable(user_id)
        completed = is_complete(answered, total)

        completed_at = await self.get_completed_at(user_id, survey_id) if completed else None
        return Progress(answered=answered, total=total, completed=completed, completed_at=completed_at)

    async def sync_completion(self, store: AnswerStore, user_id: int, survey_id: int) -> Progress:
        """Record or clear the completion row after a write, in the caller's transaction.

        The first write that completes a survey stamps the completion time; a
        removal that makes the survey incomplete clears it.
        """
        answered = len(await store.answered_question_ids(user_id, survey_id))
        total = await store.questions.count_applicable(user_id)
        completed = is_complete(answered, total)

        record = await self._get_completion(user_id, survey_id)
        if completed and record is None:
            record = await self._record_completion(user_id, survey_id)
        elif not completed and record is not None:
            await self.db.execute(
                delete(SurveyCompletion).where(
                    SurveyCompletion.user_id == user_id,
                    SurveyCompletion.survey_id == survey_id,
                )
            )
            logger.info(f"Survey no longer complete; cleared completion {user_id=} {survey_id=}")
            record = None

        completed_at = ensure_utc(record.completed_at) if completed and record is not None else None
        return Progress(answered=answered, total=total, completed=completed, completed_at=completed_at)

    async def get_completed_at(self, user_id: int, survey_id: int) -> datetime:
        """Recorded completion time, else the summary row's last write, else now."""
        record = await self._get_completion(user_id, survey_id)
        if record is not None:
            return ensure_utc(record.completed_at)

        result = await self.db.execute(
            select(OrganizationalSurveySummary.updated_at).where(
                OrganizationalSurveySummary.uid == user_id,
                OrganizationalSurveySummary.osid == survey_id,
            )
        )
        updated_at = result.scalars().first()
        if updated_at is not None:
            return ensure_utc(updated_at)

        return utc_now()

    async def delete_survey_completions(self, survey_id: int) -> int:
        result = await self.db.execute(delete(SurveyCompletion).where(SurveyCompletion.survey_id == survey_id))
        return result.rowcount or 0

    async def _get_completion(self, user_id: int, survey_id: int) -> SurveyCompletion | None:
        result = await self.db.execute(
            select(SurveyCompletion).where(
                SurveyCompletion.user_id == user_id,
                SurveyCompletion.survey_id == survey_id,
            )
        )
        return result.scalars().first()

    async def _record_completion(self, user_id: int, survey_id: int) -> SurveyCompletion:
        record = SurveyCompletion(user_id=user_id, survey_id=survey_id, completed_at=utc_now())
        try:
            async with self.db.begin_nested():
                self.db.add(record)
                await self.db.flush()
        except IntegrityError as exc:
            logger.info(f"Completion already recorded concurrently {user_id=} {survey_id=}: {exc}")
            existing = await self._get_completion(user_id, survey_id)
            if existing is not None:
                return existing
            raise
        logger.info(f"Survey completed {user_id=} {survey_id=}")
        return record
