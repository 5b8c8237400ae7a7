"""Common interface for the two answer stores.

Organizational answers live in one row per (user, survey); growth answers live
in one row per (question, survey). Both expose the same operations so progress
tracking and the response service never care which layout they talk to.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from survey_backend.models.base import SurveyType
from survey_backend.services.answer_normalizer import coerce_number
from survey_backend.services.question_bank import QuestionBank
from survey_backend.services.schema_resolver import ResolvedTable, SchemaResolver, TableSpec
from survey_backend.services.scoring_service import ScoringService
from survey_backend.utils.datetime_helpers import utc_now
from survey_backend.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserAnswer:
    """One answer of one user, as returned to the caller."""

    question_id: int
    score: float | None = None
    answer_text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"question_id": self.question_id, "answer_text": self.answer_text, "score": self.score}


class AnswerStore(ABC):
    """Answer storage for one survey type."""

    survey_type: SurveyType
    free_text_spec: TableSpec

    def __init__(
        self,
        db: AsyncSession,
        resolver: SchemaResolver,
        questions: QuestionBank,
        scoring: ScoringService | None = None,
    ):
        self.db = db
        self.resolver = resolver
        self.questions = questions
        self.scoring = scoring or ScoringService()

    # Answer writes

    @abstractmethod
    async def upsert_single_choice(self, user_id: int, survey_id: int, question, score: Any) -> None:
        """Replace the user's single-choice answer to ``question``."""

    @abstractmethod
    async def upsert_free_text(self, user_id: int, survey_id: int, question, text: Any) -> None:
        """Replace the user's free-text answer to ``question``."""

    @abstractmethod
    async def remove_answer(self, user_id: int, survey_id: int, question_id: int) -> bool:
        """Remove the user's answer to a question. Returns False when there was none."""

    # Reads

    @abstractmethod
    async def answered_question_ids(self, user_id: int, survey_id: int) -> set[int]:
        """Distinct question ids the user has answered, single-choice and free-text alike."""

    @abstractmethod
    async def user_answers(self, user_id: int, survey_id: int) -> list[UserAnswer]:
        """Every answer of the user in the survey."""

    @abstractmethod
    async def respondent_ids(self, survey_id: int) -> set[int]:
        """Users with at least one stored answer in the survey."""

    @abstractmethod
    async def delete_survey_rows(self, survey_id: int) -> int:
        """Delete every response, free-text and summary row of a survey. Returns rows removed."""

    # Validation

    def validate_single_choice(self, question, score: Any) -> float:
        """Return the numeric score, or raise when it matches none of the question's options."""
        if self.questions.is_free_text(question):
            raise ValidationError("This question expects a text answer")

        number = coerce_number(score)
        if number is None:
            raise ValidationError("A numeric score is required")

        if self.questions.matching_option(question, number) is None:
            raise ValidationError(f"Score {score} is not one of the answer options for question {question.id}")
        return number

    def validate_free_text(self, question, text: Any) -> str:
        if not self.questions.is_free_text(question):
            raise ValidationError("This question expects a score")
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Answer text cannot be blank")
        return text.strip()

    # Row helpers shared by both layouts

    async def _resolve(self, spec: TableSpec) -> ResolvedTable:
        return await self.resolver.resolve(self.db, spec)

    @staticmethod
    def _key_clause(resolved: ResolvedTable, keys: Mapping[str, Any]):
        return sa.and_(*(resolved.c(name) == value for name, value in keys.items()))

    async def _lock_row(self, resolved: ResolvedTable, keys: Mapping[str, Any], *columns):
        """Fetch the first matching row with a row lock held until the transaction ends."""
        stmt = (
            sa.select(*(columns or (resolved.labeled("id"),)))
            .where(self._key_clause(resolved, keys))
            .order_by(resolved.c("id"))
            .limit(1)
            .with_for_update()
        )
        result = await self.db.execute(stmt)
        return result.mappings().first()

    async def _lock_or_create_row(
        self,
        resolved: ResolvedTable,
        keys: Mapping[str, Any],
        initial: Mapping[str, Any],
        *columns,
    ):
        """Lock the row for ``keys``, inserting it first when absent.

        The insert runs in a savepoint so a concurrent creator's unique-key win
        only rolls back the insert; the row is then re-read under the lock.
        """
        row = await self._lock_row(resolved, keys, *columns)
        if row is not None:
            return row

        now = utc_now()
        values = resolved.values(**keys, **initial)
        values.update(created_at=now, updated_at=now)
        try:
            async with self.db.begin_nested():
                await self.db.execute(sa.insert(resolved.table).values(**values))
        except IntegrityError as exc:
            logger.info(f"Concurrent insert into {resolved.spec.name} for {dict(keys)}; re-reading row: {exc}")

        row = await self._lock_row(resolved, keys, *columns)
        if row is None:
            raise RuntimeError(f"Row for {dict(keys)} in {resolved.spec.name} vanished after insert")
        return row

    # Free-text side table, identical for both survey types

    async def _upsert_free_text_row(self, user_id: int, survey_id: int, question_id: int, text: str) -> None:
        resolved = await self._resolve(self.free_text_spec)
        keys = {"user_id": user_id, "survey_id": survey_id, "question_id": question_id}
        row = await self._lock_or_create_row(resolved, keys, {"answer_text": text})
        await self.db.execute(
            sa.update(resolved.table)
            .where(resolved.c("id") == row["id"])
            .values(**resolved.values(answer_text=text, updated_at=utc_now()))
        )

    async def _delete_free_text_row(self, user_id: int, survey_id: int, question_id: int) -> int:
        resolved = await self._resolve(self.free_text_spec)
        result = await self.db.execute(
            sa.delete(resolved.table).where(
                self._key_clause(resolved, {"user_id": user_id, "survey_id": survey_id, "question_id": question_id})
            )
        )
        return result.rowcount or 0

    async def free_text_answers(self, user_id: int, survey_id: int) -> dict[int, str]:
        """Map of question id -> free-text answer for the user."""
        resolved = await self._resolve(self.free_text_spec)
        result = await self.db.execute(
            sa.select(resolved.c("question_id"), resolved.c("answer_text"))
            .where(self._key_clause(resolved, {"user_id": user_id, "survey_id": survey_id}))
            .order_by(resolved.c("id"))
        )
        return {question_id: text for question_id, text in result.all()}

    async def _free_text_respondents(self, survey_id: int) -> set[int]:
        resolved = await self._resolve(self.free_text_spec)
        result = await self.db.execute(
            sa.select(resolved.c("user_id")).where(resolved.c("survey_id") == survey_id).distinct()
        )
        return set(result.scalars().all())

    async def _delete_free_text_rows(self, survey_id: int) -> int:
        resolved = await self._resolve(self.free_text_spec)
        result = await self.db.execute(sa.delete(resolved.table).where(resolved.c("survey_id") == survey_id))
        return result.rowcount or 0
