"""Organizational answer store: one row per (user, survey)."""
import logging
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from survey_backend.models.base import SurveyType
from survey_backend.models.organizational_result import OrganizationalSurveySummary
from survey_backend.models.problem import Problem
from survey_backend.services.answer_normalizer import OrganizationalEntry, load_organizational_entries
from survey_backend.services.answer_store import AnswerStore, UserAnswer
from survey_backend.services.schema_resolver import ORGANIZATIONAL_FREE_TEXT, ORGANIZATIONAL_RESULTS, ResolvedTable
from survey_backend.utils.datetime_helpers import utc_now
from survey_backend.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrganizationalResultRow:
    """A user's single-choice answers and stored response rate."""

    user_id: int
    survey_id: int
    entries: list[OrganizationalEntry]
    response_rate: float


class OrganizationalAnswerStore(AnswerStore):
    """Per-user answer arrays with a derived category summary row."""

    survey_type = SurveyType.ORGANIZATIONAL
    free_text_spec = ORGANIZATIONAL_FREE_TEXT

    async def upsert_single_choice(self, user_id: int, survey_id: int, question: Problem, score) -> None:
        number = self.validate_single_choice(question, score)
        if question.category_id is None:
            raise ValidationError(f"Question {question.id} has no category and cannot be scored")

        resolved, row = await self._lock_result_row(user_id, survey_id, create=True)
        entries = [entry for entry in self._entries(row, user_id, survey_id) if entry.question_id != question.id]
        entries.append(OrganizationalEntry(question_id=question.id, category_id=question.category_id, score=number))

        await self._write_result(resolved, row["id"], user_id, survey_id, entries)
        logger.info(f"Stored organizational answer {user_id=} {survey_id=} question_id={question.id} score={number}")

    async def upsert_free_text(self, user_id: int, survey_id: int, question: Problem, text) -> None:
        answer_text = self.validate_free_text(question, text)

        resolved, row = await self._lock_result_row(user_id, survey_id, create=True)
        await self._upsert_free_text_row(user_id, survey_id, question.id, answer_text)
        await self._write_result(resolved, row["id"], user_id, survey_id, self._entries(row, user_id, survey_id))
        logger.info(f"Stored organizational free-text answer {user_id=} {survey_id=} question_id={question.id}")

    async def remove_answer(self, user_id: int, survey_id: int, question_id: int) -> bool:
        resolved, row = await self._lock_result_row(user_id, survey_id, create=False)
        removed_text = await self._delete_free_text_row(user_id, survey_id, question_id)
        if row is None:
            return removed_text > 0

        entries = self._entries(row, user_id, survey_id)
        remaining = [entry for entry in entries if entry.question_id != question_id]
        await self._write_result(resolved, row["id"], user_id, survey_id, remaining)

        removed = removed_text > 0 or len(remaining) != len(entries)
        if removed:
            logger.info(f"Removed organizational answer {user_id=} {survey_id=} {question_id=}")
        return removed

    async def get_result_row(self, user_id: int, survey_id: int) -> OrganizationalResultRow | None:
        resolved = await self._resolve(ORGANIZATIONAL_RESULTS)
        result = await self.db.execute(
            select(resolved.raw("response"), resolved.labeled("response_rate"))
            .where(self._key_clause(resolved, {"user_id": user_id, "survey_id": survey_id}))
            .order_by(resolved.c("id"))
            .limit(1)
        )
        row = result.mappings().first()
        if row is None:
            return None
        return OrganizationalResultRow(
            user_id=user_id,
            survey_id=survey_id,
            entries=self._entries(row, user_id, survey_id),
            response_rate=float(row["response_rate"] or 0.0),
        )

    async def answered_question_ids(self, user_id: int, survey_id: int) -> set[int]:
        row = await self.get_result_row(user_id, survey_id)
        answered = {entry.question_id for entry in row.entries} if row else set()
        answered.update(await self.free_text_answers(user_id, survey_id))
        return answered

    async def user_answers(self, user_id: int, survey_id: int) -> list[UserAnswer]:
        row = await self.get_result_row(user_id, survey_id)
        answers = [UserAnswer(question_id=entry.question_id, score=entry.score) for entry in (row.entries if row else [])]
        answers.extend(
            UserAnswer(question_id=question_id, answer_text=text)
            for question_id, text in (await self.free_text_answers(user_id, survey_id)).items()
        )
        return answers

    async def respondent_ids(self, survey_id: int) -> set[int]:
        resolved = await self._resolve(ORGANIZATIONAL_RESULTS)
        result = await self.db.execute(
            select(resolved.c("user_id"), resolved.raw("response")).where(resolved.c("survey_id") == survey_id)
        )
        respondents = {
            user_id
            for user_id, response in result.all()
            if load_organizational_entries(response, f"organizational_survey_results uid={user_id} osid={survey_id}")
        }
        respondents.update(await self._free_text_respondents(survey_id))
        return respondents

    async def get_summary(self, user_id: int, survey_id: int) -> OrganizationalSurveySummary | None:
        result = await self.db.execute(
            select(OrganizationalSurveySummary).where(
                OrganizationalSurveySummary.uid == user_id,
                OrganizationalSurveySummary.osid == survey_id,
            )
        )
        return result.scalars().first()

    async def survey_summaries(self, survey_id: int) -> list[OrganizationalSurveySummary]:
        result = await self.db.execute(
            select(OrganizationalSurveySummary).where(OrganizationalSurveySummary.osid == survey_id)
        )
        return list(result.scalars().all())

    async def delete_survey_rows(self, survey_id: int) -> int:
        removed = await self._delete_free_text_rows(survey_id)

        resolved = await self._resolve(ORGANIZATIONAL_RESULTS)
        result = await self.db.execute(sa.delete(resolved.table).where(resolved.c("survey_id") == survey_id))
        removed += result.rowcount or 0

        result = await self.db.execute(
            delete(OrganizationalSurveySummary).where(OrganizationalSurveySummary.osid == survey_id)
        )
        removed += result.rowcount or 0
        return removed

    # Internals

    @staticmethod
    def _entries(row, user_id: int, survey_id: int) -> list[OrganizationalEntry]:
        return load_organizational_entries(
            row["response"], f"organizational_survey_results uid={user_id} osid={survey_id}"
        )

    async def _lock_result_row(self, user_id: int, survey_id: int, create: bool):
        resolved = await self._resolve(ORGANIZATIONAL_RESULTS)
        keys = {"user_id": user_id, "survey_id": survey_id}
        columns = (resolved.labeled("id"), resolved.raw("response"))
        if create:
            row = await self._lock_or_create_row(resolved, keys, {"response": [], "response_rate": 0.0}, *columns)
        else:
            row = await self._lock_row(resolved, keys, *columns)
        return resolved, row

    async def _write_result(
        self,
        resolved: ResolvedTable,
        row_id: int,
        user_id: int,
        survey_id: int,
        entries: list[OrganizationalEntry],
    ) -> None:
        """Persist the array with a fresh response rate and recompute the summary row."""
        free_text_count = len(await self.free_text_answers(user_id, survey_id))
        total_questions = await self.questions.count_applicable(user_id)
        response_rate = self.scoring.calculate_response_rate(len(entries), free_text_count, total_questions)

        await self.db.execute(
            sa.update(resolved.table)
            .where(resolved.c("id") == row_id)
            .values(
                **resolved.values(
                    response=[entry.to_stored() for entry in entries],
                    response_rate=response_rate,
                    updated_at=utc_now(),
                )
            )
        )
        await self._refresh_summary(user_id, survey_id, entries)

    async def _refresh_summary(self, user_id: int, survey_id: int, entries: list[OrganizationalEntry]) -> None:
        """Overwrite the summary row from ``entries``; an empty array removes it."""
        if not entries:
            await self.db.execute(
                delete(OrganizationalSurveySummary).where(
                    OrganizationalSurveySummary.uid == user_id,
                    OrganizationalSurveySummary.osid == survey_id,
                )
            )
            return

        scores = self.scoring.calculate_category_scores(entries)
        summary = await self._lock_summary(user_id, survey_id)
        if summary is None:
            summary = OrganizationalSurveySummary(uid=user_id, osid=survey_id)
            try:
                async with self.db.begin_nested():
                    self.db.add(summary)
                    for column, value in scores.as_summary_values().items():
                        setattr(summary, column, value)
                    await self.db.flush()
                return
            except IntegrityError as exc:
                logger.info(f"Concurrent summary insert {user_id=} {survey_id=}; updating existing row: {exc}")
                summary = await self._lock_summary(user_id, survey_id)

        for column, value in scores.as_summary_values().items():
            setattr(summary, column, value)
        summary.updated_at = utc_now()
        await self.db.flush()

    async def _lock_summary(self, user_id: int, survey_id: int) -> OrganizationalSurveySummary | None:
        result = await self.db.execute(
            select(OrganizationalSurveySummary)
            .where(
                OrganizationalSurveySummary.uid == user_id,
                OrganizationalSurveySummary.osid == survey_id,
            )
            .with_for_update()
        )
        return result.scalars().first()
