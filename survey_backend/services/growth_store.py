"""Growth answer store: one row per (question, survey) holding every respondent.

Reads that concern a single user scan every question row of the survey and
pick that user's entry out of each array.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy import select

from survey_backend.models.base import SurveyType
from survey_backend.models.growth_question import GrowthQuestion
from survey_backend.services.answer_normalizer import GrowthEntry, load_growth_entries
from survey_backend.services.answer_store import AnswerStore, UserAnswer
from survey_backend.services.schema_resolver import GROWTH_FREE_TEXT, GROWTH_RESPONSES, ResolvedTable
from survey_backend.services.scoring_service import round2
from survey_backend.utils.datetime_helpers import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GrowthQuestionRow:
    """Every respondent's answer to one growth question."""

    question_id: int
    survey_id: int
    category: str | None
    entries: list[GrowthEntry]
    total_score: float

    def entry_for(self, user_id: int) -> GrowthEntry | None:
        for entry in self.entries:
            if entry.user_id == user_id:
                return entry
        return None


class GrowthAnswerStore(AnswerStore):
    """Per-question answer arrays scored by the pass threshold rule."""

    survey_type = SurveyType.GROWTH
    free_text_spec = GROWTH_FREE_TEXT

    async def upsert_single_choice(self, user_id: int, survey_id: int, question: GrowthQuestion, score) -> None:
        number = self.validate_single_choice(question, score)
        await self._replace_entry(survey_id, question, GrowthEntry(user_id=user_id, score=number))
        logger.info(f"Stored growth answer {user_id=} {survey_id=} question_id={question.id} score={number}")

    async def upsert_free_text(self, user_id: int, survey_id: int, question: GrowthQuestion, text) -> None:
        answer_text = self.validate_free_text(question, text)
        await self._upsert_free_text_row(user_id, survey_id, question.id, answer_text)
        # Placeholder entry marks the question answered without adding to any score
        await self._replace_entry(survey_id, question, GrowthEntry(user_id=user_id, score=None))
        logger.info(f"Stored growth free-text answer {user_id=} {survey_id=} question_id={question.id}")

    async def remove_answer(self, user_id: int, survey_id: int, question_id: int) -> bool:
        removed_text = await self._delete_free_text_row(user_id, survey_id, question_id)

        resolved = await self._resolve(GROWTH_RESPONSES)
        row = await self._lock_row(
            resolved,
            {"question_id": question_id, "survey_id": survey_id},
            resolved.labeled("id"),
            resolved.raw("result"),
        )
        if row is None:
            return removed_text > 0

        entries = self._entries(row, question_id, survey_id)
        remaining = [entry for entry in entries if entry.user_id != user_id]
        question = await self.db.get(GrowthQuestion, question_id)
        await self._write_row(resolved, row["id"], remaining, question)

        removed = removed_text > 0 or len(remaining) != len(entries)
        if removed:
            logger.info(f"Removed growth answer {user_id=} {survey_id=} {question_id=}")
        return removed

    async def get_question_row(self, question_id: int, survey_id: int) -> GrowthQuestionRow | None:
        resolved = await self._resolve(GROWTH_RESPONSES)
        result = await self.db.execute(
            self._row_select(resolved)
            .where(self._key_clause(resolved, {"question_id": question_id, "survey_id": survey_id}))
            .order_by(resolved.c("id"))
            .limit(1)
        )
        row = result.mappings().first()
        return self._to_question_row(row, survey_id) if row else None

    async def survey_rows(self, survey_id: int) -> list[GrowthQuestionRow]:
        """Every question row of the survey, one per question id."""
        resolved = await self._resolve(GROWTH_RESPONSES)
        result = await self.db.execute(
            self._row_select(resolved).where(resolved.c("survey_id") == survey_id).order_by(resolved.c("id"))
        )
        rows: dict[int, GrowthQuestionRow] = {}
        for row in result.mappings().all():
            rows.setdefault(row["question_id"], self._to_question_row(row, survey_id))
        return list(rows.values())

    async def answered_question_ids(self, user_id: int, survey_id: int) -> set[int]:
        applicable = await self._applicable_question_ids(user_id)
        return {
            row.question_id
            for row in await self.survey_rows(survey_id)
            if row.question_id in applicable and row.entry_for(user_id) is not None
        }

    async def user_answers(self, user_id: int, survey_id: int) -> list[UserAnswer]:
        """The user's answers to questions currently visible to them."""
        applicable = await self._applicable_question_ids(user_id)
        texts = await self.free_text_answers(user_id, survey_id)
        answers = []
        for row in await self.survey_rows(survey_id):
            entry = row.entry_for(user_id)
            if entry is None or row.question_id not in applicable:
                continue
            answers.append(UserAnswer(question_id=row.question_id, score=entry.score, answer_text=texts.get(row.question_id)))
        return answers

    async def respondent_ids(self, survey_id: int) -> set[int]:
        respondents = {entry.user_id for row in await self.survey_rows(survey_id) for entry in row.entries}
        respondents.update(await self._free_text_respondents(survey_id))
        return respondents

    async def category_rollup(self, survey_id: int) -> dict[str, float]:
        """Sum of question scores per category label, skipping free-text and uncategorized questions."""
        free_text = await self.questions.question_types()
        rollup: dict[str, float] = defaultdict(float)
        for row in await self.survey_rows(survey_id):
            if row.category is None or free_text.get(row.question_id, False):
                continue
            rollup[row.category] += row.total_score
        return {category: round2(total) for category, total in rollup.items()}

    async def delete_survey_rows(self, survey_id: int) -> int:
        removed = await self._delete_free_text_rows(survey_id)
        resolved = await self._resolve(GROWTH_RESPONSES)
        result = await self.db.execute(sa.delete(resolved.table).where(resolved.c("survey_id") == survey_id))
        return removed + (result.rowcount or 0)

    # Internals

    async def _applicable_question_ids(self, user_id: int) -> set[int]:
        return {question.id for question in await self.questions.applicable_questions(user_id)}

    @staticmethod
    def _row_select(resolved: ResolvedTable):
        return select(
            resolved.labeled("question_id"),
            resolved.labeled("category"),
            resolved.raw("result"),
            resolved.labeled("total_score"),
        )

    @staticmethod
    def _entries(row, question_id: int, survey_id: int) -> list[GrowthEntry]:
        return load_growth_entries(row["result"], f"growth_survey_responses question_id={question_id} survey_id={survey_id}")

    def _to_question_row(self, row, survey_id: int) -> GrowthQuestionRow:
        return GrowthQuestionRow(
            question_id=row["question_id"],
            survey_id=survey_id,
            category=row["category"],
            entries=self._entries(row, row["question_id"], survey_id),
            total_score=float(row["total_score"] or 0.0),
        )

    async def _replace_entry(self, survey_id: int, question: GrowthQuestion, entry: GrowthEntry) -> None:
        resolved = await self._resolve(GROWTH_RESPONSES)
        row = await self._lock_or_create_row(
            resolved,
            {"question_id": question.id, "survey_id": survey_id},
            {"category": question.category, "result": [], "total_score": 0.0},
            resolved.labeled("id"),
            resolved.raw("result"),
        )
        entries = [existing for existing in self._entries(row, question.id, survey_id) if existing.user_id != entry.user_id]
        entries.append(entry)
        await self._write_row(resolved, row["id"], entries, question)

    async def _write_row(
        self,
        resolved: ResolvedTable,
        row_id: int,
        entries: list[GrowthEntry],
        question: GrowthQuestion | None,
    ) -> None:
        values = {"result": [entry.to_stored() for entry in entries], "updated_at": utc_now()}
        if question is None:
            # Question deleted since the row was written; nothing left to score against
            values["total_score"] = 0.0
        else:
            values["total_score"] = self.scoring.calculate_growth_question_score(
                entries, question.weight, question.is_free_text
            )
            values["category"] = question.category

        await self.db.execute(
            sa.update(resolved.table).where(resolved.c("id") == row_id).values(**resolved.values(**values))
        )
