"""Question lookups for both survey types.

The organizational bank counts every problem regardless of the respondent,
while the growth bank only counts active questions whose job targeting matches
the respondent. Progress denominators come from here.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from survey_backend.models.employee import Employee, Job
from survey_backend.models.growth_question import GrowthQuestion
from survey_backend.models.problem import Problem
from survey_backend.services.answer_normalizer import coerce_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnswerOption:
    """Selectable answer with its score."""

    label: str
    score: float | None


DEFAULT_GROWTH_SCALE_OPTIONS = (
    AnswerOption("Strongly disagree", 1),
    AnswerOption("Disagree", 2),
    AnswerOption("Somewhat disagree", 3),
    AnswerOption("Somewhat agree", 4),
    AnswerOption("Agree", 5),
    AnswerOption("Strongly agree", 6),
)


def parse_target_jobs(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [job for job in value if isinstance(job, str) and job]


def growth_answer_options(question: GrowthQuestion) -> list[AnswerOption]:
    """Answer options for a growth question, falling back to the default scale."""
    if question.is_free_text:
        return []

    raw_answers = question.answers if isinstance(question.answers, list) else []
    options = []
    for index, raw in enumerate(raw_answers, start=1):
        if not isinstance(raw, dict):
            continue
        label = raw.get("text") if isinstance(raw.get("text"), str) else f"Option {index}"
        options.append(AnswerOption(label=label, score=coerce_number(raw.get("score"))))

    return options or list(DEFAULT_GROWTH_SCALE_OPTIONS)


def matches_job_target(question: GrowthQuestion, job_name: str | None) -> bool:
    """Untargeted questions reach everyone; targeted ones only employees holding a listed job."""
    targets = parse_target_jobs(question.target_jobs)
    if not targets:
        return True
    return job_name is not None and job_name in targets


class QuestionBank(ABC):
    """Question lookups for one survey type."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @abstractmethod
    async def get_question_for_user(self, user_id: int, question_id: int):
        """Question the user may answer, or None."""

    @abstractmethod
    async def applicable_questions(self, user_id: int) -> list:
        """Questions that count toward the user's progress, in display order."""

    async def count_applicable(self, user_id: int) -> int:
        return len(await self.applicable_questions(user_id))

    @abstractmethod
    def answer_options(self, question) -> list[AnswerOption]:
        """Selectable options for a single-choice question."""

    @staticmethod
    def is_free_text(question) -> bool:
        return question.is_free_text

    def matching_option(self, question, score: float) -> AnswerOption | None:
        """Option whose score equals ``score``."""
        for option in self.answer_options(question):
            if option.score is not None and float(option.score) == float(score):
                return option
        return None


class OrganizationalQuestionBank(QuestionBank):
    """Organizational problems; every respondent sees every problem."""

    async def get_question_for_user(self, user_id: int, question_id: int) -> Problem | None:
        return await self.db.get(Problem, question_id)

    async def applicable_questions(self, user_id: int) -> list[Problem]:
        result = await self.db.execute(
            select(Problem).order_by(func.coalesce(Problem.display_order, Problem.id), Problem.id)
        )
        return list(result.scalars().all())

    async def count_applicable(self, user_id: int) -> int:
        result = await self.db.execute(select(func.count()).select_from(Problem))
        return int(result.scalar_one())

    def answer_options(self, question: Problem) -> list[AnswerOption]:
        if question.is_free_text:
            return []
        return [AnswerOption(label=f"Option {index}", score=score) for index, score in enumerate(question.option_scores, start=1)]


class GrowthQuestionBank(QuestionBank):
    """Growth questions filtered by activity and the respondent's job."""

    async def get_job_name(self, user_id: int) -> str | None:
        result = await self.db.execute(
            select(Job.name).select_from(Employee).join(Job, Employee.job_id == Job.id, isouter=True).where(Employee.id == user_id)
        )
        return result.scalar_one_or_none()

    async def all_questions(self) -> list[GrowthQuestion]:
        result = await self.db.execute(
            select(GrowthQuestion).order_by(func.coalesce(GrowthQuestion.display_order, GrowthQuestion.id), GrowthQuestion.id)
        )
        return list(result.scalars().all())

    async def applicable_questions(self, user_id: int) -> list[GrowthQuestion]:
        job_name = await self.get_job_name(user_id)
        return self.filter_for_job(await self.all_questions(), job_name)

    @staticmethod
    def filter_for_job(questions: list[GrowthQuestion], job_name: str | None) -> list[GrowthQuestion]:
        return [question for question in questions if question.is_active and matches_job_target(question, job_name)]

    async def get_question_for_user(self, user_id: int, question_id: int) -> GrowthQuestion | None:
        question = await self.db.get(GrowthQuestion, question_id)
        if question is None or not question.is_active:
            return None
        if not matches_job_target(question, await self.get_job_name(user_id)):
            logger.info(f"Growth question {question_id} is not targeted at user {user_id}'s job")
            return None
        return question

    async def question_types(self) -> dict[int, bool]:
        """Map of question id -> is_free_text for every growth question."""
        result = await self.db.execute(select(GrowthQuestion.id, GrowthQuestion.question_type))
        return {question_id: question_type == "free_text" for question_id, question_type in result.all()}

    def answer_options(self, question: GrowthQuestion) -> list[AnswerOption]:
        return growth_answer_options(question)
