"""Survey scoring rules.

Organizational surveys score per category: raw option scores are summed per
category (not averaged), each sum is capped, and the total is the mean over all
fixed categories with unanswered categories counting as zero.

Growth surveys score per question: when the mean of the respondents' option
scores reaches the pass threshold the question earns its full weight,
otherwise nothing. Free-text answers never contribute to either rule.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable

from survey_backend.config import get_settings
from survey_backend.services.answer_normalizer import GrowthEntry, OrganizationalEntry

logger = logging.getLogger(__name__)

ORGANIZATIONAL_CATEGORY_NAMES = {
    1: "Self-Evaluation Consciousness",
    2: "Transformation Consciousness",
    3: "Result View",
    4: "Behavioral Precognition",
    5: "Result Confirmation",
    6: "Time Sensation",
    7: "Recognition of Organizational Position",
    8: "Freedom of Blame",
}


def round2(value: float) -> float:
    return round(float(value), 2)


@dataclass(frozen=True)
class CategoryScores:
    """Capped per-category sums and their average."""

    categories: dict[int, float] = field(default_factory=dict)
    total_score: float = 0.0

    def as_summary_values(self) -> dict[str, float]:
        """Column values for an ``organizational_survey_summary`` row."""
        values = {f"category{index}_score": score for index, score in self.categories.items()}
        values["total_score"] = self.total_score
        return values


class ScoringService:
    """Pure scoring computations shared by both survey types."""

    def __init__(
        self,
        category_count: int | None = None,
        category_cap: float | None = None,
        pass_threshold: float | None = None,
        default_weight: float | None = None,
    ):
        settings = get_settings()
        self.category_count = category_count or settings.organizational_category_count
        self.category_cap = settings.category_score_cap if category_cap is None else category_cap
        self.pass_threshold = settings.growth_pass_threshold if pass_threshold is None else pass_threshold
        self.default_weight = settings.default_growth_weight if default_weight is None else default_weight

    def calculate_category_scores(self, entries: Iterable[OrganizationalEntry]) -> CategoryScores:
        """Sum scores per category, cap each sum and average over every category.

        Entries whose category id falls outside the fixed range are ignored.
        """
        sums = {index: 0.0 for index in range(1, self.category_count + 1)}
        for entry in entries:
            if entry.category_id in sums:
                sums[entry.category_id] += float(entry.score)

        capped = {index: round2(min(self.category_cap, max(0.0, total))) for index, total in sums.items()}
        total_score = round2(sum(capped.values()) / self.category_count)
        return CategoryScores(categories=capped, total_score=total_score)

    def calculate_average_score(self, entries: Iterable[GrowthEntry]) -> float | None:
        """Mean of the non-null scores, or None when nobody has scored the question."""
        scores = [float(entry.score) for entry in entries if entry.score is not None]
        if not scores:
            return None
        return sum(scores) / len(scores)

    def calculate_growth_question_score(
        self,
        entries: Iterable[GrowthEntry],
        weight: float | None,
        is_free_text: bool = False,
    ) -> float:
        """Award the question weight when the average score reaches the pass threshold."""
        if is_free_text:
            return 0.0

        average = self.calculate_average_score(entries)
        if average is None or average < self.pass_threshold:
            return 0.0

        return float(self.default_weight if weight is None else weight)

    @staticmethod
    def calculate_response_rate(single_choice_count: int, free_text_count: int, total_questions: int) -> float:
        """Percentage of questions answered, rounded to 2 decimals and capped at 100."""
        if total_questions <= 0:
            return 0.0
        rate = round2((single_choice_count + free_text_count) / total_questions * 100)
        return min(100.0, rate)

    @staticmethod
    def average_category_rollup(summaries: Iterable[dict[str, float]], category_count: int = 8) -> dict[str, float | None]:
        """Average each category (and the total) across summary rows for dashboards.

        Every value is None when there are no summary rows.
        """
        rows = list(summaries)
        keys = [ORGANIZATIONAL_CATEGORY_NAMES.get(index, f"category{index}") for index in range(1, category_count + 1)]
        if not rows:
            rollup: dict[str, float | None] = {key: None for key in keys}
            rollup["total"] = None
            return rollup

        rollup = {}
        for index, key in enumerate(keys, start=1):
            column = f"category{index}_score"
            rollup[key] = round2(sum(float(row.get(column) or 0.0) for row in rows) / len(rows))
        rollup["total"] = round2(sum(float(row.get("total_score") or 0.0) for row in rows) / len(rows))
        return rollup
