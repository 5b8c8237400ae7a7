"""Tests for survey scoring rules."""
import pytest

from survey_backend.services.answer_normalizer import GrowthEntry, OrganizationalEntry
from survey_backend.services.scoring_service import ORGANIZATIONAL_CATEGORY_NAMES, ScoringService


@pytest.fixture
def scoring():
    return ScoringService(category_count=8, category_cap=100.0, pass_threshold=0.85, default_weight=1.0)


def test_single_answer_scenario(scoring):
    """One answer of 30 in category 1 averages to 3.75 over the eight categories."""
    scores = scoring.calculate_category_scores([OrganizationalEntry(question_id=1, category_id=1, score=30)])

    assert scores.categories[1] == 30
    assert scores.categories[2] == 0
    assert scores.total_score == 3.75


def test_category_scores_are_sums_capped_at_100(scoring):
    entries = [
        OrganizationalEntry(1, 1, 60),
        OrganizationalEntry(2, 1, 60),
        OrganizationalEntry(3, 2, 20),
        OrganizationalEntry(4, 2, 25),
    ]
    scores = scoring.calculate_category_scores(entries)

    assert scores.categories[1] == 100
    assert scores.categories[2] == 45
    assert scores.total_score == round((100 + 45) / 8, 2)
    assert all(0 <= value <= 100 for value in scores.categories.values())


def test_total_is_average_of_all_categories(scoring):
    entries = [OrganizationalEntry(index, index, 10 * index) for index in range(1, 9)]
    scores = scoring.calculate_category_scores(entries)

    assert scores.total_score == round(sum(scores.categories.values()) / 8, 2)


def test_out_of_range_categories_are_ignored(scoring):
    scores = scoring.calculate_category_scores([OrganizationalEntry(1, 9, 50), OrganizationalEntry(2, 0, 50)])

    assert set(scores.categories) == set(range(1, 9))
    assert scores.total_score == 0


def test_summary_values_cover_every_column(scoring):
    values = scoring.calculate_category_scores([OrganizationalEntry(1, 3, 12.346)]).as_summary_values()

    assert values["category3_score"] == 12.35
    assert set(values) == {f"category{index}_score" for index in range(1, 9)} | {"total_score"}


def test_growth_threshold_awards_weight(scoring):
    entries = [GrowthEntry(1, 0.9), GrowthEntry(2, 0.9)]
    assert scoring.calculate_growth_question_score(entries, weight=3.0) == 3.0


def test_growth_threshold_below_average_scores_zero(scoring):
    entries = [GrowthEntry(1, 0.5), GrowthEntry(2, 0.9)]
    assert scoring.calculate_growth_question_score(entries, weight=3.0) == 0


def test_growth_threshold_boundary_is_inclusive(scoring):
    assert scoring.calculate_growth_question_score([GrowthEntry(1, 0.85)], weight=2.0) == 2.0


def test_growth_null_weight_defaults_to_one(scoring):
    assert scoring.calculate_growth_question_score([GrowthEntry(1, 1.0)], weight=None) == 1.0


def test_growth_placeholders_do_not_count_toward_average(scoring):
    entries = [GrowthEntry(1, 0.9), GrowthEntry(2, None)]

    assert scoring.calculate_average_score(entries) == 0.9
    assert scoring.calculate_growth_question_score(entries, weight=2.0) == 2.0
    assert scoring.calculate_growth_question_score([GrowthEntry(2, None)], weight=2.0) == 0


def test_growth_free_text_always_scores_zero(scoring):
    assert scoring.calculate_growth_question_score([GrowthEntry(1, 1.0)], weight=5.0, is_free_text=True) == 0


@pytest.mark.parametrize(
    "single,free_text,total,expected",
    [
        (1, 0, 2, 50.0),
        (1, 1, 3, 66.67),
        (5, 0, 4, 100.0),
        (0, 0, 0, 0.0),
        (0, 0, 10, 0.0),
    ],
)
def test_response_rate(single, free_text, total, expected):
    assert ScoringService.calculate_response_rate(single, free_text, total) == expected


def test_response_rate_is_monotonic():
    rates = [ScoringService.calculate_response_rate(answered, 0, 7) for answered in range(0, 9)]
    assert rates == sorted(rates)
    assert all(0 <= rate <= 100 for rate in rates)


def test_average_category_rollup():
    rows = [
        {"category1_score": 30, "total_score": 4},
        {"category1_score": 60, "category2_score": 20, "total_score": 10},
    ]
    rollup = ScoringService.average_category_rollup(rows)

    assert rollup[ORGANIZATIONAL_CATEGORY_NAMES[1]] == 45
    assert rollup[ORGANIZATIONAL_CATEGORY_NAMES[2]] == 10
    assert rollup[ORGANIZATIONAL_CATEGORY_NAMES[8]] == 0
    assert rollup["total"] == 7.0


def test_average_category_rollup_without_rows_is_all_null():
    rollup = ScoringService.average_category_rollup([])

    assert len(rollup) == 9
    assert all(value is None for value in rollup.values())
