"""Tests for progress tracking and completion timestamps."""
from datetime import UTC

import pytest
from sqlalchemy import select

from survey_backend.models import OrganizationalSurveySummary, SurveyCompletion
from survey_backend.models.base import SurveyType
from survey_backend.services.progress_service import Progress, ProgressTracker, is_complete
from survey_backend.services.survey_service import build_answer_store
from survey_backend.utils.datetime_helpers import ensure_utc, utc_now


@pytest.fixture
def tracker(db_session):
    return ProgressTracker(db_session)


def test_is_complete_requires_questions():
    assert not is_complete(0, 0)
    assert not is_complete(1, 2)
    assert is_complete(2, 2)


def test_progress_payload_and_rate():
    progress = Progress(answered=1, total=3, completed=False)

    assert progress.response_rate == 33.33
    assert progress.to_dict() == {
        "progress_count": 1,
        "total_questions": 3,
        "completed": False,
        "completed_at": None,
    }


@pytest.mark.asyncio
async def test_completion_recorded_once_and_cleared(tracker, db_session, resolver, seed):
    survey = await seed.survey()
    employee = await seed.employee()
    q1 = await seed.problem(category_id=1)
    q2 = await seed.problem(category_id=2)
    store = build_answer_store(SurveyType.ORGANIZATIONAL, db_session, resolver)

    await store.upsert_single_choice(employee.id, survey.id, q1, 10)
    progress = await tracker.sync_completion(store, employee.id, survey.id)
    assert (progress.answered, progress.total, progress.completed) == (1, 2, False)
    assert progress.completed_at is None

    await store.upsert_single_choice(employee.id, survey.id, q2, 20)
    completed = await tracker.sync_completion(store, employee.id, survey.id)
    assert completed.completed
    assert completed.completed_at.tzinfo == UTC

    await store.upsert_single_choice(employee.id, survey.id, q1, 30)
    again = await tracker.sync_completion(store, employee.id, survey.id)
    assert again.completed_at == completed.completed_at

    await store.remove_answer(employee.id, survey.id, q2.id)
    reopened = await tracker.sync_completion(store, employee.id, survey.id)
    assert not reopened.completed
    assert reopened.completed_at is None

    result = await db_session.execute(select(SurveyCompletion))
    assert result.scalars().all() == []


@pytest.mark.asyncio
async def test_completed_at_falls_back_to_summary_update(tracker, db_session, resolver, seed):
    survey = await seed.survey()
    employee = await seed.employee()
    question = await seed.problem()
    store = build_answer_store(SurveyType.ORGANIZATIONAL, db_session, resolver)

    await store.upsert_single_choice(employee.id, survey.id, question, 10)
    progress = await tracker.get_progress(store, employee.id, survey.id)

    result = await db_session.execute(
        select(OrganizationalSurveySummary.updated_at).where(OrganizationalSurveySummary.uid == employee.id)
    )
    assert progress.completed
    assert progress.completed_at == ensure_utc(result.scalar_one())


@pytest.mark.asyncio
async def test_completed_at_falls_back_to_now(tracker, db_session, resolver, seed):
    survey = await seed.survey(SurveyType.GROWTH)
    employee = await seed.employee()
    question = await seed.growth_question()
    store = build_answer_store(SurveyType.GROWTH, db_session, resolver)

    before = utc_now()
    await store.upsert_single_choice(employee.id, survey.id, question, 1.0)
    progress = await tracker.get_progress(store, employee.id, survey.id)

    assert progress.completed
    assert progress.completed_at >= before


@pytest.mark.asyncio
async def test_growth_progress_counts_targeted_questions(db_session, resolver, seed):
    survey = await seed.survey(SurveyType.GROWTH)
    engineering = await seed.job("Engineering")
    engineer = await seed.employee("Eng", job=engineering)
    unassigned = await seed.employee("Unassigned")
    shared = await seed.growth_question()
    await seed.growth_question(target_jobs=["Engineering"])
    sales_only = await seed.growth_question(target_jobs=["Sales"])
    await seed.growth_question(is_active=False)
    store = build_answer_store(SurveyType.GROWTH, db_session, resolver)
    tracker = ProgressTracker(db_session)

    assert await store.questions.count_applicable(engineer.id) == 2
    assert await store.questions.count_applicable(unassigned.id) == 1
    assert await store.questions.get_question_for_user(engineer.id, sales_only.id) is None
    assert await store.questions.get_question_for_user(unassigned.id, sales_only.id) is None
    assert await store.questions.get_question_for_user(unassigned.id, shared.id) is not None

    await store.upsert_single_choice(engineer.id, survey.id, shared, 0.5)
    progress = await tracker.get_progress(store, engineer.id, survey.id)
    assert (progress.answered, progress.total) == (1, 2)


@pytest.mark.asyncio
async def test_delete_survey_completions(tracker, db_session, resolver, seed):
    survey = await seed.survey()
    employee = await seed.employee()
    question = await seed.problem()
    store = build_answer_store(SurveyType.ORGANIZATIONAL, db_session, resolver)

    await store.upsert_single_choice(employee.id, survey.id, question, 10)
    await tracker.sync_completion(store, employee.id, survey.id)

    assert await tracker.delete_survey_completions(survey.id) == 1
    assert await tracker.get_completed_at(employee.id, survey.id) is not None
