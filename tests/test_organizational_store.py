"""Tests for the organizational answer store."""
import json

import pytest
from sqlalchemy import select, text

from survey_backend.models import OrganizationalSurveySummary
from survey_backend.models.base import SurveyType
from survey_backend.services.survey_service import build_answer_store
from survey_backend.utils.exceptions import ValidationError

TIMESTAMP = "2026-01-01 00:00:00"


@pytest.fixture
def store(db_session, resolver, scoring):
    return build_answer_store(SurveyType.ORGANIZATIONAL, db_session, resolver, scoring)


async def _summary(db_session, user_id, survey_id):
    result = await db_session.execute(
        select(OrganizationalSurveySummary).where(
            OrganizationalSurveySummary.uid == user_id,
            OrganizationalSurveySummary.osid == survey_id,
        )
    )
    return result.scalars().first()


async def _stored_response(db_session, user_id, survey_id):
    result = await db_session.execute(
        text("SELECT response FROM organizational_survey_results WHERE uid = :u AND osid = :s"),
        {"u": user_id, "s": survey_id},
    )
    return json.loads(result.scalar_one())


@pytest.mark.asyncio
async def test_single_answer_scores_category_and_rate(store, db_session, seed):
    survey = await seed.survey()
    employee = await seed.employee()
    q1 = await seed.problem(category_id=1)
    await seed.problem(category_id=2)

    await store.upsert_single_choice(employee.id, survey.id, q1, 30)

    row = await store.get_result_row(employee.id, survey.id)
    assert row.response_rate == 50.0
    assert [(entry.question_id, entry.category_id, entry.score) for entry in row.entries] == [(q1.id, 1, 30)]

    summary = await _summary(db_session, employee.id, survey.id)
    assert summary.category1_score == 30
    assert summary.category2_score == 0
    assert summary.total_score == 3.75


@pytest.mark.asyncio
async def test_reanswer_replaces_entry(store, db_session, seed):
    survey = await seed.survey()
    employee = await seed.employee()
    q1 = await seed.problem(category_id=1)
    await seed.problem(category_id=2)

    for score in (10, 60, 30, 30):
        await store.upsert_single_choice(employee.id, survey.id, q1, score)

    stored = await _stored_response(db_session, employee.id, survey.id)
    assert stored == [{"qid": q1.id, "cid": 1, "s": 30}]
    assert await store.answered_question_ids(employee.id, survey.id) == {q1.id}
    assert (await _summary(db_session, employee.id, survey.id)).category1_score == 30


@pytest.mark.asyncio
async def test_score_must_match_an_option(store, seed):
    survey = await seed.survey()
    employee = await seed.employee()
    q1 = await seed.problem(category_id=1)

    with pytest.raises(ValidationError):
        await store.upsert_single_choice(employee.id, survey.id, q1, 35)

    with pytest.raises(ValidationError):
        await store.upsert_single_choice(employee.id, survey.id, q1, True)

    assert await store.get_result_row(employee.id, survey.id) is None


@pytest.mark.asyncio
async def test_free_text_counts_toward_rate_but_not_scores(store, db_session, seed):
    survey = await seed.survey()
    employee = await seed.employee()
    q1 = await seed.problem(category_id=1)
    q2 = await seed.problem(free_text=True)

    await store.upsert_single_choice(employee.id, survey.id, q1, 30)
    summary_before = (await _summary(db_session, employee.id, survey.id)).summary_values()

    await store.upsert_free_text(employee.id, survey.id, q2, "  More coaching please  ")

    row = await store.get_result_row(employee.id, survey.id)
    assert row.response_rate == 100.0
    assert await store.free_text_answers(employee.id, survey.id) == {q2.id: "More coaching please"}
    assert await store.answered_question_ids(employee.id, survey.id) == {q1.id, q2.id}
    assert (await _summary(db_session, employee.id, survey.id)).summary_values() == summary_before


@pytest.mark.asyncio
async def test_free_text_validation(store, seed):
    survey = await seed.survey()
    employee = await seed.employee()
    single = await seed.problem(category_id=1)
    free = await seed.problem(free_text=True)

    with pytest.raises(ValidationError):
        await store.upsert_free_text(employee.id, survey.id, free, "   ")

    with pytest.raises(ValidationError):
        await store.upsert_free_text(employee.id, survey.id, single, "text for a scored question")

    with pytest.raises(ValidationError):
        await store.upsert_single_choice(employee.id, survey.id, free, 10)


@pytest.mark.asyncio
async def test_free_text_upsert_replaces_text(store, seed):
    survey = await seed.survey()
    employee = await seed.employee()
    free = await seed.problem(free_text=True)

    await store.upsert_free_text(employee.id, survey.id, free, "first")
    await store.upsert_free_text(employee.id, survey.id, free, "second")

    assert await store.free_text_answers(employee.id, survey.id) == {free.id: "second"}


@pytest.mark.asyncio
async def test_removing_last_answer_deletes_summary(store, db_session, seed):
    survey = await seed.survey()
    employee = await seed.employee()
    q1 = await seed.problem(category_id=1)
    q2 = await seed.problem(category_id=2)

    await store.upsert_single_choice(employee.id, survey.id, q1, 30)
    await store.upsert_single_choice(employee.id, survey.id, q2, 40)

    assert await store.remove_answer(employee.id, survey.id, q1.id)
    summary = await _summary(db_session, employee.id, survey.id)
    assert summary.category1_score == 0
    assert summary.category2_score == 40

    assert await store.remove_answer(employee.id, survey.id, q2.id)
    assert await _summary(db_session, employee.id, survey.id) is None
    assert (await store.get_result_row(employee.id, survey.id)).response_rate == 0

    assert not await store.remove_answer(employee.id, survey.id, q2.id)


@pytest.mark.asyncio
async def test_legacy_entry_shape_is_read_and_rewritten(store, db_session, seed):
    survey = await seed.survey()
    employee = await seed.employee()
    q1 = await seed.problem(category_id=1)
    q2 = await seed.problem(category_id=2)

    legacy = [{"questionId": q1.id, "categoryId": 1, "score": "20"}]
    await db_session.execute(
        text(
            "INSERT INTO organizational_survey_results (uid, osid, response, response_rate, created_at, updated_at) "
            "VALUES (:u, :s, :r, 50, :t, :t)"
        ),
        {"u": employee.id, "s": survey.id, "r": json.dumps(legacy), "t": TIMESTAMP},
    )

    row = await store.get_result_row(employee.id, survey.id)
    assert [(entry.question_id, entry.score) for entry in row.entries] == [(q1.id, 20)]

    await store.upsert_single_choice(employee.id, survey.id, q2, 50)

    assert await _stored_response(db_session, employee.id, survey.id) == [
        {"qid": q1.id, "cid": 1, "s": 20},
        {"qid": q2.id, "cid": 2, "s": 50},
    ]


@pytest.mark.asyncio
async def test_corrupt_row_reads_as_empty(store, db_session, seed):
    survey = await seed.survey()
    employee = await seed.employee()
    q1 = await seed.problem(category_id=1)

    await db_session.execute(
        text(
            "INSERT INTO organizational_survey_results (uid, osid, response, response_rate, created_at, updated_at) "
            "VALUES (:u, :s, :r, 0, :t, :t)"
        ),
        {"u": employee.id, "s": survey.id, "r": "{not json", "t": TIMESTAMP},
    )

    assert (await store.get_result_row(employee.id, survey.id)).entries == []
    assert await store.answered_question_ids(employee.id, survey.id) == set()

    await store.upsert_single_choice(employee.id, survey.id, q1, 10)
    assert await _stored_response(db_session, employee.id, survey.id) == [{"qid": q1.id, "cid": 1, "s": 10}]


@pytest.mark.asyncio
async def test_respondents_and_survey_deletion(store, db_session, seed):
    survey = await seed.survey()
    other_survey = await seed.survey()
    alice = await seed.employee("Alice")
    bob = await seed.employee("Bob")
    q1 = await seed.problem(category_id=1)
    free = await seed.problem(free_text=True)

    await store.upsert_single_choice(alice.id, survey.id, q1, 10)
    await store.upsert_free_text(bob.id, survey.id, free, "hello")
    await store.upsert_single_choice(alice.id, other_survey.id, q1, 10)

    assert await store.respondent_ids(survey.id) == {alice.id, bob.id}

    removed = await store.delete_survey_rows(survey.id)

    assert removed == 4  # two result rows, one free-text row, one summary row
    assert await store.respondent_ids(survey.id) == set()
    assert await store.respondent_ids(other_survey.id) == {alice.id}
