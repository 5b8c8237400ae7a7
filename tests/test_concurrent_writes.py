"""Concurrent writers sharing one answer row must not lose each other's entries."""
import asyncio
import json

import pytest
from sqlalchemy import text

from survey_backend.config import get_settings
from survey_backend.models.base import SurveyType
from survey_backend.services.survey_response_service import SurveyResponseService


@pytest.fixture(autouse=True)
def patient_retries(monkeypatch):
    """SQLite serialises writers by failing the losers, so give them room to retry."""
    monkeypatch.setattr(get_settings(), "store_retry_attempts", 10)


async def _save_in_own_session(session_factory, resolver, survey_id, question_id, user_id, payload):
    async with session_factory() as session:
        service = SurveyResponseService(session, resolver=resolver)
        return await service.save_answer(survey_id, question_id, user_id, payload)


async def _scalar(session_factory, sql, **params):
    async with session_factory() as session:
        result = await session.execute(text(sql), params)
        return result.scalar_one()


@pytest.mark.asyncio
async def test_parallel_answers_to_one_organizational_row(session_factory, resolver, seed):
    survey = await seed.survey()
    employee = await seed.employee()
    questions = [await seed.problem(category_id=category) for category in (1, 2, 3)]

    await asyncio.gather(
        *(
            _save_in_own_session(session_factory, resolver, survey.id, question.id, employee.id, {"score": 20})
            for question in questions
        )
    )

    stored = json.loads(
        await _scalar(
            session_factory,
            "SELECT response FROM organizational_survey_results WHERE uid = :u AND osid = :s",
            u=employee.id,
            s=survey.id,
        )
    )
    assert sorted(entry["qid"] for entry in stored) == sorted(question.id for question in questions)
    assert await _scalar(session_factory, "SELECT COUNT(*) FROM organizational_survey_results") == 1
    assert await _scalar(session_factory, "SELECT COUNT(*) FROM organizational_survey_summary") == 1

    async with session_factory() as session:
        progress = await SurveyResponseService(session, resolver=resolver).get_my_responses(survey.id, employee.id)
    assert progress["completed"]


@pytest.mark.asyncio
async def test_parallel_answers_to_one_growth_question(session_factory, resolver, seed):
    survey = await seed.survey(SurveyType.GROWTH)
    employees = [await seed.employee(f"Employee {index}") for index in range(4)]
    question = await seed.growth_question(weight=2.0)

    await asyncio.gather(
        *(
            _save_in_own_session(session_factory, resolver, survey.id, question.id, employee.id, {"score": 1.0})
            for employee in employees
        )
    )

    stored = json.loads(
        await _scalar(
            session_factory,
            "SELECT result FROM growth_survey_responses WHERE gqid = :q AND gsid = :s",
            q=question.id,
            s=survey.id,
        )
    )
    assert sorted(entry["uid"] for entry in stored) == sorted(employee.id for employee in employees)
    assert await _scalar(session_factory, "SELECT COUNT(*) FROM growth_survey_responses") == 1
    assert await _scalar(session_factory, "SELECT total_score FROM growth_survey_responses") == 2.0
