"""Survey answers and score rollups API router."""
from fastapi import APIRouter, Depends, HTTPException, Path, Query

from survey_backend.dependencies import (
    get_current_employee,
    get_survey_response_service,
    get_survey_service,
    require_admin,
)
from survey_backend.models.employee import Employee
from survey_backend.schemas.survey_response import (
    AnswerRequest,
    DeleteAnswerResponse,
    DeleteSurveyResponse,
    MyResponsesResponse,
    ProgressResponse,
    ResponseStatusResponse,
)
from survey_backend.services.survey_response_service import SurveyResponseService
from survey_backend.services.survey_service import SurveyService
import logging

logger = logging.getLogger(__name__)

router = APIRouter()


@router.put("/{survey_id}/questions/{question_id}/answer", response_model=ProgressResponse)
async def save_answer(
    request: AnswerRequest,
    survey_id: int = Path(..., ge=1),
    question_id: int = Path(..., ge=1),
    employee: Employee = Depends(get_current_employee),
    service: SurveyResponseService = Depends(get_survey_response_service),
):
    """Save or replace the caller's answer to one question."""
    progress = await service.save_answer(survey_id, question_id, employee.id, request.as_payload())
    return ProgressResponse(**progress)


@router.delete("/{survey_id}/questions/{question_id}/answer", response_model=DeleteAnswerResponse)
async def delete_answer(
    survey_id: int = Path(..., ge=1),
    question_id: int = Path(..., ge=1),
    employee: Employee = Depends(get_current_employee),
    service: SurveyResponseService = Depends(get_survey_response_service),
):
    """Remove the caller's answer to one question."""
    return DeleteAnswerResponse(**await service.delete_answer(survey_id, question_id, employee.id))


@router.get("/{survey_id}/responses/me", response_model=MyResponsesResponse)
async def get_my_responses(
    survey_id: int = Path(..., ge=1),
    user_id: int | None = Query(default=None, ge=1),
    employee: Employee = Depends(get_current_employee),
    service: SurveyResponseService = Depends(get_survey_response_service),
):
    """The caller's answers and progress. Administrators may read another employee's."""
    target_id = employee.id
    if user_id is not None and user_id != employee.id:
        if not employee.is_admin:
            raise HTTPException(status_code=403, detail="Administrator access required")
        target_id = user_id

    return MyResponsesResponse(**await service.get_my_responses(survey_id, target_id))


@router.get("/{survey_id}/category-scores")
async def get_category_scores(
    survey_id: int = Path(..., ge=1),
    employee: Employee = Depends(get_current_employee),
    service: SurveyResponseService = Depends(get_survey_response_service),
) -> dict[str, float | None]:
    """Average organizational category scores across respondents."""
    return await service.get_category_scores(survey_id)


@router.get("/{survey_id}/growth-category-scores")
async def get_growth_category_scores(
    survey_id: int = Path(..., ge=1),
    employee: Employee = Depends(get_current_employee),
    service: SurveyResponseService = Depends(get_survey_response_service),
) -> dict[str, float]:
    """Growth scores summed per category label."""
    return await service.get_growth_category_scores(survey_id)


@router.get("/{survey_id}/response-status", response_model=ResponseStatusResponse)
async def get_response_status(
    survey_id: int = Path(..., ge=1),
    admin: Employee = Depends(require_admin),
    service: SurveyResponseService = Depends(get_survey_response_service),
):
    """Per-employee progress for administrators."""
    return ResponseStatusResponse(**await service.get_response_status(survey_id))


@router.delete("/{survey_id}", response_model=DeleteSurveyResponse)
async def delete_survey(
    survey_id: int = Path(..., ge=1),
    admin: Employee = Depends(require_admin),
    service: SurveyService = Depends(get_survey_service),
):
    """Delete a survey and all of its responses."""
    logger.info(f"Admin {admin.id} deleting survey {survey_id}")
    removed = await service.delete_survey(survey_id)
    return DeleteSurveyResponse(survey_id=survey_id, **removed)
