"""Database models."""
from survey_backend.models.survey import Survey
from survey_backend.models.employee import Employee, Job
from survey_backend.models.problem import Problem
from survey_backend.models.growth_question import GrowthQuestion
from survey_backend.models.organizational_result import (
    OrganizationalSurveyResult,
    OrganizationalFreeTextResponse,
    OrganizationalSurveySummary,
)
from survey_backend.models.growth_response import GrowthSurveyResponse, GrowthFreeTextResponse
from survey_backend.models.survey_completion import SurveyCompletion

__all__ = [
    "Survey",
    "Employee",
    "Job",
    "Problem",
    "GrowthQuestion",
    "OrganizationalSurveyResult",
    "OrganizationalFreeTextResponse",
    "OrganizationalSurveySummary",
    "GrowthSurveyResponse",
    "GrowthFreeTextResponse",
    "SurveyCompletion",
]
