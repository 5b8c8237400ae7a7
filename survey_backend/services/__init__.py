from survey_backend.services.answer_store import AnswerStore, UserAnswer
from survey_backend.services.growth_store import GrowthAnswerStore
from survey_backend.services.organizational_store import OrganizationalAnswerStore
from survey_backend.services.progress_service import Progress, ProgressTracker
from survey_backend.services.question_bank import GrowthQuestionBank, OrganizationalQuestionBank, QuestionBank
from survey_backend.services.schema_resolver import SchemaResolver
from survey_backend.services.scoring_service import ScoringService
from survey_backend.services.survey_response_service import SurveyResponseService
from survey_backend.services.survey_service import SurveyService, build_answer_store

__all__ = [
    "AnswerStore",
    "UserAnswer",
    "GrowthAnswerStore",
    "OrganizationalAnswerStore",
    "Progress",
    "ProgressTracker",
    "QuestionBank",
    "GrowthQuestionBank",
    "OrganizationalQuestionBank",
    "SchemaResolver",
    "ScoringService",
    "SurveyResponseService",
    "SurveyService",
    "build_answer_store",
]
