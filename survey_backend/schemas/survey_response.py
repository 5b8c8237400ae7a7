"""Survey response request and response schemas."""
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from survey_backend.schemas.base import BaseSchema, UTCDateTime


class AnswerRequest(BaseModel):
    """Answer payload: a single-choice score or free text, never both."""

    score: Optional[float] = Field(default=None, strict=True)
    text: Optional[str] = Field(default=None, max_length=5000)

    @model_validator(mode="after")
    def validate_exactly_one(self):
        if (self.score is None) == (self.text is None):
            raise ValueError("Provide exactly one of score or text")
        return self

    def as_payload(self) -> dict:
        return {"score": self.score} if self.score is not None else {"text": self.text}


class ProgressResponse(BaseSchema):
    """Progress after saving an answer."""

    progress_count: int
    total_questions: int
    completed: bool
    completed_at: Optional[UTCDateTime] = None


class AnswerItem(BaseSchema):
    question_id: int
    answer_text: Optional[str] = None
    score: Optional[float] = Field(default=None, strict=True)


class MyResponsesResponse(ProgressResponse):
    """The caller's answers with progress."""

    responses: list[AnswerItem]


class DeleteAnswerResponse(BaseSchema):
    ok: bool


class EmployeeResponseStatus(ProgressResponse):
    """One employee's progress, for administrators."""

    employee_id: int
    name: str
    job_name: Optional[str] = None
    response_rate: float


class ResponseStatusResponse(BaseSchema):
    survey_id: int
    survey_type: str
    employee_count: int
    completed_count: int
    employees: list[EmployeeResponseStatus]


class DeleteSurveyResponse(BaseSchema):
    survey_id: int
    organizational_rows: int
    growth_rows: int
    completions: int
