"""Growth survey question model."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, Float, Integer, String, Text

from survey_backend.database import Base
from survey_backend.models.base import JSONArray, QuestionType, created_at_column, updated_at_column


class GrowthQuestion(Base):
    """Growth question with a free-form category, optional weight and job targeting."""

    __tablename__ = "growth_survey_questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_text = Column(Text, nullable=False)
    category = Column(String(100), nullable=True)
    weight = Column(Float, nullable=True)
    target_jobs = Column(JSONArray, nullable=True)  # list of job names; empty = visible to all
    answers = Column(JSONArray, nullable=True)  # list of {"text": str, "score": number|null}
    question_type = Column(String(20), nullable=False, default=QuestionType.SINGLE_CHOICE.value)
    is_active = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=True)
    created_at = created_at_column()
    updated_at = updated_at_column()

    @property
    def is_free_text(self) -> bool:
        return self.question_type == QuestionType.FREE_TEXT.value

    def __repr__(self) -> str:
        return f"<GrowthQuestion(id={self.id}, category={self.category}, type={self.question_type})>"
