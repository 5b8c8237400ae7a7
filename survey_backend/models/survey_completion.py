"""Survey completion timestamps."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, Index, Integer

from survey_backend.database import Base


class SurveyCompletion(Base):
    """Moment a user first answered every applicable question of a survey."""

    __tablename__ = "survey_completions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False)
    survey_id = Column(Integer, nullable=False, index=True)
    completed_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_survey_completions_user_survey", "user_id", "survey_id", unique=True),
    )
