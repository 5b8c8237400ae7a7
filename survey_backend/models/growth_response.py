"""Growth survey response and free-text models."""
from __future__ import annotations

from sqlalchemy import Column, Float, Index, Integer, String, Text

from survey_backend.database import Base
from survey_backend.models.base import JSONArray, created_at_column, updated_at_column


class GrowthSurveyResponse(Base):
    """One row per (question, survey) holding every respondent's answer."""

    __tablename__ = "growth_survey_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    gqid = Column(Integer, nullable=False, index=True)
    gsid = Column(Integer, nullable=False, index=True)
    cid = Column(String(100), nullable=True)  # category label
    result = Column(JSONArray, nullable=False, default=list)  # [{"uid", "s"}]
    total_score = Column(Float, nullable=False, default=0.0)
    created_at = created_at_column()
    updated_at = updated_at_column()

    __table_args__ = (
        Index("ix_growth_survey_responses_question_survey", "gqid", "gsid", unique=True),
    )

    def __repr__(self) -> str:
        return f"<GrowthSurveyResponse(gqid={self.gqid}, gsid={self.gsid}, total_score={self.total_score})>"


class GrowthFreeTextResponse(Base):
    """Free-text growth answer keyed by (user, survey, question)."""

    __tablename__ = "growth_survey_free_text_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uid = Column(Integer, nullable=False)
    gsid = Column(Integer, nullable=False, index=True)
    gqid = Column(Integer, nullable=False)
    answer_text = Column(Text, nullable=False)
    created_at = created_at_column()
    updated_at = updated_at_column()

    __table_args__ = (
        Index("ix_growth_free_text_user_survey_question", "uid", "gsid", "gqid", unique=True),
    )
