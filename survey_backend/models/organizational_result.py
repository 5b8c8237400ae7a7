"""Organizational survey response, free-text and summary models."""
from __future__ import annotations

from sqlalchemy import Column, Float, Index, Integer, Text

from survey_backend.database import Base
from survey_backend.models.base import JSONArray, created_at_column, updated_at_column


class OrganizationalSurveyResult(Base):
    """One row per (user, survey) holding the user's single-choice answers."""

    __tablename__ = "organizational_survey_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uid = Column(Integer, nullable=False, index=True)
    osid = Column(Integer, nullable=False, index=True)
    response = Column(JSONArray, nullable=False, default=list)  # [{"qid", "cid", "s"}]
    response_rate = Column(Float, nullable=False, default=0.0)
    created_at = created_at_column()
    updated_at = updated_at_column()

    __table_args__ = (
        Index("ix_organizational_survey_results_user_survey", "uid", "osid", unique=True),
    )

    def __repr__(self) -> str:
        return f"<OrganizationalSurveyResult(uid={self.uid}, osid={self.osid}, rate={self.response_rate})>"


class OrganizationalFreeTextResponse(Base):
    """Free-text answer keyed by (user, survey, question)."""

    __tablename__ = "organizational_survey_free_text_responses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uid = Column(Integer, nullable=False)
    osid = Column(Integer, nullable=False, index=True)
    qid = Column(Integer, nullable=False)
    answer_text = Column(Text, nullable=False)
    created_at = created_at_column()
    updated_at = updated_at_column()

    __table_args__ = (
        Index("ix_organizational_free_text_user_survey_question", "uid", "osid", "qid", unique=True),
    )


class OrganizationalSurveySummary(Base):
    """Derived per-user category scores, recomputed on every answer write."""

    __tablename__ = "organizational_survey_summary"

    id = Column(Integer, primary_key=True, autoincrement=True)
    uid = Column(Integer, nullable=False)
    osid = Column(Integer, nullable=False, index=True)
    category1_score = Column(Float, nullable=False, default=0.0)
    category2_score = Column(Float, nullable=False, default=0.0)
    category3_score = Column(Float, nullable=False, default=0.0)
    category4_score = Column(Float, nullable=False, default=0.0)
    category5_score = Column(Float, nullable=False, default=0.0)
    category6_score = Column(Float, nullable=False, default=0.0)
    category7_score = Column(Float, nullable=False, default=0.0)
    category8_score = Column(Float, nullable=False, default=0.0)
    total_score = Column(Float, nullable=False, default=0.0)
    created_at = created_at_column()
    updated_at = updated_at_column()

    __table_args__ = (
        Index("ix_organizational_survey_summary_user_survey", "uid", "osid", unique=True),
    )

    def category_scores(self) -> dict[int, float]:
        return {index: getattr(self, f"category{index}_score") for index in range(1, 9)}

    def summary_values(self) -> dict[str, float]:
        """Category and total scores keyed by column name."""
        values = {f"category{index}_score": score for index, score in self.category_scores().items()}
        values["total_score"] = self.total_score
        return values
