"""Survey model."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, Date, Integer, String

from survey_backend.database import Base
from survey_backend.models.base import SurveyStatus, SurveyType, created_at_column, updated_at_column


class Survey(Base):
    """A typed questionnaire instance.

    Only ``running`` gates answer writes; the date range is informational.
    """

    __tablename__ = "surveys"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    survey_type = Column(String(20), nullable=False, default=SurveyType.ORGANIZATIONAL.value, index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default=SurveyStatus.DRAFT.value)
    running = Column(Boolean, nullable=False, default=False)
    created_at = created_at_column()
    updated_at = updated_at_column()

    @property
    def kind(self) -> SurveyType:
        return SurveyType(self.survey_type)

    def __repr__(self) -> str:
        return f"<Survey(id={self.id}, type={self.survey_type}, status={self.status}, running={self.running})>"
