"""Organizational survey question ("problem") model."""
from __future__ import annotations

from sqlalchemy import Column, Float, Integer, String, Text

from survey_backend.database import Base
from survey_backend.models.base import QuestionType, created_at_column, updated_at_column

ANSWER_OPTION_COUNT = 6


class Problem(Base):
    """Organizational question belonging to one of the fixed categories."""

    __tablename__ = "problems"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False, default="")
    content = Column(Text, nullable=False, default="")
    category_id = Column(Integer, nullable=True, index=True)  # 1-8, NULL for free text
    question_type = Column(String(20), nullable=False, default=QuestionType.SINGLE_CHOICE.value)
    answer1_score = Column(Float, nullable=True)
    answer2_score = Column(Float, nullable=True)
    answer3_score = Column(Float, nullable=True)
    answer4_score = Column(Float, nullable=True)
    answer5_score = Column(Float, nullable=True)
    answer6_score = Column(Float, nullable=True)
    display_order = Column(Integer, nullable=True)
    created_at = created_at_column()
    updated_at = updated_at_column()

    @property
    def is_free_text(self) -> bool:
        return self.question_type == QuestionType.FREE_TEXT.value

    @property
    def option_scores(self) -> list[float]:
        """Configured answer option scores, in option order, skipping unset slots."""
        scores = []
        for index in range(1, ANSWER_OPTION_COUNT + 1):
            value = getattr(self, f"answer{index}_score")
            if value is not None:
                scores.append(value)
        return scores

    def __repr__(self) -> str:
        return f"<Problem(id={self.id}, category_id={self.category_id}, type={self.question_type})>"
