"""Base utilities for SQLAlchemy models."""
from datetime import datetime, UTC
from enum import Enum

from sqlalchemy import JSON, Column, DateTime
from sqlalchemy.dialects.postgresql import JSONB


class SurveyType(str, Enum):
    """Survey type enumeration for type safety."""
    ORGANIZATIONAL = "organizational"
    GROWTH = "growth"


class SurveyStatus(str, Enum):
    """Survey lifecycle status."""
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"


class QuestionType(str, Enum):
    """Question answer style."""
    SINGLE_CHOICE = "single_choice"
    FREE_TEXT = "free_text"


class EmployeeRole(str, Enum):
    """Employee role used for admin gating."""
    EMPLOYEE = "employee"
    ADMIN = "admin"


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in development and tests)
JSONArray = JSON().with_variant(JSONB(), "postgresql")


def _utc_now() -> datetime:
    return datetime.now(UTC)


def created_at_column():
    """Column storing the row creation time."""
    return Column(DateTime(timezone=True), nullable=False, default=_utc_now)


def updated_at_column():
    """Column storing the last write time, refreshed on every ORM update."""
    return Column(DateTime(timezone=True), nullable=False, default=_utc_now, onupdate=_utc_now)
