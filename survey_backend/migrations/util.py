"""Dialect helpers shared by the survey migrations."""
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from alembic import op


def is_postgresql() -> bool:
    bind = op.get_bind()
    return bind is not None and bind.dialect.name == "postgresql"


def get_json_type():
    """JSONB for answer arrays on PostgreSQL; SQLite stores JSON as TEXT."""
    return JSONB() if is_postgresql() else sa.JSON()


def get_timestamp_default():
    """Server-side "now" for the current dialect (NOW() or CURRENT_TIMESTAMP)."""
    return sa.text("NOW()") if is_postgresql() else sa.text("CURRENT_TIMESTAMP")


def timestamp_columns(*names: str) -> list[sa.Column]:
    """Non-null timezone-aware timestamp columns defaulting to the insert time.

    Example:
        op.create_table("surveys", sa.Column("id", sa.Integer(), primary_key=True), *timestamp_columns())
    """
    return [
        sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=get_timestamp_default())
        for name in (names or ("created_at", "updated_at"))
    ]
