"""Initial survey schema with shortened response column names.

Revision ID: 001_initial_survey_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from survey_backend.migrations.util import get_json_type, timestamp_columns


# revision identifiers, used by Alembic.
revision: str = "001_initial_survey_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    json_type = get_json_type()

    op.create_table(
        "surveys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("survey_type", sa.String(length=20), nullable=False, server_default="organizational"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("running", sa.Boolean(), nullable=False, server_default=sa.false()),
        *timestamp_columns(),
    )
    op.create_index("ix_surveys_survey_type", "surveys", ["survey_type"])

    op.create_table(
        "jobs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("code", sa.String(length=20), nullable=True),
    )

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="employee"),
        sa.Column("job_id", sa.Integer(), sa.ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True),
        *timestamp_columns("created_at"),
    )
    op.create_index("ix_employees_job_id", "employees", ["job_id"])

    op.create_table(
        "problems",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("question_type", sa.String(length=20), nullable=False, server_default="single_choice"),
        *[sa.Column(f"answer{index}_score", sa.Float(), nullable=True) for index in range(1, 7)],
        sa.Column("display_order", sa.Integer(), nullable=True),
        *timestamp_columns(),
    )
    op.create_index("ix_problems_category_id", "problems", ["category_id"])

    op.create_table(
        "growth_survey_questions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("target_jobs", json_type, nullable=True),
        sa.Column("answers", json_type, nullable=True),
        sa.Column("question_type", sa.String(length=20), nullable=False, server_default="single_choice"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("display_order", sa.Integer(), nullable=True),
        *timestamp_columns(),
    )

    op.create_table(
        "organizational_survey_results",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("uid", sa.Integer(), nullable=False),
        sa.Column("osid", sa.Integer(), nullable=False),
        sa.Column("response", json_type, nullable=False),
        sa.Column("response_rate", sa.Float(), nullable=False, server_default="0"),
        *timestamp_columns(),
    )
    op.create_index("ix_organizational_survey_results_uid", "organizational_survey_results", ["uid"])
    op.create_index("ix_organizational_survey_results_osid", "organizational_survey_results", ["osid"])
    op.create_index(
        "ix_organizational_survey_results_user_survey",
        "organizational_survey_results",
        ["uid", "osid"],
        unique=True,
    )

    op.create_table(
        "organizational_survey_free_text_responses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("uid", sa.Integer(), nullable=False),
        sa.Column("osid", sa.Integer(), nullable=False),
        sa.Column("qid", sa.Integer(), nullable=False),
        sa.Column("answer_text", sa.Text(), nullable=False),
        *timestamp_columns(),
    )
    op.create_index(
        "ix_organizational_survey_free_text_responses_osid", "organizational_survey_free_text_responses", ["osid"]
    )
    op.create_index(
        "ix_organizational_free_text_user_survey_question",
        "organizational_survey_free_text_responses",
        ["uid", "osid", "qid"],
        unique=True,
    )

    op.create_table(
        "organizational_survey_summary",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("uid", sa.Integer(), nullable=False),
        sa.Column("osid", sa.Integer(), nullable=False),
        *[sa.Column(f"category{index}_score", sa.Float(), nullable=False, server_default="0") for index in range(1, 9)],
        sa.Column("total_score", sa.Float(), nullable=False, server_default="0"),
        *timestamp_columns(),
    )
    op.create_index("ix_organizational_survey_summary_osid", "organizational_survey_summary", ["osid"])
    op.create_index(
        "ix_organizational_survey_summary_user_survey",
        "organizational_survey_summary",
        ["uid", "osid"],
        unique=True,
    )

    op.create_table(
        "growth_survey_responses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("gqid", sa.Integer(), nullable=False),
        sa.Column("gsid", sa.Integer(), nullable=False),
        sa.Column("cid", sa.String(length=100), nullable=True),
        sa.Column("result", json_type, nullable=False),
        sa.Column("total_score", sa.Float(), nullable=False, server_default="0"),
        *timestamp_columns(),
    )
    op.create_index("ix_growth_survey_responses_gqid", "growth_survey_responses", ["gqid"])
    op.create_index("ix_growth_survey_responses_gsid", "growth_survey_responses", ["gsid"])
    op.create_index(
        "ix_growth_survey_responses_question_survey",
        "growth_survey_responses",
        ["gqid", "gsid"],
        unique=True,
    )

    op.create_table(
        "growth_survey_free_text_responses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("uid", sa.Integer(), nullable=False),
        sa.Column("gsid", sa.Integer(), nullable=False),
        sa.Column("gqid", sa.Integer(), nullable=False),
        sa.Column("answer_text", sa.Text(), nullable=False),
        *timestamp_columns(),
    )
    op.create_index("ix_growth_survey_free_text_responses_gsid", "growth_survey_free_text_responses", ["gsid"])
    op.create_index(
        "ix_growth_free_text_user_survey_question",
        "growth_survey_free_text_responses",
        ["uid", "gsid", "gqid"],
        unique=True,
    )

    op.create_table(
        "survey_completions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("survey_id", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_survey_completions_survey_id", "survey_completions", ["survey_id"])
    op.create_index(
        "ix_survey_completions_user_survey",
        "survey_completions",
        ["user_id", "survey_id"],
        unique=True,
    )


def downgrade() -> None:
    for table in (
        "survey_completions",
        "growth_survey_free_text_responses",
        "growth_survey_responses",
        "organizational_survey_summary",
        "organizational_survey_free_text_responses",
        "organizational_survey_results",
        "growth_survey_questions",
        "problems",
        "employees",
        "jobs",
        "surveys",
    ):
        op.drop_table(table)
