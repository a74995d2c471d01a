"""Initial schema: surveys and survey responses.

Revision ID: 001
Revises:
Create Date: 2026-10-17 09:00:00.000000

WHAT: Creates the tables the analytics and export endpoints read.

HOW: Creates two tables:
- surveys: Survey definitions with fixed and dynamic questions
- survey_responses: Individual responses with answers keyed by question ID
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

# JSONB on PostgreSQL, plain JSON elsewhere
JSONDocument = sa.JSON().with_variant(JSONB(), "postgresql")


def upgrade() -> None:
    """Create surveys and survey_responses with their indexes."""
    op.create_table(
        "surveys",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("target_language", sa.String(16), nullable=True),
        sa.Column("questions", JSONDocument, nullable=False),
        sa.Column("dynamic_questions", JSONDocument, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_surveys_owner_id", "surveys", ["owner_id"])

    op.create_table(
        "survey_responses",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("survey_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=True),
        sa.Column("language", sa.String(16), nullable=False, server_default="en"),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("completion_time_ms", sa.Integer(), nullable=True),
        sa.Column("answers", JSONDocument, nullable=False),
        sa.ForeignKeyConstraint(["survey_id"], ["surveys.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_survey_responses_survey_id", "survey_responses", ["survey_id"])
    op.create_index(
        "ix_survey_responses_submitted_at", "survey_responses", ["submitted_at"]
    )


def downgrade() -> None:
    """Drop survey tables."""
    op.drop_index("ix_survey_responses_submitted_at", table_name="survey_responses")
    op.drop_index("ix_survey_responses_survey_id", table_name="survey_responses")
    op.drop_table("survey_responses")
    op.drop_index("ix_surveys_owner_id", table_name="surveys")
    op.drop_table("surveys")
