"""create learning engine tables

Revision ID: 3b7e1c9d2a41
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b7e1c9d2a41"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "user_knowledge_states",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("topic_id", sa.BigInteger(), nullable=False),
        sa.Column("mastery_level", sa.Float(), nullable=False, server_default="0.1"),
        sa.Column("confidence", sa.Float(), nullable=False, server_default="0.1"),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("correct_attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_updated", sa.BigInteger(), nullable=False),
        sa.UniqueConstraint("user_id", "topic_id"),
        sa.CheckConstraint("mastery_level >= 0 AND mastery_level <= 1"),
        sa.CheckConstraint("confidence >= 0 AND confidence <= 1"),
        sa.CheckConstraint("correct_attempts <= attempts"),
    )

    op.create_table(
        "learning_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("content_id", sa.String(length=255), nullable=False),
        sa.Column("session_id", sa.String(length=255), nullable=False),
        sa.Column("difficulty", sa.Float(), nullable=False),
        sa.Column("time_spent", sa.Float(), nullable=False),
        sa.Column("result", sa.Boolean(), nullable=True),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column(
            "performance_data",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
    )
    op.create_index(
        "ix_learning_events_user_ts", "learning_events", ["user_id", "timestamp"]
    )

    op.create_table(
        "user_risk_assessments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("dropout_probability", sa.Float(), nullable=False),
        sa.Column("performance_trend", sa.String(length=16), nullable=False),
        sa.Column("confidence_score", sa.Float(), nullable=False),
        sa.Column("risk_factors", postgresql.JSONB(), nullable=False),
        sa.Column(
            "interventions_recommended",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("model_version", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
    )
    op.create_index(
        "ix_user_risk_assessments_user_id", "user_risk_assessments", ["user_id"]
    )

    op.create_table(
        "interventions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column(
            "assessment_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("user_risk_assessments.id"),
            nullable=False,
        ),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False),
        sa.Column("action", sa.String(length=128), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "status", sa.String(length=16), nullable=False, server_default="pending"
        ),
        sa.Column("executed_at", sa.BigInteger(), nullable=True),
        sa.Column("executed_by", sa.BigInteger(), nullable=True),
    )

    op.create_table(
        "learning_pathways",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("goal_id", sa.String(length=255), nullable=False),
        sa.Column(
            "module_sequence",
            postgresql.ARRAY(sa.String()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("current_position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("updated_at", sa.BigInteger(), nullable=False),
        sa.UniqueConstraint("user_id", "goal_id"),
    )


def downgrade() -> None:
    op.drop_table("learning_pathways")
    op.drop_table("interventions")
    op.drop_index("ix_user_risk_assessments_user_id", table_name="user_risk_assessments")
    op.drop_table("user_risk_assessments")
    op.drop_index("ix_learning_events_user_ts", table_name="learning_events")
    op.drop_table("learning_events")
    op.drop_table("user_knowledge_states")
