"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in learning_engine/models/.
Repos convert between SQLAlchemy rows and domain dataclasses.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from learning_engine.db.engine import Base


class KnowledgeStateRow(Base):
    __tablename__ = "user_knowledge_states"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    topic_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mastery_level: Mapped[float] = mapped_column(Float, nullable=False, default=0.1)
    confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.1)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    correct_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_updated: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "topic_id"),)


class LearningEventRow(Base):
    """Append-only; rows are never updated."""

    __tablename__ = "learning_events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    content_id: Mapped[str] = mapped_column(String(255), nullable=False)
    session_id: Mapped[str] = mapped_column(String(255), nullable=False)
    difficulty: Mapped[float] = mapped_column(Float, nullable=False)
    time_spent: Mapped[float] = mapped_column(Float, nullable=False)
    result: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    performance_data: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=dict
    )

    __table_args__ = (Index("ix_learning_events_user_ts", "user_id", "timestamp"),)


class RiskAssessmentRow(Base):
    __tablename__ = "user_risk_assessments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    dropout_probability: Mapped[float] = mapped_column(Float, nullable=False)
    performance_trend: Mapped[str] = mapped_column(
        String(16), nullable=False
    )  # improving|stable|declining
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False)
    risk_factors: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    interventions_recommended: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, default=list
    )
    model_version: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


class InterventionRow(Base):
    __tablename__ = "interventions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    assessment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("user_risk_assessments.id"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    priority: Mapped[str] = mapped_column(
        String(16), nullable=False
    )  # low|medium|high|urgent
    action: Mapped[str] = mapped_column(String(128), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="pending"
    )  # pending|executed
    executed_at: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    executed_by: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class LearningPathwayRow(Base):
    __tablename__ = "learning_pathways"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    goal_id: Mapped[str] = mapped_column(String(255), nullable=False)
    module_sequence: Mapped[list[str]] = mapped_column(
        ARRAY(String), nullable=False, default=[]
    )
    current_position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "goal_id"),)
