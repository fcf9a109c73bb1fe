"""PostgreSQL implementation of RiskAssessmentRepo."""

from __future__ import annotations

from dataclasses import asdict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learning_engine.db.engine import db_errors
from learning_engine.db.tables import RiskAssessmentRow
from learning_engine.models.risk import Intervention, RiskAssessment, RiskFactors


class PgRiskAssessmentRepo:
    """Satisfies the RiskAssessmentRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, assessment: RiskAssessment) -> None:
        row = RiskAssessmentRow(
            id=assessment.id,
            user_id=assessment.user_id,
            dropout_probability=assessment.dropout_probability,
            performance_trend=assessment.performance_trend,
            confidence_score=assessment.confidence_score,
            risk_factors=asdict(assessment.risk_factors),
            interventions_recommended=[
                asdict(i) for i in assessment.interventions_recommended
            ],
            model_version=assessment.model_version,
            created_at=assessment.created_at,
        )
        with db_errors("risk_assessment.add"):
            self._session.add(row)
            await self._session.flush()

    async def list_for_user(self, user_id: int) -> list[RiskAssessment]:
        stmt = (
            select(RiskAssessmentRow)
            .where(RiskAssessmentRow.user_id == user_id)
            .order_by(RiskAssessmentRow.created_at.desc())
        )
        with db_errors("risk_assessment.list_for_user"):
            rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_assessment(r) for r in rows]


def _row_to_assessment(row: RiskAssessmentRow) -> RiskAssessment:
    return RiskAssessment(
        id=row.id,
        user_id=row.user_id,
        dropout_probability=row.dropout_probability,
        performance_trend=row.performance_trend,  # type: ignore[arg-type]
        confidence_score=row.confidence_score,
        risk_factors=RiskFactors(**row.risk_factors),
        interventions_recommended=tuple(
            Intervention(**i) for i in row.interventions_recommended
        ),
        model_version=row.model_version,
        created_at=row.created_at,
    )
