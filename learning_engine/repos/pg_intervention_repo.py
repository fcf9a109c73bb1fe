"""PostgreSQL implementation of InterventionRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learning_engine.db.engine import db_errors
from learning_engine.db.tables import InterventionRow
from learning_engine.models.risk import InterventionRecord


class PgInterventionRepo:
    """Satisfies the InterventionRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_many(self, records: list[InterventionRecord]) -> None:
        rows = [
            InterventionRow(
                id=r.id,
                user_id=r.user_id,
                assessment_id=r.assessment_id,
                type=r.type,
                priority=r.priority,
                action=r.action,
                message=r.message,
                status=r.status,
                executed_at=r.executed_at,
                executed_by=r.executed_by,
            )
            for r in records
        ]
        with db_errors("intervention.add_many"):
            self._session.add_all(rows)
            await self._session.flush()

    async def get(self, intervention_id: UUID) -> InterventionRecord | None:
        stmt = select(InterventionRow).where(InterventionRow.id == intervention_id)
        with db_errors("intervention.get"):
            row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_record(row)

    async def mark_executed(
        self, intervention_id: UUID, executed_by: int, executed_at: int
    ) -> InterventionRecord | None:
        stmt = (
            update(InterventionRow)
            .where(InterventionRow.id == intervention_id)
            .values(
                status="executed",
                executed_at=executed_at,
                executed_by=executed_by,
            )
        )
        with db_errors("intervention.mark_executed"):
            result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get(intervention_id)


def _row_to_record(row: InterventionRow) -> InterventionRecord:
    return InterventionRecord(
        id=row.id,
        user_id=row.user_id,
        assessment_id=row.assessment_id,
        type=row.type,
        priority=row.priority,  # type: ignore[arg-type]
        action=row.action,
        message=row.message,
        status=row.status,  # type: ignore[arg-type]
        executed_at=row.executed_at,
        executed_by=row.executed_by,
    )
