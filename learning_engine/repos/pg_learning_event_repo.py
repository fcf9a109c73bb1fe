"""PostgreSQL implementation of LearningEventRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learning_engine.db.engine import db_errors
from learning_engine.db.tables import LearningEventRow
from learning_engine.models.learning_event import LearningEvent


class PgLearningEventRepo:
    """Satisfies the LearningEventRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, event: LearningEvent) -> None:
        row = LearningEventRow(
            id=event.id,
            user_id=event.user_id,
            event_type=event.event_type,
            content_id=event.content_id,
            session_id=event.session_id,
            difficulty=event.difficulty,
            time_spent=event.time_spent,
            result=event.result,
            timestamp=event.timestamp,
            performance_data=dict(event.performance_data),
        )
        with db_errors("learning_event.append"):
            self._session.add(row)
            await self._session.flush()

    async def recent_for_user(
        self, user_id: int, *, since: int, limit: int
    ) -> list[LearningEvent]:
        stmt = (
            select(LearningEventRow)
            .where(LearningEventRow.user_id == user_id)
            .where(LearningEventRow.timestamp >= since)
            .order_by(LearningEventRow.timestamp.desc())
            .limit(limit)
        )
        with db_errors("learning_event.recent_for_user"):
            rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_event(r) for r in rows]


def _row_to_event(row: LearningEventRow) -> LearningEvent:
    return LearningEvent(
        id=row.id,
        user_id=row.user_id,
        event_type=row.event_type,
        content_id=row.content_id,
        session_id=row.session_id,
        difficulty=row.difficulty,
        time_spent=row.time_spent,
        result=row.result,
        timestamp=row.timestamp,
        performance_data=dict(row.performance_data or {}),
    )
