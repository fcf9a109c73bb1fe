"""PostgreSQL implementation of KnowledgeStateRepo."""

from __future__ import annotations

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learning_engine.db.engine import db_errors
from learning_engine.db.tables import KnowledgeStateRow
from learning_engine.models.knowledge import KnowledgeState


class PgKnowledgeStateRepo:
    """Satisfies the KnowledgeStateRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(
        self, user_id: int, topic_id: int, *, for_update: bool = False
    ) -> KnowledgeState | None:
        stmt = select(KnowledgeStateRow).where(
            KnowledgeStateRow.user_id == user_id,
            KnowledgeStateRow.topic_id == topic_id,
        )
        if for_update:
            # Row lock held until the surrounding transaction ends.
            stmt = stmt.with_for_update()
        with db_errors("knowledge_state.get"):
            row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_state(row)

    async def list_for_user(self, user_id: int) -> list[KnowledgeState]:
        stmt = (
            select(KnowledgeStateRow)
            .where(KnowledgeStateRow.user_id == user_id)
            .order_by(KnowledgeStateRow.last_updated.desc())
        )
        with db_errors("knowledge_state.list_for_user"):
            rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_state(r) for r in rows]

    async def save(
        self, state: KnowledgeState, *, expected_attempts: int | None
    ) -> bool:
        """Compare-and-set on attempts. False means another writer won."""
        if expected_attempts is None:
            return await self._insert(state)

        stmt = (
            update(KnowledgeStateRow)
            .where(KnowledgeStateRow.user_id == state.user_id)
            .where(KnowledgeStateRow.topic_id == state.topic_id)
            .where(KnowledgeStateRow.attempts == expected_attempts)
            .values(
                mastery_level=state.mastery_level,
                confidence=state.confidence,
                attempts=state.attempts,
                correct_attempts=state.correct_attempts,
                last_updated=state.last_updated,
            )
        )
        with db_errors("knowledge_state.save"):
            result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def delete(
        self, user_id: int, topic_id: int, *, expected_attempts: int
    ) -> bool:
        stmt = (
            delete(KnowledgeStateRow)
            .where(KnowledgeStateRow.user_id == user_id)
            .where(KnowledgeStateRow.topic_id == topic_id)
            .where(KnowledgeStateRow.attempts == expected_attempts)
        )
        with db_errors("knowledge_state.delete"):
            result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def _insert(self, state: KnowledgeState) -> bool:
        row = KnowledgeStateRow(
            user_id=state.user_id,
            topic_id=state.topic_id,
            mastery_level=state.mastery_level,
            confidence=state.confidence,
            attempts=state.attempts,
            correct_attempts=state.correct_attempts,
            last_updated=state.last_updated,
        )
        with db_errors("knowledge_state.insert"):
            try:
                # SAVEPOINT so a lost insert race doesn't poison the transaction
                async with self._session.begin_nested():
                    self._session.add(row)
                    await self._session.flush()
            except IntegrityError:
                return False  # concurrent insert won the race
        return True


def _row_to_state(row: KnowledgeStateRow) -> KnowledgeState:
    return KnowledgeState(
        user_id=row.user_id,
        topic_id=row.topic_id,
        mastery_level=row.mastery_level,
        confidence=row.confidence,
        attempts=row.attempts,
        correct_attempts=row.correct_attempts,
        last_updated=row.last_updated,
    )
