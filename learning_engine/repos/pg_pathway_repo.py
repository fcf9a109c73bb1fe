"""PostgreSQL implementation of PathwayRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from learning_engine.db.engine import db_errors
from learning_engine.db.tables import LearningPathwayRow
from learning_engine.models.pathway import LearningPathway


class PgPathwayRepo:
    """Satisfies the PathwayRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: int, goal_id: str) -> LearningPathway | None:
        stmt = select(LearningPathwayRow).where(
            LearningPathwayRow.user_id == user_id,
            LearningPathwayRow.goal_id == goal_id,
        )
        with db_errors("pathway.get"):
            row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_pathway(row)

    async def upsert_sequence(
        self, user_id: int, goal_id: str, sequence: tuple[str, ...], now: int
    ) -> LearningPathway:
        # ON CONFLICT only touches the sequence and updated_at, so
        # current_position survives regeneration.
        stmt = (
            insert(LearningPathwayRow)
            .values(
                user_id=user_id,
                goal_id=goal_id,
                module_sequence=list(sequence),
                current_position=0,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_update(
                index_elements=["user_id", "goal_id"],
                set_={"module_sequence": list(sequence), "updated_at": now},
            )
            .returning(LearningPathwayRow)
            .execution_options(populate_existing=True)
        )
        with db_errors("pathway.upsert_sequence"):
            row = (await self._session.execute(stmt)).scalar_one()
        return _row_to_pathway(row)


def _row_to_pathway(row: LearningPathwayRow) -> LearningPathway:
    return LearningPathway(
        id=row.id,
        user_id=row.user_id,
        goal_id=row.goal_id,
        module_sequence=tuple(row.module_sequence) if row.module_sequence else (),
        current_position=row.current_position,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
