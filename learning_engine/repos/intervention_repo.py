from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from learning_engine.models.risk import InterventionRecord


class InterventionRepo(Protocol):
    async def add_many(self, records: list[InterventionRecord]) -> None: ...
    async def get(self, intervention_id: UUID) -> InterventionRecord | None: ...
    async def mark_executed(
        self, intervention_id: UUID, executed_by: int, executed_at: int
    ) -> InterventionRecord | None: ...


class InMemoryInterventionRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, InterventionRecord] = {}

    async def add_many(self, records: list[InterventionRecord]) -> None:
        for record in records:
            self._by_id[record.id] = record

    async def get(self, intervention_id: UUID) -> InterventionRecord | None:
        return self._by_id.get(intervention_id)

    async def mark_executed(
        self, intervention_id: UUID, executed_by: int, executed_at: int
    ) -> InterventionRecord | None:
        """Returns the updated record, or None if the id is unknown."""
        record = self._by_id.get(intervention_id)
        if record is None:
            return None
        updated = replace(
            record,
            status="executed",
            executed_at=executed_at,
            executed_by=executed_by,
        )
        self._by_id[intervention_id] = updated
        return updated
