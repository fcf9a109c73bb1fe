from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from learning_engine.models.pathway import LearningPathway


class PathwayRepo(Protocol):
    async def get(self, user_id: int, goal_id: str) -> LearningPathway | None: ...
    async def upsert_sequence(
        self, user_id: int, goal_id: str, sequence: tuple[str, ...], now: int
    ) -> LearningPathway: ...


class InMemoryPathwayRepo:
    def __init__(self) -> None:
        self._by_key: dict[tuple[int, str], LearningPathway] = {}

    async def get(self, user_id: int, goal_id: str) -> LearningPathway | None:
        return self._by_key.get((user_id, goal_id))

    async def upsert_sequence(
        self, user_id: int, goal_id: str, sequence: tuple[str, ...], now: int
    ) -> LearningPathway:
        existing = self._by_key.get((user_id, goal_id))
        if existing is None:
            pathway = LearningPathway.new(
                user_id=user_id, goal_id=goal_id, module_sequence=sequence, now=now
            )
        else:
            # current_position is the learner's pointer, leave it alone
            pathway = replace(existing, module_sequence=sequence, updated_at=now)
        self._by_key[(user_id, goal_id)] = pathway
        return pathway
