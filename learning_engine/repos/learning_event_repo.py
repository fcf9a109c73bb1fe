from __future__ import annotations

from typing import Protocol

from learning_engine.models.learning_event import LearningEvent


class LearningEventRepo(Protocol):
    async def append(self, event: LearningEvent) -> None: ...
    async def recent_for_user(
        self, user_id: int, *, since: int, limit: int
    ) -> list[LearningEvent]: ...


class InMemoryLearningEventRepo:
    def __init__(self) -> None:
        self._events: list[LearningEvent] = []

    async def append(self, event: LearningEvent) -> None:
        self._events.append(event)

    async def recent_for_user(
        self, user_id: int, *, since: int, limit: int
    ) -> list[LearningEvent]:
        """Events at or after `since`, newest first, at most `limit`."""
        matching = [
            e for e in self._events if e.user_id == user_id and e.timestamp >= since
        ]
        matching.sort(key=lambda e: e.timestamp, reverse=True)
        return matching[:limit]
