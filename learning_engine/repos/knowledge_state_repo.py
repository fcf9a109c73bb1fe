from __future__ import annotations

from typing import Protocol

from learning_engine.models.knowledge import KnowledgeState


class KnowledgeStateRepo(Protocol):
    async def get(
        self, user_id: int, topic_id: int, *, for_update: bool = False
    ) -> KnowledgeState | None: ...
    async def list_for_user(self, user_id: int) -> list[KnowledgeState]: ...
    async def save(
        self, state: KnowledgeState, *, expected_attempts: int | None
    ) -> bool: ...
    async def delete(
        self, user_id: int, topic_id: int, *, expected_attempts: int
    ) -> bool: ...


class InMemoryKnowledgeStateRepo:
    def __init__(self) -> None:
        self._by_key: dict[tuple[int, int], KnowledgeState] = {}

    async def get(
        self, user_id: int, topic_id: int, *, for_update: bool = False
    ) -> KnowledgeState | None:
        return self._by_key.get((user_id, topic_id))

    async def list_for_user(self, user_id: int) -> list[KnowledgeState]:
        """Most recently updated first."""
        states = [s for s in self._by_key.values() if s.user_id == user_id]
        return sorted(states, key=lambda s: s.last_updated, reverse=True)

    async def save(
        self, state: KnowledgeState, *, expected_attempts: int | None
    ) -> bool:
        """Compare-and-set on attempts.

        expected_attempts=None means "insert": fails if the row exists.
        Otherwise the stored row must still have that attempt count.
        Returns False when another writer got there first.
        """
        key = (state.user_id, state.topic_id)
        current = self._by_key.get(key)
        if expected_attempts is None:
            if current is not None:
                return False
        elif current is None or current.attempts != expected_attempts:
            return False
        self._by_key[key] = state
        return True

    async def delete(
        self, user_id: int, topic_id: int, *, expected_attempts: int
    ) -> bool:
        """Remove the row only if it still has that attempt count."""
        current = self._by_key.get((user_id, topic_id))
        if current is None or current.attempts != expected_attempts:
            return False
        del self._by_key[(user_id, topic_id)]
        return True
