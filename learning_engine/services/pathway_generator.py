from __future__ import annotations

from collections.abc import Callable

from learning_engine.core.params import PathwayParams
from learning_engine.models.knowledge import KnowledgeState
from learning_engine.repos.store import LearningStore
from learning_engine.services.store_guard import store_call


def build_pathway(states: list[KnowledgeState], params: PathwayParams) -> list[str]:
    """Weakest topics first (capped), then every mastered topic as an advanced module."""
    weak = sorted(
        (s for s in states if s.mastery_level < params.weak_max_mastery),
        key=lambda s: s.mastery_level,
    )[: params.weak_limit]
    strong = [s for s in states if s.mastery_level > params.strong_min_mastery]

    return [f"topic_{s.topic_id}" for s in weak] + [
        f"advanced_topic_{s.topic_id}" for s in strong
    ]


class PathwayGenerator:
    def __init__(
        self,
        store: LearningStore,
        params: PathwayParams,
        clock: Callable[[], int],
        store_timeout: float,
    ) -> None:
        self._store = store
        self._params = params
        self._clock = clock
        self._store_timeout = store_timeout

    async def generate(self, user_id: int, goal_id: str) -> list[str]:
        states = await store_call(
            "generate_learning_pathway",
            self._store.knowledge_states.list_for_user(user_id),
            self._store_timeout,
        )
        sequence = build_pathway(states, self._params)
        await store_call(
            "generate_learning_pathway",
            self._store.pathways.upsert_sequence(
                user_id, goal_id, tuple(sequence), self._clock()
            ),
            self._store_timeout,
        )
        return sequence
