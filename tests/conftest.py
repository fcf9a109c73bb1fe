from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure repo root is on sys.path so `import learning_engine` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from learning_engine.models.knowledge import KnowledgeState  # noqa: E402
from learning_engine.repos.store import LearningStore, in_memory_store  # noqa: E402
from learning_engine.services.adaptive_learning import (  # noqa: E402
    AdaptiveLearningService,
    default_store,
)
from learning_engine.services.cache import (  # noqa: E402
    InMemoryCacheService,
    cache_service,
)

NOW = 1_760_000_000  # fixed epoch seconds for deterministic tests


class FakeClock:
    """Settable clock shared by the engine (int seconds) and the cache."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear the module-level cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]
        cache_service._tags.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_default_store() -> None:
    """Empty the process-wide in-memory store between tests."""
    default_store.knowledge_states._by_key.clear()  # type: ignore[attr-defined]
    default_store.events._events.clear()  # type: ignore[attr-defined]
    default_store.risk_assessments._assessments.clear()  # type: ignore[attr-defined]
    default_store.pathways._by_key.clear()  # type: ignore[attr-defined]
    default_store.interventions._by_id.clear()  # type: ignore[attr-defined]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> LearningStore:
    return in_memory_store()


@pytest.fixture
def cache(clock: FakeClock) -> InMemoryCacheService:
    return InMemoryCacheService(clock=clock)


@pytest.fixture
def service(
    store: LearningStore, cache: InMemoryCacheService, clock: FakeClock
) -> AdaptiveLearningService:
    return AdaptiveLearningService(store, cache, clock=clock)


# ---------------------------------------------------------------------------
# Seeding helpers
# ---------------------------------------------------------------------------


async def seed_state(
    store: LearningStore,
    *,
    user_id: int,
    topic_id: int,
    mastery: float,
    attempts: int = 0,
    correct: int = 0,
    confidence: float = 0.1,
    last_updated: int = NOW,
) -> KnowledgeState:
    state = KnowledgeState(
        user_id=user_id,
        topic_id=topic_id,
        mastery_level=mastery,
        confidence=confidence,
        attempts=attempts,
        correct_attempts=correct,
        last_updated=last_updated,
    )
    saved = await store.knowledge_states.save(state, expected_attempts=None)
    assert saved
    return state
