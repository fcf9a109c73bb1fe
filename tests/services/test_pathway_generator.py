from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from learning_engine.core.errors import StorageError, ValidationError
from learning_engine.core.params import PathwayParams
from learning_engine.models.knowledge import KnowledgeState
from learning_engine.repos.pathway_repo import InMemoryPathwayRepo
from learning_engine.repos.store import in_memory_store
from learning_engine.services.adaptive_learning import AdaptiveLearningService
from learning_engine.services.pathway_generator import build_pathway
from tests.conftest import seed_state


def _state(topic_id: int, mastery: float) -> KnowledgeState:
    return KnowledgeState(user_id=1, topic_id=topic_id, mastery_level=mastery)


# ---- build_pathway ----


def test_weak_topics_first_then_advanced() -> None:
    states = [_state(1, 0.2), _state(2, 0.9), _state(3, 0.5), _state(4, 0.7)]

    assert build_pathway(states, PathwayParams()) == [
        "topic_1",
        "topic_3",
        "advanced_topic_2",
    ]


def test_weak_topics_capped_at_five_weakest() -> None:
    states = [_state(t, 0.05 * t) for t in range(1, 9)]

    pathway = build_pathway(states, PathwayParams())

    assert pathway == ["topic_1", "topic_2", "topic_3", "topic_4", "topic_5"]


def test_no_states_gives_empty_pathway() -> None:
    assert build_pathway([], PathwayParams()) == []


def test_boundaries_are_exclusive() -> None:
    assert build_pathway([_state(1, 0.6), _state(2, 0.8)], PathwayParams()) == []


# ---- generate_learning_pathway ----


def test_generate_persists_pathway(service, store, clock) -> None:
    async def run():
        await seed_state(store, user_id=1, topic_id=1, mastery=0.2)
        await seed_state(store, user_id=1, topic_id=2, mastery=0.95)
        sequence = await service.generate_learning_pathway(1, "goal-a")
        stored = await service.get_learning_pathway(1, "goal-a")
        return sequence, stored

    sequence, stored = asyncio.run(run())

    assert sequence == ["topic_1", "advanced_topic_2"]
    assert stored is not None
    assert stored.module_sequence == ("topic_1", "advanced_topic_2")
    assert stored.current_position == 0
    assert stored.created_at == clock.now


def test_regeneration_keeps_position(service, store, clock) -> None:
    async def run():
        await seed_state(store, user_id=1, topic_id=1, mastery=0.2)
        await service.generate_learning_pathway(1, "goal-a")

        # learner advanced along the pathway
        key = (1, "goal-a")
        store.pathways._by_key[key] = replace(
            store.pathways._by_key[key], current_position=1
        )

        clock.advance(60)
        await seed_state(store, user_id=1, topic_id=2, mastery=0.1)
        await service.generate_learning_pathway(1, "goal-a")
        return await service.get_learning_pathway(1, "goal-a")

    pathway = asyncio.run(run())

    assert pathway.module_sequence == ("topic_2", "topic_1")
    assert pathway.current_position == 1
    assert pathway.updated_at == clock.now
    assert pathway.created_at == clock.now - 60


def test_goals_are_independent(service, store) -> None:
    async def run():
        await seed_state(store, user_id=1, topic_id=1, mastery=0.2)
        await service.generate_learning_pathway(1, "goal-a")
        await service.generate_learning_pathway(1, "goal-b")
        return store.pathways._by_key

    pathways = asyncio.run(run())

    assert set(pathways) == {(1, "goal-a"), (1, "goal-b")}


@pytest.mark.parametrize("goal_id", ["", "   "])
def test_empty_goal_is_rejected(service, goal_id) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(service.generate_learning_pathway(1, goal_id))


class _FailingPathwayRepo(InMemoryPathwayRepo):
    async def upsert_sequence(self, user_id, goal_id, sequence, now):
        raise StorageError("pathway.upsert")


def test_store_failure_propagates(clock) -> None:
    store = replace(in_memory_store(), pathways=_FailingPathwayRepo())
    svc = AdaptiveLearningService(store, None, clock=clock)

    with pytest.raises(StorageError):
        asyncio.run(svc.generate_learning_pathway(1, "goal-a"))
