from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from learning_engine.core.errors import StorageError, ValidationError
from learning_engine.core.params import RecommenderParams
from learning_engine.models.knowledge import KnowledgeState, Performance
from learning_engine.repos.knowledge_state_repo import InMemoryKnowledgeStateRepo
from learning_engine.repos.store import in_memory_store
from learning_engine.services.adaptive_learning import AdaptiveLearningService
from learning_engine.services.recommender import build_recommendations
from tests.conftest import NOW, seed_state


def _state(topic_id: int, mastery: float, attempts: int, confidence: float = 0.4):
    return KnowledgeState(
        user_id=1,
        topic_id=topic_id,
        mastery_level=mastery,
        confidence=confidence,
        attempts=attempts,
        correct_attempts=attempts,
        last_updated=NOW - topic_id,
    )


# ---- build_recommendations ----


def test_reinforcement_progression_and_fill() -> None:
    states = [_state(1, 0.5, 3), _state(2, 0.9, 5), _state(3, 0.4, 1)]

    recs = build_recommendations(states, 5, RecommenderParams())

    assert [r.content_id for r in recs] == [
        "topic_1_reinforcement",
        "advanced_topic",
        "adaptive_content_2",
        "adaptive_content_3",
        "adaptive_content_4",
    ]
    assert recs[0].difficulty == pytest.approx(0.3)
    assert recs[0].confidence == pytest.approx(0.4)
    assert recs[1].difficulty == pytest.approx(0.9)
    assert recs[1].confidence == pytest.approx(0.8)
    # fill sits at the learner's average mastery
    assert recs[2].difficulty == pytest.approx(0.6)
    assert recs[2].confidence == pytest.approx(0.6)


def test_reinforcement_requires_more_than_two_attempts() -> None:
    recs = build_recommendations([_state(1, 0.5, 2)], 3, RecommenderParams())
    assert all("reinforcement" not in r.content_id for r in recs)


def test_reinforcement_limited_to_two_topics() -> None:
    states = [_state(t, 0.4, 4) for t in (1, 2, 3)]

    recs = build_recommendations(states, 5, RecommenderParams())

    reinforcement = [r for r in recs if r.content_id.endswith("_reinforcement")]
    assert [r.content_id for r in reinforcement] == [
        "topic_1_reinforcement",
        "topic_2_reinforcement",
    ]


def test_reinforcement_difficulty_has_floor() -> None:
    recs = build_recommendations([_state(1, 0.15, 3)], 1, RecommenderParams())
    assert recs[0].difficulty == pytest.approx(0.1)


def test_small_request_keeps_reinforcement_and_progression() -> None:
    states = [_state(1, 0.5, 3), _state(2, 0.6, 3), _state(3, 0.95, 3)]

    recs = build_recommendations(states, 1, RecommenderParams())

    assert [r.content_id for r in recs] == [
        "topic_1_reinforcement",
        "topic_2_reinforcement",
        "advanced_topic",
    ]


def test_fill_content_ids_are_unique() -> None:
    recs = build_recommendations([_state(1, 0.05, 0)], 8, RecommenderParams())

    ids = [r.content_id for r in recs]
    assert len(ids) == 8
    assert len(set(ids)) == 8
    # low average mastery is raised to the difficulty floor
    assert all(r.difficulty == pytest.approx(0.1) for r in recs)


# ---- recommend_content ----


def test_cold_start_for_new_learner(service) -> None:
    recs = asyncio.run(service.recommend_content(99))

    assert len(recs) == 1
    assert recs[0].content_id == "basic_introduction"
    assert recs[0].difficulty == pytest.approx(0.1)
    assert recs[0].confidence == pytest.approx(0.9)
    assert recs[0].reason == "Starting with fundamentals for new learner"


def test_zero_recommendations_returns_empty(service) -> None:
    assert asyncio.run(service.recommend_content(1, num_recommendations=0)) == []


def test_negative_count_is_rejected(service) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(service.recommend_content(1, num_recommendations=-1))


def test_non_integer_count_is_rejected(service) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(service.recommend_content(1, num_recommendations=2.5))  # type: ignore[arg-type]


def test_recommendations_respect_requested_count(service, store) -> None:
    async def run():
        await seed_state(store, user_id=1, topic_id=1, mastery=0.5, attempts=3)
        return await service.recommend_content(1, num_recommendations=3)

    recs = asyncio.run(run())

    assert len(recs) == 3
    for r in recs:
        assert 0.0 <= r.difficulty <= 1.0
        assert 0.0 <= r.confidence <= 1.0


def test_recommendations_are_cached(service, store, cache) -> None:
    async def run():
        await seed_state(store, user_id=1, topic_id=1, mastery=0.5, attempts=3)
        first = await service.recommend_content(1, num_recommendations=3)
        # changed directly in the store, bypassing invalidation
        await store.knowledge_states.save(
            replace(
                await store.knowledge_states.get(1, 1), mastery_level=0.95, attempts=4
            ),
            expected_attempts=3,
        )
        second = await service.recommend_content(1, num_recommendations=3)
        return first, second

    first, second = asyncio.run(run())

    assert second == first
    assert asyncio.run(cache.get("recommendations:1:all:3")) is not None


def test_knowledge_update_invalidates_recommendations(service) -> None:
    perf = Performance(
        content_id="c1", result=True, time_spent=60.0, difficulty=0.3, session_id="s"
    )

    async def run():
        before = await service.recommend_content(1)
        await service.update_knowledge_state(1, 4, perf)
        after = await service.recommend_content(1)
        return before, after

    before, after = asyncio.run(run())

    assert [r.content_id for r in before] == ["basic_introduction"]
    assert len(after) == 5
    assert "basic_introduction" not in [r.content_id for r in after]


class _FailingRepo(InMemoryKnowledgeStateRepo):
    async def list_for_user(self, user_id):
        raise StorageError("knowledge_state.list_for_user")


def test_store_failure_degrades_to_empty(clock) -> None:
    store = replace(in_memory_store(), knowledge_states=_FailingRepo())
    svc = AdaptiveLearningService(store, None, clock=clock)

    assert asyncio.run(svc.recommend_content(1)) == []


class _BrokenCache:
    async def get(self, key):
        raise RuntimeError("cache down")

    async def set(self, key, value, ttl_seconds, tags=()):
        raise RuntimeError("cache down")

    async def delete(self, key):
        raise RuntimeError("cache down")

    async def invalidate_by_tags(self, tags):
        raise RuntimeError("cache down")

    async def health_check(self):
        raise RuntimeError("cache down")


def test_cache_failure_does_not_fail_recommendations(store, clock) -> None:
    svc = AdaptiveLearningService(store, _BrokenCache(), clock=clock)

    recs = asyncio.run(svc.recommend_content(1))

    assert [r.content_id for r in recs] == ["basic_introduction"]
    assert asyncio.run(svc.cache_healthy()) is False
