"""Adaptive learning engine — the five operations callers see.

  update_knowledge_state     Tracker: BKT update + event log + cache invalidation
  recommend_content          Recommender (read-through cached, advisory)
  assess_user_risk           Risk Assessor (read-through cached, persisted)
  generate_learning_pathway  Pathway Generator (upsert)
  execute_intervention       Intervention Executor (never raises)

The service is built per unit of work around a LearningStore and a cache
backend (constructor injection).  This module adds the cross-cutting
parts: input validation, read-through caching, operation timing, and the
per-operation failure policy:

  - StorageError propagates from update/assess/pathway.
  - recommend_content logs StorageError and returns [].
  - execute_intervention returns False.
  - Cache failures never surface (see SafeCache).
"""

from __future__ import annotations

import datetime
import logging
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from learning_engine.core.config import SETTINGS
from learning_engine.core.errors import StorageError, ValidationError
from learning_engine.core.metrics import OPERATION_DURATION
from learning_engine.core.params import EngineParams
from learning_engine.models.knowledge import KnowledgeState, KnowledgeUpdate, Performance
from learning_engine.models.pathway import LearningPathway
from learning_engine.models.recommendation import ContentRecommendation
from learning_engine.models.risk import RiskAssessment
from learning_engine.repos.store import LearningStore, in_memory_store, pg_store
from learning_engine.services.cache import CacheService, SafeCache, cache_service
from learning_engine.services.intervention_executor import InterventionExecutor
from learning_engine.services.knowledge_tracker import KnowledgeTracker
from learning_engine.services.pathway_generator import PathwayGenerator
from learning_engine.services.recommender import ContentRecommender
from learning_engine.services.risk_assessor import RiskAssessor
from learning_engine.services.store_guard import store_call

logger = logging.getLogger(__name__)


def _utc_now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


@contextmanager
def _timed(operation: str) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        OPERATION_DURATION.labels(operation=operation).observe(
            time.perf_counter() - start
        )


class AdaptiveLearningService:
    def __init__(
        self,
        store: LearningStore,
        cache: CacheService | None = None,
        *,
        params: EngineParams | None = None,
        clock: Callable[[], int] = _utc_now,
        store_timeout: float | None = None,
    ) -> None:
        self._store = store
        self._cache = SafeCache(cache)
        self._params = params or EngineParams(model_version=SETTINGS.model_version)
        timeout = store_timeout or SETTINGS.store_timeout_seconds
        self._store_timeout = timeout

        self._tracker = KnowledgeTracker(store, self._cache, self._params, clock, timeout)
        self._recommender = ContentRecommender(store, self._params.recommender, timeout)
        self._risk = RiskAssessor(store, self._params, clock, timeout)
        self._pathways = PathwayGenerator(store, self._params.pathway, clock, timeout)
        self._executor = InterventionExecutor(store, clock, timeout)

    # ------------------------------------------------------------------
    # Knowledge State Tracker
    # ------------------------------------------------------------------

    async def update_knowledge_state(
        self, user_id: int, topic_id: int, performance: Performance
    ) -> KnowledgeUpdate:
        """Apply one observed attempt to the learner's topic estimate.

        Not idempotent: the same observation submitted twice counts twice.
        Callers needing at-most-once semantics must dedupe before calling.
        """
        operation = "update_knowledge_state"
        with _timed(operation):
            try:
                return await self._tracker.update(user_id, topic_id, performance)
            except StorageError as exc:
                logger.error(
                    "Knowledge update failed user=%s topic=%s: %s",
                    user_id,
                    topic_id,
                    exc,
                    extra={"user_id": user_id, "topic_id": topic_id, "operation": operation},
                )
                raise

    # ------------------------------------------------------------------
    # Content Recommender
    # ------------------------------------------------------------------

    async def recommend_content(
        self,
        user_id: int,
        current_topic: int | None = None,
        num_recommendations: int = 5,
    ) -> list[ContentRecommendation]:
        operation = "recommend_content"
        if isinstance(num_recommendations, bool) or not isinstance(
            num_recommendations, int
        ):
            raise ValidationError("num_recommendations must be an integer")
        if num_recommendations < 0:
            raise ValidationError("num_recommendations must be >= 0")
        if num_recommendations == 0:
            return []

        topic_part = current_topic if current_topic is not None else "all"
        cache_key = f"recommendations:{user_id}:{topic_part}:{num_recommendations}"

        with _timed(operation):
            cached = await self._cache.get_json(cache_key)
            if cached is not None:
                return [ContentRecommendation.from_dict(r) for r in cached]

            try:
                recommendations = await self._recommender.recommend(
                    user_id, num_recommendations
                )
            except StorageError as exc:
                logger.error(
                    "Recommendations unavailable user=%s: %s",
                    user_id,
                    exc,
                    extra={"user_id": user_id, "operation": operation},
                )
                return []

            await self._cache.set_json(
                cache_key,
                [r.to_dict() for r in recommendations],
                self._params.recommender.cache_ttl_seconds,
                tags=(f"user:{user_id}:recommendations", f"user:{user_id}:knowledge"),
            )
            return recommendations

    # ------------------------------------------------------------------
    # Risk Assessor
    # ------------------------------------------------------------------

    async def assess_user_risk(self, user_id: int) -> RiskAssessment:
        operation = "assess_user_risk"
        cache_key = f"risk:assessment:{user_id}"

        with _timed(operation):
            cached = await self._cache.get_json(cache_key)
            if cached is not None:
                return RiskAssessment.from_dict(cached)

            try:
                assessment = await self._risk.assess(user_id)
            except StorageError as exc:
                logger.error(
                    "Risk assessment failed user=%s: %s",
                    user_id,
                    exc,
                    extra={"user_id": user_id, "operation": operation},
                )
                raise

            await self._cache.set_json(
                cache_key,
                assessment.to_dict(),
                self._params.risk.cache_ttl_seconds,
                tags=(
                    f"user:{user_id}:risk",
                    f"user:{user_id}:knowledge",
                    f"user:{user_id}:events",
                ),
            )
            return assessment

    # ------------------------------------------------------------------
    # Pathway Generator
    # ------------------------------------------------------------------

    async def generate_learning_pathway(self, user_id: int, goal_id: str) -> list[str]:
        operation = "generate_learning_pathway"
        if not goal_id or not goal_id.strip():
            raise ValidationError("goal_id must be non-empty")

        with _timed(operation):
            try:
                sequence = await self._pathways.generate(user_id, goal_id)
            except StorageError as exc:
                logger.error(
                    "Pathway generation failed user=%s goal=%s: %s",
                    user_id,
                    goal_id,
                    exc,
                    extra={"user_id": user_id, "goal_id": goal_id, "operation": operation},
                )
                raise

        logger.info(
            "Pathway generated user=%s goal=%s modules=%d",
            user_id,
            goal_id,
            len(sequence),
            extra={"user_id": user_id, "goal_id": goal_id, "operation": operation},
        )
        return sequence

    # ------------------------------------------------------------------
    # Intervention Executor
    # ------------------------------------------------------------------

    async def execute_intervention(
        self, intervention_id: UUID | str, executed_by: int
    ) -> bool:
        with _timed("execute_intervention"):
            return await self._executor.execute(intervention_id, executed_by)

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_knowledge_states(self, user_id: int) -> list[KnowledgeState]:
        return await store_call(
            "get_knowledge_states",
            self._store.knowledge_states.list_for_user(user_id),
            self._store_timeout,
        )

    async def get_learning_pathway(
        self, user_id: int, goal_id: str
    ) -> LearningPathway | None:
        return await store_call(
            "get_learning_pathway",
            self._store.pathways.get(user_id, goal_id),
            self._store_timeout,
        )

    async def cache_healthy(self) -> bool:
        return await self._cache.health_check()


# ---------------------------------------------------------------------------
# Module-level wiring
# ---------------------------------------------------------------------------
# Without a database session the engine runs on one process-wide in-memory
# store (local dev, tests).  With PostgreSQL, build one service per session.

default_store = in_memory_store()


def create_service(session: AsyncSession | None = None) -> AdaptiveLearningService:
    store = pg_store(session) if session is not None else default_store
    return AdaptiveLearningService(store, cache_service)
