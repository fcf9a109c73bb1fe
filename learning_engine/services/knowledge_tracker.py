"""Knowledge State Tracker — Bayesian Knowledge Tracing.

BKT models each (learner, topic) pair as a hidden binary state: the skill
is either known or not.  After every observed attempt we apply Bayes'
rule to the current estimate P(known) and then a learning transition:

  correct:    P' = P(1-slip) / [P(1-slip) + (1-P)guess]
  incorrect:  P' = P·slip    / [P·slip    + (1-P)(1-guess)]
  transition: P'' = P' + (1-P')·transit

The update is a read-modify-write on one row.  Two observations for the
same pair must not race, so every update holds an in-process lock for
the pair AND saves with a compare-and-set on `attempts`; a lost CAS
re-reads the row and reapplies the observation to the fresh state.

A saved state and its knowledge_update event go together.  If the event
append fails, the row is put back (or removed, for a first observation)
under the same compare-and-set before the error propagates, so a caller
retry counts the observation once.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Callable
from dataclasses import replace

from learning_engine.core.errors import (
    ConcurrentUpdateError,
    StorageError,
    ValidationError,
)
from learning_engine.core.metrics import (
    KNOWLEDGE_UPDATE_CONFLICTS,
    KNOWLEDGE_UPDATES,
    STORE_ERRORS,
)
from learning_engine.core.params import BKTParams, EngineParams, clamp
from learning_engine.models.knowledge import KnowledgeState, KnowledgeUpdate, Performance
from learning_engine.models.learning_event import LearningEvent
from learning_engine.repos.store import LearningStore
from learning_engine.services.cache import SafeCache
from learning_engine.services.store_guard import store_call

logger = logging.getLogger(__name__)

_OPERATION = "update_knowledge_state"

# One lock per (user, topic), shared by every tracker in the process so
# per-request service instances still serialize.  Entries vanish once no
# update holds them.
_KEY_LOCKS: weakref.WeakValueDictionary[tuple[int, int], asyncio.Lock] = (
    weakref.WeakValueDictionary()
)


def bkt_update(p_know: float, result: bool, params: BKTParams) -> float:
    """One BKT observation step followed by the learning transition."""
    if result:
        known = p_know * (1 - params.p_slip)
        p_know = known / (known + (1 - p_know) * params.p_guess)
    else:
        known = p_know * params.p_slip
        p_know = known / (known + (1 - p_know) * (1 - params.p_guess))
    return p_know + (1 - p_know) * params.p_transit


def compute_confidence(attempts: int, correct_attempts: int, params: BKTParams) -> float:
    """Confidence grows with attempt count and with distance of accuracy from 50%."""
    if attempts == 0:
        return 0.0
    accuracy = correct_attempts / attempts
    consistency = min(attempts / params.confidence_attempts, 1.0)
    accuracy_signal = abs(accuracy - 0.5) * 2
    return clamp(consistency * accuracy_signal)


def apply_observation(
    state: KnowledgeState, result: bool, params: BKTParams, now: int
) -> KnowledgeState:
    attempts = state.attempts + 1
    correct_attempts = state.correct_attempts + (1 if result else 0)
    return replace(
        state,
        mastery_level=clamp(bkt_update(state.mastery_level, result, params)),
        confidence=compute_confidence(attempts, correct_attempts, params),
        attempts=attempts,
        correct_attempts=correct_attempts,
        last_updated=now,
    )


def knowledge_tags(user_id: int, topic_id: int) -> tuple[str, ...]:
    """Every cache tag whose entries depend on this learner's knowledge state."""
    return (
        f"user:{user_id}:knowledge",
        f"user:{user_id}:recommendations",
        f"user:{user_id}:risk",
        f"user:{user_id}:events",
        f"topic:{topic_id}",
    )


def validate_performance(performance: Performance) -> None:
    if not performance.content_id:
        raise ValidationError("content_id must be non-empty")
    if performance.time_spent < 0:
        raise ValidationError("time_spent must be >= 0")
    if not 0.0 <= performance.difficulty <= 1.0:
        raise ValidationError("difficulty must be within [0, 1]")


class KnowledgeTracker:
    def __init__(
        self,
        store: LearningStore,
        cache: SafeCache,
        params: EngineParams,
        clock: Callable[[], int],
        store_timeout: float,
    ) -> None:
        self._store = store
        self._cache = cache
        self._params = params
        self._clock = clock
        self._store_timeout = store_timeout

    def _lock_for(self, user_id: int, topic_id: int) -> asyncio.Lock:
        key = (user_id, topic_id)
        lock = _KEY_LOCKS.get(key)
        if lock is None:
            lock = asyncio.Lock()
            _KEY_LOCKS[key] = lock
        return lock

    async def update(
        self, user_id: int, topic_id: int, performance: Performance
    ) -> KnowledgeUpdate:
        validate_performance(performance)
        log_ctx = {"user_id": user_id, "topic_id": topic_id, "operation": _OPERATION}

        async with self._lock_for(user_id, topic_id):
            stored, previous, updated = await self._save_with_retry(
                user_id, topic_id, performance
            )

            event = LearningEvent.new(
                user_id=user_id,
                event_type="knowledge_update",
                content_id=performance.content_id,
                session_id=performance.session_id,
                difficulty=performance.difficulty,
                time_spent=performance.time_spent,
                result=performance.result,
                timestamp=updated.last_updated,
                performance_data={
                    "topic_id": topic_id,
                    "previous_mastery": previous.mastery_level,
                    "new_mastery": updated.mastery_level,
                    "result": performance.result,
                    "time_spent": performance.time_spent,
                },
            )
            try:
                await store_call(
                    _OPERATION, self._store.events.append(event), self._store_timeout
                )
            except StorageError:
                # The state must not advance without its event.
                await self._undo_save(stored, updated)
                raise

        KNOWLEDGE_UPDATES.labels(
            result="correct" if performance.result else "incorrect"
        ).inc()
        await self._cache.invalidate_by_tags(knowledge_tags(user_id, topic_id))

        logger.info(
            "Knowledge updated user=%s topic=%s mastery=%.4f->%.4f attempts=%d",
            user_id,
            topic_id,
            previous.mastery_level,
            updated.mastery_level,
            updated.attempts,
            extra=log_ctx,
        )
        return KnowledgeUpdate(
            topic_id=topic_id,
            mastery_level=updated.mastery_level,
            confidence=updated.confidence,
        )

    async def _save_with_retry(
        self, user_id: int, topic_id: int, performance: Performance
    ) -> tuple[KnowledgeState | None, KnowledgeState, KnowledgeState]:
        """Returns (stored row before the update or None, base state, new state)."""
        bkt = self._params.bkt
        repo = self._store.knowledge_states

        for attempt in range(self._params.max_update_retries):
            current = await store_call(
                _OPERATION,
                repo.get(user_id, topic_id, for_update=True),
                self._store_timeout,
            )
            now = self._clock()
            if current is None:
                previous = KnowledgeState.new(
                    user_id=user_id,
                    topic_id=topic_id,
                    mastery_level=bkt.p_init,
                    confidence=bkt.initial_confidence,
                    now=now,
                )
                expected = None
            else:
                previous = current
                expected = current.attempts

            updated = apply_observation(previous, performance.result, bkt, now)
            saved = await store_call(
                _OPERATION,
                repo.save(updated, expected_attempts=expected),
                self._store_timeout,
            )
            if saved:
                return current, previous, updated

            KNOWLEDGE_UPDATE_CONFLICTS.inc()
            logger.warning(
                "Knowledge state changed underneath update user=%s topic=%s retry=%d",
                user_id,
                topic_id,
                attempt + 1,
                extra={"user_id": user_id, "operation": _OPERATION},
            )

        STORE_ERRORS.labels(operation=_OPERATION).inc()
        raise ConcurrentUpdateError(_OPERATION)

    async def _undo_save(
        self, stored: KnowledgeState | None, updated: KnowledgeState
    ) -> None:
        repo = self._store.knowledge_states
        if stored is None:
            call = repo.delete(
                updated.user_id, updated.topic_id, expected_attempts=updated.attempts
            )
        else:
            call = repo.save(stored, expected_attempts=updated.attempts)
        try:
            restored = await store_call(_OPERATION, call, self._store_timeout)
        except StorageError:
            restored = False
        if not restored:
            logger.error(
                "Could not restore knowledge state after event log failure "
                "user=%s topic=%s attempts=%d",
                updated.user_id,
                updated.topic_id,
                updated.attempts,
                extra={"user_id": updated.user_id, "operation": _OPERATION},
            )
