from __future__ import annotations

import logging
from collections.abc import Callable
from uuid import UUID

from learning_engine.core.metrics import INTERVENTIONS_EXECUTED
from learning_engine.repos.store import LearningStore
from learning_engine.services.store_guard import store_call

logger = logging.getLogger(__name__)

_OPERATION = "execute_intervention"


class InterventionExecutor:
    """Marks recommended interventions as carried out.

    Pure bookkeeping: failures are logged and reported as False, never raised.
    """

    def __init__(
        self, store: LearningStore, clock: Callable[[], int], store_timeout: float
    ) -> None:
        self._store = store
        self._clock = clock
        self._store_timeout = store_timeout

    async def execute(self, intervention_id: UUID | str, executed_by: int) -> bool:
        log_ctx = {"intervention_id": str(intervention_id), "operation": _OPERATION}
        try:
            key = (
                intervention_id
                if isinstance(intervention_id, UUID)
                else UUID(intervention_id)
            )
            updated = await store_call(
                _OPERATION,
                self._store.interventions.mark_executed(key, executed_by, self._clock()),
                self._store_timeout,
            )
        except Exception:
            INTERVENTIONS_EXECUTED.labels(outcome="failed").inc()
            logger.exception(
                "Failed to execute intervention id=%s", intervention_id, extra=log_ctx
            )
            return False

        if updated is None:
            INTERVENTIONS_EXECUTED.labels(outcome="failed").inc()
            logger.warning("Unknown intervention id=%s", intervention_id, extra=log_ctx)
            return False

        INTERVENTIONS_EXECUTED.labels(outcome="executed").inc()
        logger.info(
            "Intervention executed id=%s action=%s by=%s",
            intervention_id,
            updated.action,
            executed_by,
            extra=log_ctx,
        )
        return True
