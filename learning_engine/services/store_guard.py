from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from learning_engine.core.errors import StorageError, StorageTimeoutError
from learning_engine.core.metrics import STORE_ERRORS

T = TypeVar("T")


async def store_call(operation: str, call: Awaitable[T], timeout: float) -> T:
    """Await one store call under a deadline.

    A timeout surfaces as StorageTimeoutError, never as an empty result.
    """
    try:
        async with asyncio.timeout(timeout):
            return await call
    except TimeoutError:
        STORE_ERRORS.labels(operation=operation).inc()
        raise StorageTimeoutError(operation) from None
    except StorageError:
        STORE_ERRORS.labels(operation=operation).inc()
        raise
