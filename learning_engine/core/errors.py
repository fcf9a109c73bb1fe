"""Error taxonomy for the adaptive learning engine.

ValidationError — malformed input; raised before any store call.
StorageError    — the store failed or timed out.  Propagated by the
                  tracker, risk assessor and pathway generator; the
                  recommender degrades to [] and the intervention
                  executor degrades to False.
CacheError      — never escapes the engine; logged and treated as a miss.
"""

from __future__ import annotations


class LearningEngineError(Exception):
    pass


class ValidationError(LearningEngineError, ValueError):
    pass


class StorageError(LearningEngineError):
    def __init__(self, operation: str, message: str = "store operation failed") -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class StorageTimeoutError(StorageError):
    def __init__(self, operation: str) -> None:
        super().__init__(operation, "store call timed out")


class ConcurrentUpdateError(StorageError):
    """Compare-and-set on a knowledge state kept losing to another writer."""

    def __init__(self, operation: str) -> None:
        super().__init__(operation, "concurrent update conflict")


class CacheError(LearningEngineError):
    pass
