from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class LearningEvent:
    """Append-only event log — every learning interaction the engine saw."""

    id: UUID
    user_id: int
    event_type: str  # knowledge_update|...
    content_id: str
    session_id: str
    difficulty: float
    time_spent: float
    result: bool | None
    timestamp: int
    performance_data: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def new(
        *,
        user_id: int,
        event_type: str,
        content_id: str,
        session_id: str,
        difficulty: float,
        time_spent: float,
        result: bool | None,
        timestamp: int,
        performance_data: dict[str, Any] | None = None,
    ) -> LearningEvent:
        return LearningEvent(
            id=uuid4(),
            user_id=user_id,
            event_type=event_type,
            content_id=content_id,
            session_id=session_id,
            difficulty=difficulty,
            time_spent=time_spent,
            result=result,
            timestamp=timestamp,
            performance_data=dict(performance_data or {}),
        )
