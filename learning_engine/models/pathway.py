from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class LearningPathway:
    """Ordered module sequence toward one goal.

    current_position is the learner's progress pointer; regenerating the
    sequence never resets it.
    """

    id: UUID
    user_id: int
    goal_id: str
    module_sequence: tuple[str, ...] = ()
    current_position: int = 0
    created_at: int = 0
    updated_at: int = 0

    @staticmethod
    def new(
        *, user_id: int, goal_id: str, module_sequence: tuple[str, ...], now: int
    ) -> LearningPathway:
        return LearningPathway(
            id=uuid4(),
            user_id=user_id,
            goal_id=goal_id,
            module_sequence=module_sequence,
            current_position=0,
            created_at=now,
            updated_at=now,
        )
