from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class KnowledgeState:
    """Probabilistic knowledge estimate for one (user, topic) pair.

    Never deleted: the record is the learner's history on that topic.
    """

    user_id: int
    topic_id: int
    mastery_level: float = 0.1  # P(learner has acquired the skill)
    confidence: float = 0.1  # reliability of mastery_level
    attempts: int = 0
    correct_attempts: int = 0
    last_updated: int = 0

    @staticmethod
    def new(
        *,
        user_id: int,
        topic_id: int,
        mastery_level: float,
        confidence: float,
        now: int,
    ) -> KnowledgeState:
        return KnowledgeState(
            user_id=user_id,
            topic_id=topic_id,
            mastery_level=mastery_level,
            confidence=confidence,
            attempts=0,
            correct_attempts=0,
            last_updated=now,
        )

    @property
    def accuracy(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.correct_attempts / self.attempts


@dataclass(frozen=True, slots=True)
class Performance:
    """One observed attempt, as submitted by the caller."""

    content_id: str
    result: bool
    time_spent: float  # seconds
    difficulty: float
    session_id: str


@dataclass(frozen=True, slots=True)
class KnowledgeUpdate:
    topic_id: int
    mastery_level: float
    confidence: float
