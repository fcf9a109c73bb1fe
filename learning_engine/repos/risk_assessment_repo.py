from __future__ import annotations

from typing import Protocol

from learning_engine.models.risk import RiskAssessment


class RiskAssessmentRepo(Protocol):
    async def add(self, assessment: RiskAssessment) -> None: ...
    async def list_for_user(self, user_id: int) -> list[RiskAssessment]: ...


class InMemoryRiskAssessmentRepo:
    def __init__(self) -> None:
        self._assessments: list[RiskAssessment] = []

    async def add(self, assessment: RiskAssessment) -> None:
        self._assessments.append(assessment)

    async def list_for_user(self, user_id: int) -> list[RiskAssessment]:
        """Newest first; history is never overwritten."""
        return [a for a in reversed(self._assessments) if a.user_id == user_id]
