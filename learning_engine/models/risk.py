from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Literal
from uuid import UUID, uuid4

PerformanceTrend = Literal["improving", "stable", "declining"]
Priority = Literal["low", "medium", "high", "urgent"]
InterventionStatus = Literal["pending", "executed"]


@dataclass(frozen=True, slots=True)
class RiskFactors:
    """Snapshot of the inputs a risk score was computed from."""

    # None when the learner has no events in the window ("never active")
    days_since_last_activity: float | None
    avg_session_length: float
    success_rate: float
    avg_mastery: float
    total_events: int
    knowledge_state_count: int

    @property
    def never_active(self) -> bool:
        return self.days_since_last_activity is None

    def inactive_longer_than(self, days: float) -> bool:
        if self.days_since_last_activity is None:
            return True
        return self.days_since_last_activity > days


@dataclass(frozen=True, slots=True)
class Intervention:
    type: str  # immediate_support|engagement|learning_adjustment
    priority: Priority
    action: str
    message: str


@dataclass(frozen=True, slots=True)
class InterventionRecord:
    """Persisted intervention, tracked until someone carries it out."""

    id: UUID
    user_id: int
    assessment_id: UUID
    type: str
    priority: Priority
    action: str
    message: str
    status: InterventionStatus = "pending"
    executed_at: int | None = None
    executed_by: int | None = None

    @staticmethod
    def from_intervention(
        intervention: Intervention, *, user_id: int, assessment_id: UUID
    ) -> InterventionRecord:
        return InterventionRecord(
            id=uuid4(),
            user_id=user_id,
            assessment_id=assessment_id,
            type=intervention.type,
            priority=intervention.priority,
            action=intervention.action,
            message=intervention.message,
        )


@dataclass(frozen=True, slots=True)
class RiskAssessment:
    id: UUID
    user_id: int
    dropout_probability: float
    performance_trend: PerformanceTrend
    confidence_score: float
    risk_factors: RiskFactors
    interventions_recommended: tuple[Intervention, ...]
    model_version: str
    created_at: int

    @staticmethod
    def new(
        *,
        user_id: int,
        dropout_probability: float,
        performance_trend: PerformanceTrend,
        confidence_score: float,
        risk_factors: RiskFactors,
        interventions_recommended: tuple[Intervention, ...],
        model_version: str,
        created_at: int,
    ) -> RiskAssessment:
        return RiskAssessment(
            id=uuid4(),
            user_id=user_id,
            dropout_probability=dropout_probability,
            performance_trend=performance_trend,
            confidence_score=confidence_score,
            risk_factors=risk_factors,
            interventions_recommended=interventions_recommended,
            model_version=model_version,
            created_at=created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["id"] = str(self.id)
        data["interventions_recommended"] = [
            asdict(i) for i in self.interventions_recommended
        ]
        return data

    @staticmethod
    def from_dict(data: dict[str, Any]) -> RiskAssessment:
        return RiskAssessment(
            id=UUID(data["id"]),
            user_id=data["user_id"],
            dropout_probability=data["dropout_probability"],
            performance_trend=data["performance_trend"],
            confidence_score=data["confidence_score"],
            risk_factors=RiskFactors(**data["risk_factors"]),
            interventions_recommended=tuple(
                Intervention(**i) for i in data["interventions_recommended"]
            ),
            model_version=data["model_version"],
            created_at=data["created_at"],
        )
