"""Risk Assessor — dropout risk, performance trend and interventions.

The dropout score is an additive rule score over a handful of engagement
and performance signals, capped at 1.0.  It is a heuristic with fixed
weights (see RiskParams), not a trained model; the stored model_version
tag identifies which rule set produced an assessment.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from learning_engine.core.metrics import RISK_ASSESSMENTS
from learning_engine.core.params import EngineParams, RiskParams
from learning_engine.models.knowledge import KnowledgeState
from learning_engine.models.learning_event import LearningEvent
from learning_engine.models.risk import (
    Intervention,
    InterventionRecord,
    PerformanceTrend,
    RiskAssessment,
    RiskFactors,
)
from learning_engine.repos.store import LearningStore
from learning_engine.services.store_guard import store_call

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60
_OPERATION = "assess_user_risk"


def compute_risk_factors(
    events: list[LearningEvent], states: list[KnowledgeState], now: int
) -> RiskFactors:
    """`events` must be newest first."""
    if events:
        days_since = (now - events[0].timestamp) / _SECONDS_PER_DAY
    else:
        days_since = None

    sessions = [e.time_spent for e in events if e.time_spent and e.time_spent > 0]
    avg_session = sum(sessions) / len(sessions) if sessions else 0.0

    graded = [e for e in events if e.result is not None]
    success_rate = sum(1 for e in graded if e.result) / len(graded) if graded else 0.0

    avg_mastery = (
        sum(s.mastery_level for s in states) / len(states) if states else 0.0
    )

    return RiskFactors(
        days_since_last_activity=days_since,
        avg_session_length=avg_session,
        success_rate=success_rate,
        avg_mastery=avg_mastery,
        total_events=len(events),
        knowledge_state_count=len(states),
    )


def dropout_probability(factors: RiskFactors, params: RiskParams) -> float:
    risk = 0.0

    # Inactivity
    if factors.inactive_longer_than(params.inactive_high_days):
        risk += params.inactive_high_weight
    elif factors.inactive_longer_than(params.inactive_low_days):
        risk += params.inactive_low_weight

    # Performance
    if factors.success_rate < params.success_very_low:
        risk += params.success_very_low_weight
    elif factors.success_rate < params.success_low:
        risk += params.success_low_weight

    # Engagement
    if factors.avg_session_length < params.short_session_seconds:
        risk += params.short_session_weight
    if factors.total_events < params.few_events:
        risk += params.few_events_weight

    # Mastery
    if factors.avg_mastery < params.low_mastery:
        risk += params.low_mastery_weight

    return min(1.0, risk)


def _success_fraction(events: list[LearningEvent]) -> float:
    return sum(1 for e in events if e.result) / len(events)


def performance_trend(
    events: list[LearningEvent], params: RiskParams
) -> PerformanceTrend:
    """Compare the newest window of events against the window before it."""
    if len(events) < params.trend_min_events:
        return "stable"

    window = params.trend_window
    recent = events[:window]
    older = events[window : 2 * window]

    recent_rate = _success_fraction(recent)
    older_rate = _success_fraction(older) if older else recent_rate
    improvement = recent_rate - older_rate

    if improvement > params.trend_threshold:
        return "improving"
    if improvement < -params.trend_threshold:
        return "declining"
    return "stable"


def generate_interventions(
    dropout: float, factors: RiskFactors, params: RiskParams
) -> list[Intervention]:
    interventions: list[Intervention] = []

    if dropout > params.urgent_dropout:
        interventions.append(
            Intervention(
                type="immediate_support",
                priority="urgent",
                action="personal_mentor_assignment",
                message="User shows high dropout risk - assign personal mentor immediately",
            )
        )

    if factors.inactive_longer_than(params.inactive_high_days):
        interventions.append(
            Intervention(
                type="engagement",
                priority="high",
                action="send_motivation_email",
                message="User has been inactive - send motivational email with progress summary",
            )
        )

    if factors.success_rate < params.success_very_low:
        interventions.append(
            Intervention(
                type="learning_adjustment",
                priority="medium",
                action="reduce_difficulty",
                message="Reduce content difficulty to build confidence",
            )
        )

    if factors.avg_session_length < params.short_session_seconds:
        interventions.append(
            Intervention(
                type="engagement",
                priority="medium",
                action="gamification_boost",
                message="Add gamification elements to increase engagement",
            )
        )

    return interventions


def confidence_score(total_events: int, params: RiskParams) -> float:
    return min(total_events / params.confidence_events, 1.0)


class RiskAssessor:
    def __init__(
        self,
        store: LearningStore,
        params: EngineParams,
        clock: Callable[[], int],
        store_timeout: float,
    ) -> None:
        self._store = store
        self._params = params
        self._clock = clock
        self._store_timeout = store_timeout

    async def assess(self, user_id: int) -> RiskAssessment:
        risk = self._params.risk
        now = self._clock()

        events = await store_call(
            _OPERATION,
            self._store.events.recent_for_user(
                user_id,
                since=now - risk.window_days * _SECONDS_PER_DAY,
                limit=risk.max_events,
            ),
            self._store_timeout,
        )
        states = await store_call(
            _OPERATION,
            self._store.knowledge_states.list_for_user(user_id),
            self._store_timeout,
        )

        factors = compute_risk_factors(events, states, now)
        dropout = dropout_probability(factors, risk)
        assessment = RiskAssessment.new(
            user_id=user_id,
            dropout_probability=dropout,
            performance_trend=performance_trend(events, risk),
            confidence_score=confidence_score(factors.total_events, risk),
            risk_factors=factors,
            interventions_recommended=tuple(
                generate_interventions(dropout, factors, risk)
            ),
            model_version=self._params.model_version,
            created_at=now,
        )

        await store_call(
            _OPERATION,
            self._store.risk_assessments.add(assessment),
            self._store_timeout,
        )
        records = [
            InterventionRecord.from_intervention(
                i, user_id=user_id, assessment_id=assessment.id
            )
            for i in assessment.interventions_recommended
        ]
        if records:
            await store_call(
                _OPERATION,
                self._store.interventions.add_many(records),
                self._store_timeout,
            )

        RISK_ASSESSMENTS.labels(trend=assessment.performance_trend).inc()
        logger.info(
            "Risk assessed user=%s dropout=%.2f trend=%s interventions=%d",
            user_id,
            dropout,
            assessment.performance_trend,
            len(records),
            extra={"user_id": user_id, "operation": _OPERATION},
        )
        return assessment
