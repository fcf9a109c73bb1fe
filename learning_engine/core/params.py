"""Fixed model constants for the adaptive learning engine.

The knowledge model and the risk/recommendation rules are hand-tuned
heuristics, not trained models.  Every threshold lives here so tests can
pin them and operators can tune them without touching engine logic.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class BKTParams:
    """Bayesian Knowledge Tracing parameters.

    p_init:     prior probability the learner already knows the topic
                (also the starting mastery_level of a new state).
    p_transit:  probability of learning the skill on each observation.
    p_slip:     probability a learner who knows the skill answers wrong.
    p_guess:    probability a learner without the skill answers right.
    """

    p_init: float = 0.1
    p_transit: float = 0.1
    p_slip: float = 0.1
    p_guess: float = 0.25
    initial_confidence: float = 0.1
    # attempts needed before the consistency factor saturates at 1.0
    confidence_attempts: int = 10


@dataclass(frozen=True, slots=True)
class RecommenderParams:
    reinforcement_max_mastery: float = 0.7
    reinforcement_min_attempts: int = 2
    reinforcement_limit: int = 2
    reinforcement_step_down: float = 0.2
    progression_min_mastery: float = 0.8
    progression_step_up: float = 0.2
    progression_confidence: float = 0.8
    fill_confidence: float = 0.6
    min_difficulty: float = 0.1
    max_difficulty: float = 0.9
    cold_start_difficulty: float = 0.1
    cold_start_confidence: float = 0.9
    cache_ttl_seconds: int = 600


@dataclass(frozen=True, slots=True)
class RiskParams:
    window_days: int = 30
    max_events: int = 100
    inactive_high_days: float = 7
    inactive_low_days: float = 3
    inactive_high_weight: float = 0.3
    inactive_low_weight: float = 0.1
    success_very_low: float = 0.3
    success_low: float = 0.5
    success_very_low_weight: float = 0.4
    success_low_weight: float = 0.2
    short_session_seconds: float = 300
    short_session_weight: float = 0.2
    few_events: int = 5
    few_events_weight: float = 0.1
    low_mastery: float = 0.3
    low_mastery_weight: float = 0.2
    urgent_dropout: float = 0.7
    trend_min_events: int = 5
    trend_window: int = 10
    trend_threshold: float = 0.1
    # events needed for a fully confident assessment
    confidence_events: int = 20
    cache_ttl_seconds: int = 1800


@dataclass(frozen=True, slots=True)
class PathwayParams:
    weak_max_mastery: float = 0.6
    weak_limit: int = 5
    strong_min_mastery: float = 0.8


@dataclass(frozen=True, slots=True)
class EngineParams:
    bkt: BKTParams = field(default_factory=BKTParams)
    recommender: RecommenderParams = field(default_factory=RecommenderParams)
    risk: RiskParams = field(default_factory=RiskParams)
    pathway: PathwayParams = field(default_factory=PathwayParams)
    model_version: str = "1.0"
    # compare-and-set retries before a knowledge update gives up
    max_update_retries: int = 3


DEFAULT_PARAMS = EngineParams()


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))
