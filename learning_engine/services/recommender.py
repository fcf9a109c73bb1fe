"""Content Recommender.

Rule-based, in priority order:

  1. Cold start     — no knowledge yet: one fundamentals item.
  2. Reinforcement  — up to two shaky topics the learner has actually
                      practiced, slightly below their current mastery.
  3. Progression    — if anything is mastered, one harder item.
  4. Fill           — adaptive items at the learner's average mastery
                      until the requested count is reached.
"""

from __future__ import annotations

from learning_engine.core.metrics import RECOMMENDATIONS_SERVED
from learning_engine.core.params import RecommenderParams, clamp
from learning_engine.models.knowledge import KnowledgeState
from learning_engine.models.recommendation import ContentRecommendation
from learning_engine.repos.store import LearningStore
from learning_engine.services.store_guard import store_call


def cold_start(params: RecommenderParams) -> list[ContentRecommendation]:
    return [
        ContentRecommendation(
            content_id="basic_introduction",
            difficulty=params.cold_start_difficulty,
            reason="Starting with fundamentals for new learner",
            confidence=params.cold_start_confidence,
        )
    ]


def build_recommendations(
    states: list[KnowledgeState], count: int, params: RecommenderParams
) -> list[ContentRecommendation]:
    """Recommendations for a learner with at least one knowledge state.

    `count` only bounds the fill step.  Reinforcement and progression
    entries are always returned, so a small request can get more items.

    `states` is in store order (most recently updated first); that order
    decides which reinforcement topics make the cut.
    """
    recommendations: list[ContentRecommendation] = []

    reinforcement = [
        s
        for s in states
        if s.mastery_level < params.reinforcement_max_mastery
        and s.attempts > params.reinforcement_min_attempts
    ]
    for state in reinforcement[: params.reinforcement_limit]:
        recommendations.append(
            ContentRecommendation(
                content_id=f"topic_{state.topic_id}_reinforcement",
                difficulty=max(
                    params.min_difficulty,
                    state.mastery_level - params.reinforcement_step_down,
                ),
                reason=f"Reinforcing knowledge in topic {state.topic_id}",
                confidence=state.confidence,
            )
        )

    mastered = [s for s in states if s.mastery_level > params.progression_min_mastery]
    if mastered:
        best = max(s.mastery_level for s in mastered)
        recommendations.append(
            ContentRecommendation(
                content_id="advanced_topic",
                difficulty=min(params.max_difficulty, best + params.progression_step_up),
                reason="Ready for more challenging content",
                confidence=params.progression_confidence,
            )
        )

    avg_mastery = sum(s.mastery_level for s in states) / len(states)
    fill_difficulty = clamp(avg_mastery, params.min_difficulty, params.max_difficulty)
    while len(recommendations) < count:
        recommendations.append(
            ContentRecommendation(
                content_id=f"adaptive_content_{len(recommendations)}",
                difficulty=fill_difficulty,
                reason="Adaptive difficulty based on overall performance",
                confidence=params.fill_confidence,
            )
        )

    return recommendations


class ContentRecommender:
    def __init__(
        self, store: LearningStore, params: RecommenderParams, store_timeout: float
    ) -> None:
        self._store = store
        self._params = params
        self._store_timeout = store_timeout

    async def recommend(self, user_id: int, count: int) -> list[ContentRecommendation]:
        states = await store_call(
            "recommend_content",
            self._store.knowledge_states.list_for_user(user_id),
            self._store_timeout,
        )
        if not states:
            RECOMMENDATIONS_SERVED.labels(strategy="cold_start").inc()
            return cold_start(self._params)
        RECOMMENDATIONS_SERVED.labels(strategy="adaptive").inc()
        return build_recommendations(states, count, self._params)
