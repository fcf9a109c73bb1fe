"""Engine metrics using the Prometheus client library.

All metrics are defined here, in one inventory.  The modules that own the
behavior import them and increment/observe at the point of action.

  COUNTER   — only goes up; use rate() for per-second figures.
  HISTOGRAM — bucketed observations; use histogram_quantile() for p95/p99.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

KNOWLEDGE_UPDATES = Counter(
    "learning_knowledge_updates_total",
    "Knowledge state updates applied, by observed result",
    ["result"],  # "correct" or "incorrect"
)

KNOWLEDGE_UPDATE_CONFLICTS = Counter(
    "learning_knowledge_update_conflicts_total",
    "Compare-and-set conflicts while saving a knowledge state",
)

RECOMMENDATIONS_SERVED = Counter(
    "learning_recommendations_total",
    "Recommendation lists produced, by strategy that triggered first",
    ["strategy"],  # "cold_start" or "adaptive"
)

RISK_ASSESSMENTS = Counter(
    "learning_risk_assessments_total",
    "Risk assessments computed, by performance trend",
    ["trend"],  # "improving", "stable", "declining"
)

INTERVENTIONS_EXECUTED = Counter(
    "learning_interventions_executed_total",
    "Intervention execution attempts by outcome",
    ["outcome"],  # "executed" or "failed"
)

STORE_ERRORS = Counter(
    "learning_store_errors_total",
    "Store failures seen by the engine, by operation",
    ["operation"],
)

CACHE_OPERATIONS = Counter(
    "learning_cache_operations_total",
    "Cache operations by result",
    ["operation"],  # "hit", "miss", "error"
)

OPERATION_DURATION = Histogram(
    "learning_operation_duration_seconds",
    "Engine operation duration in seconds",
    ["operation"],
    # Mostly a handful of store round-trips plus arithmetic.
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
