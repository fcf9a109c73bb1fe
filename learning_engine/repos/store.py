"""The Store collaborator: one bundle of repositories per unit of work.

The engine only sees the Protocols.  Backends are swapped by building a
different bundle — in-memory for tests and local dev, PostgreSQL when a
session is available.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from learning_engine.repos.intervention_repo import (
    InMemoryInterventionRepo,
    InterventionRepo,
)
from learning_engine.repos.knowledge_state_repo import (
    InMemoryKnowledgeStateRepo,
    KnowledgeStateRepo,
)
from learning_engine.repos.learning_event_repo import (
    InMemoryLearningEventRepo,
    LearningEventRepo,
)
from learning_engine.repos.pathway_repo import InMemoryPathwayRepo, PathwayRepo
from learning_engine.repos.pg_intervention_repo import PgInterventionRepo
from learning_engine.repos.pg_knowledge_state_repo import PgKnowledgeStateRepo
from learning_engine.repos.pg_learning_event_repo import PgLearningEventRepo
from learning_engine.repos.pg_pathway_repo import PgPathwayRepo
from learning_engine.repos.pg_risk_assessment_repo import PgRiskAssessmentRepo
from learning_engine.repos.risk_assessment_repo import (
    InMemoryRiskAssessmentRepo,
    RiskAssessmentRepo,
)


@dataclass(frozen=True, slots=True)
class LearningStore:
    knowledge_states: KnowledgeStateRepo
    events: LearningEventRepo
    risk_assessments: RiskAssessmentRepo
    pathways: PathwayRepo
    interventions: InterventionRepo


def in_memory_store() -> LearningStore:
    return LearningStore(
        knowledge_states=InMemoryKnowledgeStateRepo(),
        events=InMemoryLearningEventRepo(),
        risk_assessments=InMemoryRiskAssessmentRepo(),
        pathways=InMemoryPathwayRepo(),
        interventions=InMemoryInterventionRepo(),
    )


def pg_store(session: AsyncSession) -> LearningStore:
    """All repos share one session, so one engine call is one transaction."""
    return LearningStore(
        knowledge_states=PgKnowledgeStateRepo(session),
        events=PgLearningEventRepo(session),
        risk_assessments=PgRiskAssessmentRepo(session),
        pathways=PgPathwayRepo(session),
        interventions=PgInterventionRepo(session),
    )
