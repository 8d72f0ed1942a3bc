"""
Pydantic Schemas
================

Data models for workflows, agents, collaborations and knowledge retrieval.
"""

from careflow.schemas.models import (
    AgentCapability,
    AgentTask,
    Collaboration,
    CollaborationResult,
    Contribution,
    Guideline,
    GuidelineValidation,
    IngestionResult,
    KnowledgeDocument,
    RAGResponse,
    SamplingParams,
    StepResult,
    SuccessPolicy,
    WorkflowRun,
    WorkflowRunResult,
    WorkflowStep,
    WorkflowTemplate,
)

__all__ = [
    "AgentCapability",
    "AgentTask",
    "Collaboration",
    "CollaborationResult",
    "Contribution",
    "Guideline",
    "GuidelineValidation",
    "IngestionResult",
    "KnowledgeDocument",
    "RAGResponse",
    "SamplingParams",
    "StepResult",
    "SuccessPolicy",
    "WorkflowRun",
    "WorkflowRunResult",
    "WorkflowStep",
    "WorkflowTemplate",
]
