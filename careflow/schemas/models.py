"""
Data Models
===========

This module defines all Pydantic models used throughout CareFlow.
Models provide:
- Validation of untrusted input (LLM task plans, guideline feeds)
- Type safety for data flowing between engine, agents and services
- Cheap copies (model_copy) so query-time scores never leak into storage

WHY Pydantic?
- Runtime type validation (catches errors early)
- Automatic JSON serialization for hosts that persist runs
- Output parsers in LangChain speak Pydantic natively
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


# =============================================================================
# Enums
# =============================================================================

class AgentCapability(str, Enum):
    """
    Capabilities an agent can be bound to.

    Each workflow step names exactly one capability:
    - SCHEDULING: Appointment slots, resource allocation, follow-ups
    - DOCUMENTATION: Transcripts, SOAP notes, discharge summaries
    - TRIAGE: Urgency assessment and request analysis
    - COMMUNICATION: Patient / staff / GP notifications
    - ADMINISTRATIVE: Registration, compliance, EHR storage, billing
    - CLINICAL_DECISION: Assessments, ICD-10 suggestions, guidance
    """
    SCHEDULING = "scheduling"
    DOCUMENTATION = "documentation"
    TRIAGE = "triage"
    COMMUNICATION = "communication"
    ADMINISTRATIVE = "administrative"
    CLINICAL_DECISION = "clinical_decision"


class SuccessPolicy(str, Enum):
    """How a workflow run's overall success is computed."""
    EXECUTED_STEPS = "executed_steps"
    ALL_STEPS = "all_steps"


# =============================================================================
# LLM Models
# =============================================================================

class SamplingParams(BaseModel):
    """Sampling parameters passed to the generation client."""
    model_config = ConfigDict(frozen=True)

    temperature: float = Field(default=0.3, ge=0.0, le=1.0)
    max_tokens: int = Field(default=2000, gt=0)


# =============================================================================
# Workflow Models
# =============================================================================

class WorkflowStep(BaseModel):
    """One named step of a workflow template, bound to a capability."""
    model_config = ConfigDict(frozen=True)

    name: str
    capability: AgentCapability
    required: bool = True
    parameters: dict[str, Any] = Field(default_factory=dict)


class WorkflowTemplate(BaseModel):
    """
    A fixed, ordered list of steps.

    Templates are defined at import time and never mutated.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Workflow type key, e.g. 'PatientAdmission'")
    display_name: str
    description: str = ""
    steps: tuple[WorkflowStep, ...]

    @property
    def capabilities(self) -> set[AgentCapability]:
        return {step.capability for step in self.steps}


class WorkflowRun(BaseModel):
    """
    Context of a single workflow execution.

    Agents read input_context and the outputs of earlier steps
    (intermediate_results, keyed by step name) from here.
    """
    id: str = Field(default_factory=new_id)
    template_name: str
    input_context: dict[str, Any] = Field(default_factory=dict)
    intermediate_results: dict[str, dict[str, Any]] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None


class StepResult(BaseModel):
    """Outcome of one executed step or task."""
    step_name: str
    task_id: Optional[str] = None
    success: bool
    output: dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    duration: float = Field(default=0.0, description="Seconds")


class WorkflowRunResult(BaseModel):
    """What callers of the workflow engine always get back."""
    run_id: str
    workflow_type: str
    success: bool
    results: list[StepResult] = Field(default_factory=list)
    duration: float = Field(default=0.0, description="Seconds")
    completed_at: datetime = Field(default_factory=utcnow)

    @property
    def executed_steps(self) -> list[str]:
        return [result.step_name for result in self.results]


class AgentTask(BaseModel):
    """
    A planned unit of work for one agent.

    dependencies is advisory only: nothing schedules by it.
    """
    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    description: str = ""
    capability: AgentCapability
    dependencies: list[str] = Field(default_factory=list)
    estimated_minutes: int = Field(default=0, ge=0)
    parameters: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Collaboration Models
# =============================================================================

class Contribution(BaseModel):
    """One agent's input to a collaboration."""
    agent_id: str
    text: str
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=utcnow)


class CollaborationResult(BaseModel):
    """Synthesized outcome of a collaboration."""
    text: str
    contribution_count: int
    confidence: float = Field(ge=0.0, le=1.0)


class Collaboration(BaseModel):
    """A completed fan-out/fan-in call across several agents."""
    id: str = Field(default_factory=new_id)
    goal: str
    participating_agents: list[str] = Field(default_factory=list)
    contributions: list[Contribution] = Field(default_factory=list)
    result: Optional[CollaborationResult] = None
    shared_data: dict[str, Any] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None


# =============================================================================
# Knowledge Models
# =============================================================================

class KnowledgeDocument(BaseModel):
    """
    An embedded document in the retrieval index.

    relevance_score is only set on the copies returned by a search.
    """
    id: str
    title: str = ""
    content: str
    source: str = "unknown"
    embedding: list[float] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    document_type: str = Field(
        default="clinical",
        description="guideline, research or clinical"
    )
    language: str = "en"
    last_updated: datetime = Field(default_factory=utcnow)
    relevance_score: Optional[float] = None


class Guideline(BaseModel):
    """An authoritative, sourced recommendation."""
    id: str
    title: str
    source: str
    key_recommendation: str
    last_updated: datetime
    url: str = ""
    conditions: list[str] = Field(default_factory=list)


class GuidelineValidation(BaseModel):
    """Soft check of a generated answer against guidelines."""
    is_compliant: bool = True
    compliance_score: float = Field(default=0.95, ge=0.0, le=1.0)
    warnings: list[str] = Field(default_factory=list)


class RAGResponse(BaseModel):
    """
    Complete answer from the RAG query service.

    There is no partial RAGResponse: a query either returns one of
    these or raises.
    """
    answer: str
    translated_answer: str
    documents: list[KnowledgeDocument] = Field(default_factory=list)
    guidelines: list[Guideline] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    confidence_score: float = Field(ge=0.0, le=1.0)
    validation: GuidelineValidation = Field(default_factory=GuidelineValidation)
    language: str = "en"
    generated_at: datetime = Field(default_factory=utcnow)

    @property
    def warnings(self) -> list[str]:
        return self.validation.warnings


class IngestionResult(BaseModel):
    """Result of ingesting one text or file."""
    document_id: str
    source: str
    chunk_count: int
    chunk_ids: list[str] = Field(default_factory=list)
