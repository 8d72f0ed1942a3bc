"""
Pytest Configuration and Shared Fixtures

Provides fake LLMs, fake embeddings and stub agents so the suite runs
without any model provider.
"""

import asyncio
from typing import Any, Optional
from unittest.mock import AsyncMock, Mock

import pytest
from langchain_core.embeddings import Embeddings
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from careflow.agents.registry import AgentRegistry
from careflow.config import get_settings
from careflow.knowledge.guideline_source import NullGuidelineSource
from careflow.knowledge.knowledge_store import KnowledgeStore
from careflow.llm.generation import GenerationClient
from careflow.schemas.models import (
    AgentCapability,
    AgentTask,
    Contribution,
    StepResult,
    WorkflowRun,
    WorkflowStep,
)
from careflow.services.rag_service import RAGQueryService
from careflow.vectorstore.embeddings import EmbeddingClient
from careflow.vectorstore.retrieval_index import RetrievalIndex


@pytest.fixture(autouse=True)
def fresh_settings():
    """Every test sees settings built from its own environment."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Fake models
# =============================================================================

class KeywordEmbeddings(Embeddings):
    """One dimension per vocabulary word, valued by its occurrence count."""

    def __init__(self, vocabulary: list[str]):
        self.vocabulary = vocabulary
        self.calls: list[str] = []

    def embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        lowered = text.lower()
        return [float(lowered.count(word)) for word in self.vocabulary]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(text) for text in texts]


def failing_llm(error: Exception) -> Mock:
    """A chat model stand-in whose ainvoke always raises."""
    llm = Mock()
    llm.ainvoke = AsyncMock(side_effect=error)
    return llm


@pytest.fixture
def fake_llm():
    return FakeListChatModel(responses=["Mock LLM response."])


@pytest.fixture
def generation_client(fake_llm):
    return GenerationClient(llm=fake_llm)


@pytest.fixture
def keyword_embeddings():
    return KeywordEmbeddings(["diabetes", "hypertension", "metformin", "hyperglycemia"])


@pytest.fixture
def embedding_client(keyword_embeddings):
    return EmbeddingClient(embeddings=keyword_embeddings)


# =============================================================================
# Stub agents
# =============================================================================

class StubAgent:
    """
    Minimal agent for engine, registry and collaboration tests.

    fail_steps: step names that return a failed StepResult
    raise_on_contribute: exception raised from contribute_to_collaboration
    """

    def __init__(
        self,
        capability: AgentCapability,
        agent_id: Optional[str] = None,
        fail_steps: Optional[set[str]] = None,
        raise_on_contribute: Optional[Exception] = None,
        confidence: float = 0.9,
        delay: float = 0.0,
    ):
        self.capability = capability
        self.agent_id = agent_id or f"{capability.value}-stub"
        self.agent_name = self.agent_id
        self.fail_steps = fail_steps or set()
        self.raise_on_contribute = raise_on_contribute
        self.confidence = confidence
        self.delay = delay
        self.executed: list[str] = []
        self.seen_results: list[dict[str, Any]] = []

    async def execute_step(self, step: WorkflowStep, run: WorkflowRun) -> StepResult:
        self.executed.append(step.name)
        self.seen_results.append(dict(run.intermediate_results))
        if step.name in self.fail_steps:
            return StepResult(step_name=step.name, success=False, error=f"{step.name} failed")
        return StepResult(step_name=step.name, success=True, output={"done": step.name})

    async def execute_task(self, task: AgentTask, run: Optional[WorkflowRun] = None) -> StepResult:
        self.executed.append(task.name)
        return StepResult(step_name=task.name, task_id=task.id, success=True)

    async def contribute_to_collaboration(self, goal: str, workspace: dict[str, Any]) -> Contribution:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.raise_on_contribute is not None:
            raise self.raise_on_contribute
        workspace[self.agent_id] = goal
        return Contribution(
            agent_id=self.agent_id,
            text=f"{self.agent_id} on {goal}",
            confidence=self.confidence,
        )


@pytest.fixture
def stub_agents():
    return {capability: StubAgent(capability) for capability in AgentCapability}


@pytest.fixture
def stub_registry(stub_agents):
    return AgentRegistry(stub_agents.values())


# =============================================================================
# RAG
# =============================================================================

@pytest.fixture
def rag_service(embedding_client, generation_client):
    return RAGQueryService(
        embedding_client=embedding_client,
        index=RetrievalIndex(),
        knowledge_store=KnowledgeStore(),
        generation_client=generation_client,
        guideline_source=NullGuidelineSource(),
    )
