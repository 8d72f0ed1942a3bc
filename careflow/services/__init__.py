"""
Services Module
===============

Orchestration and business services:
- WorkflowEngine: Runs workflow templates step by step
- TaskPlanner: Goal → task list
- CollaborationCoordinator: Concurrent multi-agent collaboration
- RAGQueryService: Retrieval-augmented clinical question answering
- DocumentService: Document ingestion
"""

from careflow.services.collaboration import CollaborationCoordinator
from careflow.services.document_service import DocumentService
from careflow.services.rag_service import RAGQueryService
from careflow.services.task_planner import TaskPlan, TaskPlanner
from careflow.services.workflow_engine import (
    InMemoryRunCheckpointer,
    RunCheckpointer,
    WorkflowEngine,
)

__all__ = [
    "CollaborationCoordinator",
    "DocumentService",
    "InMemoryRunCheckpointer",
    "RAGQueryService",
    "RunCheckpointer",
    "TaskPlan",
    "TaskPlanner",
    "WorkflowEngine",
]
