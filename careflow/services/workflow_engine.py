"""
Workflow Engine
===============

The engine is the "conductor" of CareFlow. It runs a named workflow
template step by step, handing each step to the agent bound to the
step's capability.

PIPELINE FLOW:

    ┌──────────────┐
    │ workflow_type│
    │ + context    │
    └──────┬───────┘
           │
    ┌──────▼───────┐
    │   Template   │ ──► Fixed, ordered steps
    │   lookup     │
    └──────┬───────┘
           │
    ┌──────▼───────┐
    │  For each    │ ──► registry.resolve(step.capability)
    │  step        │ ──► agent.execute_step(step, run)
    └──────┬───────┘ ──► run.intermediate_results[step.name] = output
           │
    ┌──────▼───────────┐
    │ Required step    │──Yes──► stop, skip remaining steps
    │ failed?          │
    └──────┬───────────┘
           │No
    ┌──────▼───────┐
    │ Run result   │ ──► success per SuccessPolicy
    └──────────────┘

Steps run strictly sequentially: later steps read the outputs of
earlier ones, so there is nothing to parallelize within a run.

WHY A CHECKPOINTER?
The engine keeps no durable state. A host that needs to resume or
audit runs passes a RunCheckpointer, which sees every StepResult as
soon as the step finishes.
"""

import logging
import time
from typing import Any, Optional, Protocol

from careflow.agents.registry import AgentRegistry
from careflow.config import get_settings
from careflow.errors import AgentNotFound, UnknownWorkflowType
from careflow.schemas.models import (
    AgentTask,
    StepResult,
    SuccessPolicy,
    WorkflowRun,
    WorkflowRunResult,
    WorkflowStep,
    WorkflowTemplate,
    utcnow,
)
from careflow.workflows.templates import WORKFLOW_TEMPLATES

logger = logging.getLogger(__name__)


# =============================================================================
# Checkpointing
# =============================================================================

class RunCheckpointer(Protocol):
    """Receives run progress as it happens."""

    async def save_step(self, run: WorkflowRun, result: StepResult) -> None:
        ...

    async def save_run(self, run: WorkflowRun, result: WorkflowRunResult) -> None:
        ...


class InMemoryRunCheckpointer:
    """Keeps checkpoints in process memory (tests, single-process hosts)."""

    def __init__(self):
        self.steps: dict[str, list[StepResult]] = {}
        self.runs: dict[str, WorkflowRunResult] = {}

    async def save_step(self, run: WorkflowRun, result: StepResult) -> None:
        self.steps.setdefault(run.id, []).append(result)

    async def save_run(self, run: WorkflowRun, result: WorkflowRunResult) -> None:
        self.runs[run.id] = result


# =============================================================================
# Engine
# =============================================================================

class WorkflowEngine:
    """
    Executes workflow templates against an agent registry.

    Usage:
        engine = WorkflowEngine(create_default_registry())
        result = await engine.execute_workflow(
            "PatientAdmission",
            {"patient_info": "54yo male", "symptoms": "chest pain"},
        )
        result.success, result.executed_steps
    """

    def __init__(
        self,
        registry: AgentRegistry,
        success_policy: Optional[SuccessPolicy] = None,
        checkpointer: Optional[RunCheckpointer] = None,
        templates: Optional[dict[str, WorkflowTemplate]] = None,
    ):
        """
        Initialize the engine and validate every template.

        Args:
            registry: Capability → agent bindings
            success_policy: How run success is computed (settings default)
            checkpointer: Optional sink for step and run results
            templates: Template catalog (built-in templates by default)

        Raises:
            AgentNotFound: If a template step has no bound agent
        """
        self._registry = registry
        self._success_policy = SuccessPolicy(
            success_policy or get_settings().workflow_success_policy
        )
        self._checkpointer = checkpointer
        self._templates = templates if templates is not None else WORKFLOW_TEMPLATES

        self._registry.validate_templates(self._templates.values())

        logger.info(
            f"Workflow engine initialized with {len(self._templates)} templates "
            f"(success policy: {self._success_policy.value})"
        )

    @property
    def success_policy(self) -> SuccessPolicy:
        return self._success_policy

    @property
    def workflow_types(self) -> list[str]:
        return list(self._templates)

    async def execute_workflow(
        self,
        workflow_type: str,
        input_context: Optional[dict[str, Any]] = None,
    ) -> WorkflowRunResult:
        """
        Run a workflow template to completion, its first required failure,
        or the first step with no agent (which always fails the run).

        Args:
            workflow_type: Template key, e.g. "PatientAdmission"
            input_context: Caller data visible to every step

        Returns:
            WorkflowRunResult with one StepResult per executed step

        Raises:
            UnknownWorkflowType: If workflow_type has no template
        """
        template = self._templates.get(workflow_type)
        if template is None:
            raise UnknownWorkflowType(workflow_type)

        run = WorkflowRun(
            template_name=template.name,
            input_context=dict(input_context or {}),
        )
        start_time = time.perf_counter()

        logger.info(f"Starting workflow {template.name} (run {run.id})")

        executed: list[tuple[WorkflowStep, StepResult]] = []
        aborted = False

        for step in template.steps:
            result, resolved = await self._run_step(step, run)
            executed.append((step, result))
            run.intermediate_results[step.name] = result.output

            if self._checkpointer is not None:
                await self._checkpointer.save_step(run, result)

            if not resolved:
                logger.error(f"Aborting run {run.id}: no agent for step {step.name}")
                aborted = True
                break

            if not result.success and step.required:
                logger.warning(
                    f"Required step {step.name} failed, aborting run {run.id}: {result.error}"
                )
                break

            if not result.success:
                logger.info(f"Optional step {step.name} failed, continuing")

        run.completed_at = utcnow()
        run_result = WorkflowRunResult(
            run_id=run.id,
            workflow_type=template.name,
            success=not aborted and self._is_success(template, executed),
            results=[result for _, result in executed],
            duration=time.perf_counter() - start_time,
            completed_at=run.completed_at,
        )

        if self._checkpointer is not None:
            await self._checkpointer.save_run(run, run_result)

        logger.info(
            f"Workflow {template.name} finished: success={run_result.success}, "
            f"steps={len(run_result.results)}/{len(template.steps)}, "
            f"duration={run_result.duration:.3f}s"
        )
        return run_result

    async def execute_agent_task(
        self,
        task: AgentTask,
        run: Optional[WorkflowRun] = None,
    ) -> StepResult:
        """
        Dispatch one planned task to the agent for its capability.

        Never raises: an unknown capability or an agent error comes back
        as a failed StepResult.
        """
        start_time = time.perf_counter()
        try:
            agent = self._registry.resolve(task.capability)
            return await agent.execute_task(task, run)
        except Exception as e:
            logger.error(f"Task {task.name} failed: {type(e).__name__}: {e}")
            return StepResult(
                step_name=task.name,
                task_id=task.id,
                success=False,
                error=str(e) or type(e).__name__,
                duration=time.perf_counter() - start_time,
            )

    # =========================================================================
    # Internals
    # =========================================================================

    async def _run_step(self, step: WorkflowStep, run: WorkflowRun) -> tuple[StepResult, bool]:
        """Execute one step; the flag is False when no agent could be resolved."""
        start_time = time.perf_counter()

        try:
            agent = self._registry.resolve(step.capability)
        except AgentNotFound as e:
            return StepResult(
                step_name=step.name,
                success=False,
                error=e.message,
                duration=time.perf_counter() - start_time,
            ), False

        try:
            return await agent.execute_step(step, run), True
        except Exception as e:
            # Agents should not raise, but a third-party agent might
            logger.error(
                f"{agent.agent_id} raised from step {step.name}: {type(e).__name__}: {e}",
                exc_info=True
            )
            return StepResult(
                step_name=step.name,
                success=False,
                error=str(e) or type(e).__name__,
                duration=time.perf_counter() - start_time,
            ), True

    def _is_success(
        self,
        template: WorkflowTemplate,
        executed: list[tuple[WorkflowStep, StepResult]],
    ) -> bool:
        executed_ok = all(result.success or not step.required for step, result in executed)
        if self._success_policy == SuccessPolicy.ALL_STEPS:
            return executed_ok and len(executed) == len(template.steps)
        return executed_ok
