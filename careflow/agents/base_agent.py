"""
Base Agent
==========

Abstract base class for all capability agents in CareFlow.

Every agent is bound to exactly one AgentCapability and exposes the same
three async operations:

    execute_step(step, run)                 ──► StepResult
    execute_task(task, run)                 ──► StepResult
    contribute_to_collaboration(goal, ws)   ──► Contribution

HOW A STEP IS EXECUTED:
1. The step name is looked up in the agent's handler table
2. Unknown names go to a generic LLM-backed fallback handler
3. The handler returns an output dict
4. Any exception becomes a failed StepResult (never raised)

WHY HANDLER TABLES?
- Each workflow step maps to one small async method
- New steps are one dict entry, not a new branch in a big if/elif
- The fallback keeps planner-generated task names working
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional

from careflow.llm.generation import GenerationClient
from careflow.schemas.models import (
    AgentCapability,
    AgentTask,
    Contribution,
    SamplingParams,
    StepResult,
    WorkflowRun,
    WorkflowStep,
)

logger = logging.getLogger(__name__)

StepHandler = Callable[[WorkflowStep, WorkflowRun], Awaitable[dict[str, Any]]]


class BaseAgent(ABC):
    """
    Abstract base class for all agents.

    Each agent must implement:
    - capability / agent_id / agent_name: Who this agent is
    - _build_handlers(): Step name → handler table

    Provides:
    - Consistent error handling (failed StepResult instead of exceptions)
    - LLM access through the shared GenerationClient
    - Collaboration contributions with a per-agent confidence
    """

    # Sampling used by _ask(); subclasses tune these
    temperature: float = 0.3
    max_tokens: int = 1000

    # Collaboration defaults
    contribution_confidence: float = 0.9
    contribution_summary: str = ""

    # Output key used by the LLM fallback for unknown steps
    fallback_output_key: str = "result"

    def __init__(self, generation_client: Optional[GenerationClient] = None):
        """
        Initialize the base agent.

        Args:
            generation_client: Shared LLM client (created from settings if omitted)
        """
        self._generation = generation_client or GenerationClient()
        self._handlers: dict[str, StepHandler] = self._build_handlers()

        logger.info(f"Initialized {self.agent_id} ({self.capability.value})")

    @property
    @abstractmethod
    def capability(self) -> AgentCapability:
        """Return the capability this agent is bound to."""
        pass

    @property
    @abstractmethod
    def agent_id(self) -> str:
        pass

    @property
    @abstractmethod
    def agent_name(self) -> str:
        pass

    @abstractmethod
    def _build_handlers(self) -> dict[str, StepHandler]:
        """Return the step name → handler table."""
        pass

    @property
    def step_names(self) -> list[str]:
        """Step names with a dedicated handler."""
        return list(self._handlers)

    # =========================================================================
    # Shared contract
    # =========================================================================

    async def execute_step(self, step: WorkflowStep, run: WorkflowRun) -> StepResult:
        """
        Execute one workflow step.

        This never raises: handler failures are captured into a failed
        StepResult carrying the error message.

        Args:
            step: The step to execute
            run: Current run context (input + earlier step outputs)

        Returns:
            StepResult with the handler output or the error
        """
        logger.info(f"{self.agent_id} executing step: {step.name}")
        handler = self._handlers.get(step.name, self._handle_unknown_step)
        start_time = time.perf_counter()

        try:
            output = await handler(step, run)
        except Exception as e:
            logger.error(
                f"Error in {self.agent_id} step {step.name}: {type(e).__name__}: {e}",
                exc_info=True
            )
            return StepResult(
                step_name=step.name,
                success=False,
                error=str(e) or type(e).__name__,
                duration=time.perf_counter() - start_time,
            )

        return StepResult(
            step_name=step.name,
            success=True,
            output=output,
            duration=time.perf_counter() - start_time,
        )

    async def execute_task(
        self,
        task: AgentTask,
        run: Optional[WorkflowRun] = None,
    ) -> StepResult:
        """Execute a planned task as if it were a step of the same name."""
        run = run or WorkflowRun(template_name="AdHocTask")
        step = WorkflowStep(
            name=task.name,
            capability=self.capability,
            parameters=task.parameters,
        )
        result = await self.execute_step(step, run)
        return result.model_copy(update={"task_id": task.id})

    async def contribute_to_collaboration(
        self,
        goal: str,
        workspace: dict[str, Any],
    ) -> Contribution:
        """
        Contribute to a multi-agent collaboration.

        The agent's text is also published to the shared workspace under
        its agent id so later readers see every contribution.
        """
        text = await self._contribution_text(goal, workspace)
        workspace[self.agent_id] = text
        return Contribution(
            agent_id=self.agent_id,
            text=text,
            confidence=self.contribution_confidence,
        )

    async def _contribution_text(self, goal: str, workspace: dict[str, Any]) -> str:
        return self.contribution_summary

    # =========================================================================
    # Helpers for subclasses
    # =========================================================================

    async def _ask(self, system_prompt: str, user_prompt: str) -> str:
        """Call the LLM with this agent's sampling settings."""
        sampling = SamplingParams(
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        return await self._generation.complete(system_prompt, user_prompt, sampling)

    @staticmethod
    def _value(step: WorkflowStep, run: WorkflowRun, key: str, default: Any = None) -> Any:
        """Look up a value in step parameters first, then the run input."""
        if key in step.parameters:
            return step.parameters[key]
        return run.input_context.get(key, default)

    @staticmethod
    def _format_context(run: WorkflowRun) -> str:
        return ", ".join(f"{key}={value}" for key, value in run.input_context.items())

    async def _handle_unknown_step(
        self,
        step: WorkflowStep,
        run: WorkflowRun,
    ) -> dict[str, Any]:
        """Generic LLM fallback for step names without a handler."""
        logger.warning(f"Unknown step requested: {step.name}. Using AI fallback.")

        system_prompt = (
            f"You are the {self.agent_name}. Handle the following task: {step.name}"
        )
        user_prompt = f"Context: {self._format_context(run)}"
        response = await self._ask(system_prompt, user_prompt)

        return {
            "step_name": step.name,
            "handled": True,
            self.fallback_output_key: response,
        }

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"{self.__class__.__name__}(capability={self.capability.value})"
