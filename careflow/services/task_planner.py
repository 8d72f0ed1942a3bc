"""
Task Planner
============

Turns a free-text goal into a list of AgentTasks using the LLM.

The model's output is untrusted: it is parsed strictly against the
TaskPlan schema with LangChain's PydanticOutputParser. A bare JSON list
of tasks is accepted as well, since many models drop the wrapper
object. Anything that does not validate yields an empty plan.

Task dependencies are advisory. Nothing in CareFlow schedules by them;
callers dispatch the tasks themselves (e.g. with
WorkflowEngine.execute_agent_task).
"""

import json
import logging
import re
from typing import Any, Optional

from langchain_core.output_parsers import PydanticOutputParser
from langchain_core.prompts import PromptTemplate
from pydantic import BaseModel, Field, field_validator

from careflow.llm.generation import GenerationClient
from careflow.schemas.models import AgentCapability, AgentTask, SamplingParams

logger = logging.getLogger(__name__)


class PlannedTask(BaseModel):
    """One task as the LLM is asked to describe it."""
    name: str = Field(min_length=1, description="Short task name, e.g. 'AssessUrgency'")
    description: str = Field(default="", description="What the task does")
    capability: AgentCapability = Field(
        description="Capability of the agent that performs the task"
    )
    dependencies: list[str] = Field(
        default_factory=list,
        description="Names of tasks that should finish first"
    )
    estimated_minutes: int = Field(default=0, ge=0, description="Estimated duration")

    @field_validator("capability", mode="before")
    @classmethod
    def _normalize_capability(cls, value: Any) -> Any:
        # Accept "TriageAgent", "Clinical Decision" and similar spellings
        if isinstance(value, str):
            key = re.sub(r"agent$", "", value.strip().lower().replace("-", "_"))
            key = re.sub(r"[\s_]+", "_", key).strip("_")
            if key == "clinicaldecision":
                key = "clinical_decision"
            return key
        return value


class TaskPlan(BaseModel):
    """Structured output of the planner."""
    tasks: list[PlannedTask] = Field(description="Ordered list of tasks")


PLANNER_SYSTEM_PROMPT = """You are an AI assistant that plans tasks for healthcare operations.
Based on the goal, create a structured plan of concrete tasks.
Each task must have a name, a description, the capability of the agent
that performs it, dependencies on other tasks and an estimated duration."""

PLANNER_PROMPT = PromptTemplate.from_template(
    """GOAL: {goal}

CONTEXT: {context}

AVAILABLE CAPABILITIES:
{capabilities}

Create a structured task plan.

{format_instructions}"""
)


class TaskPlanner:
    """
    Goal → task list.

    Usage:
        planner = TaskPlanner(GenerationClient())
        tasks = await planner.plan_tasks(
            "Admit a patient with chest pain",
            {"patient_info": "54yo male"},
        )
    """

    def __init__(
        self,
        generation_client: Optional[GenerationClient] = None,
        temperature: float = 0.3,
    ):
        self._generation = generation_client or GenerationClient()
        self._sampling = SamplingParams(temperature=temperature, max_tokens=2000)
        # Parser ensures LLM output matches the TaskPlan schema
        self._parser = PydanticOutputParser(pydantic_object=TaskPlan)

    async def plan_tasks(
        self,
        goal: str,
        context: Optional[dict[str, Any]] = None,
    ) -> list[AgentTask]:
        """
        Plan tasks for a goal.

        Args:
            goal: Free-text objective
            context: Extra data, serialized to JSON in the prompt

        Returns:
            Planned tasks; empty if the model output did not validate

        Raises:
            ExternalServiceError: If the generation call fails
        """
        user_prompt = PLANNER_PROMPT.format(
            goal=goal,
            context=json.dumps(context or {}, default=str),
            capabilities="\n".join(f"- {c.value}" for c in AgentCapability),
            format_instructions=self._parser.get_format_instructions(),
        )

        content = await self._generation.complete(
            PLANNER_SYSTEM_PROMPT, user_prompt, self._sampling
        )

        plan = self._parse(content)
        if plan is None:
            return []

        tasks = [
            AgentTask(
                name=planned.name,
                description=planned.description,
                capability=planned.capability,
                dependencies=planned.dependencies,
                estimated_minutes=planned.estimated_minutes,
            )
            for planned in plan.tasks
        ]

        logger.info(f"Generated {len(tasks)} tasks for goal")
        return tasks

    def _parse(self, content: str) -> Optional[TaskPlan]:
        try:
            return self._parser.parse(content)
        except Exception as e:
            logger.debug(f"Plan is not a TaskPlan object: {e}")

        # Bare JSON list of tasks
        try:
            start = content.index("[")
            end = content.rindex("]") + 1
            data = json.loads(content[start:end])
            if not isinstance(data, list):
                raise ValueError("Plan is not a list")
            return TaskPlan.model_validate({"tasks": data})
        except Exception as e:
            logger.warning(f"Failed to parse task plan, returning empty plan: {e}")
            return None
