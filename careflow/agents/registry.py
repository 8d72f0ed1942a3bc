"""
Agent Registry
==============

Maps each AgentCapability to the one agent bound to it.

The workflow engine validates its templates against the registry when
it is constructed, so a missing capability fails at startup rather
than halfway through a patient workflow.
"""

import logging
from typing import Iterable, Optional

from careflow.agents.administrative_agent import AdministrativeAgent
from careflow.agents.base_agent import BaseAgent
from careflow.agents.clinical_decision_agent import ClinicalDecisionAgent
from careflow.agents.communication_agent import CommunicationAgent
from careflow.agents.documentation_agent import DocumentationAgent
from careflow.agents.scheduling_agent import SchedulingAgent
from careflow.agents.triage_agent import TriageAgent
from careflow.errors import AgentNotFound
from careflow.llm.generation import GenerationClient
from careflow.schemas.models import AgentCapability, WorkflowTemplate

logger = logging.getLogger(__name__)


class AgentRegistry:
    """
    Capability → agent lookup.

    Usage:
        registry = AgentRegistry()
        registry.register(TriageAgent(client))
        agent = registry.resolve(AgentCapability.TRIAGE)
    """

    def __init__(self, agents: Optional[Iterable[BaseAgent]] = None):
        self._agents: dict[AgentCapability, BaseAgent] = {}
        for agent in agents or []:
            self.register(agent)

    def register(self, agent: BaseAgent) -> None:
        """Bind an agent to its capability (replaces any previous binding)."""
        previous = self._agents.get(agent.capability)
        if previous is not None and previous is not agent:
            logger.warning(
                f"Replacing {previous.agent_id} with {agent.agent_id} "
                f"for capability {agent.capability.value}"
            )
        self._agents[agent.capability] = agent
        logger.info(f"Registered {agent.agent_id} for {agent.capability.value}")

    def unregister(self, capability: AgentCapability) -> Optional[BaseAgent]:
        return self._agents.pop(AgentCapability(capability), None)

    def resolve(self, capability: AgentCapability) -> BaseAgent:
        """
        Get the agent bound to a capability.

        Raises:
            AgentNotFound: If no agent is bound to it
        """
        agent = self._agents.get(capability)
        if agent is None:
            value = getattr(capability, "value", capability)
            raise AgentNotFound(str(value))
        return agent

    def get(self, agent_id: str) -> Optional[BaseAgent]:
        """Look up an agent by its id; None if unknown."""
        for agent in self._agents.values():
            if agent.agent_id == agent_id:
                return agent
        return None

    @property
    def capabilities(self) -> set[AgentCapability]:
        return set(self._agents)

    @property
    def agent_ids(self) -> list[str]:
        return [agent.agent_id for agent in self._agents.values()]

    def validate_templates(self, templates: Iterable[WorkflowTemplate]) -> None:
        """
        Check that every step of every template has an agent.

        Raises:
            AgentNotFound: For the first unbound capability found
        """
        for template in templates:
            for step in template.steps:
                if step.capability not in self._agents:
                    logger.error(
                        f"Template {template.name} step {step.name} needs "
                        f"unbound capability {step.capability.value}"
                    )
                    raise AgentNotFound(step.capability.value)

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, capability: object) -> bool:
        return capability in self._agents


def create_default_registry(
    generation_client: Optional[GenerationClient] = None,
) -> AgentRegistry:
    """
    Registry with all six built-in agents sharing one GenerationClient.

    Args:
        generation_client: LLM client for every agent (created from settings if omitted)
    """
    client = generation_client or GenerationClient()
    return AgentRegistry([
        SchedulingAgent(client),
        DocumentationAgent(client),
        TriageAgent(client),
        CommunicationAgent(client),
        AdministrativeAgent(client),
        ClinicalDecisionAgent(client),
    ])
