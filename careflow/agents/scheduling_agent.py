"""
Scheduling Agent
================

Optimizes appointment scheduling and resource allocation.

The agent weighs several factors when proposing a slot:
- Patient symptoms and urgency
- Clinician specialization and availability
- Clinic resource utilization
- Patient preferences

HANDLED STEPS:
- FindOptimalSlot        (LLM)
- ConfirmAvailability
- ResourceAllocation / AllocateResources
- ScheduleFollowUp       (LLM)
"""

import logging
from datetime import timedelta
from typing import Any

from careflow.agents.base_agent import BaseAgent, StepHandler
from careflow.schemas.models import AgentCapability, WorkflowRun, WorkflowStep, utcnow

logger = logging.getLogger(__name__)


SLOT_SYSTEM_PROMPT = """You are an AI assistant that optimizes healthcare appointment scheduling.
Analyze patient needs, clinician specialization, urgency level and availability.
Find the time slot that best balances patient needs and clinic efficiency."""

FOLLOW_UP_SYSTEM_PROMPT = """Based on the consultation, decide whether a follow-up is needed and when.
Follow national guidelines for the follow-up of common conditions."""


class SchedulingAgent(BaseAgent):
    """Appointment scheduling assistant."""

    temperature = 0.3
    contribution_confidence = 0.9
    fallback_output_key = "result"

    @property
    def capability(self) -> AgentCapability:
        return AgentCapability.SCHEDULING

    @property
    def agent_id(self) -> str:
        return "SchedulingAgent"

    @property
    def agent_name(self) -> str:
        return "Appointment Scheduling Assistant"

    def _build_handlers(self) -> dict[str, StepHandler]:
        return {
            "FindOptimalSlot": self._find_optimal_slot,
            "ConfirmAvailability": self._confirm_availability,
            "ResourceAllocation": self._allocate_resources,
            "AllocateResources": self._allocate_resources,
            "ScheduleFollowUp": self._schedule_follow_up,
        }

    async def _find_optimal_slot(self, step: WorkflowStep, run: WorkflowRun) -> dict[str, Any]:
        user_prompt = (
            f"Find the optimal appointment time for:\n"
            f"Patient: {self._value(step, run, 'patient_info', 'Not provided')}\n"
            f"Symptoms: {self._value(step, run, 'symptoms', 'Not provided')}\n"
            f"Urgency: {self._value(step, run, 'urgency', 'Normal')}\n"
            f"Preferred time: {self._value(step, run, 'preferred_time', 'Flexible')}\n"
            f"Available slots: {self._value(step, run, 'available_slots', [])}"
        )
        response = await self._ask(SLOT_SYSTEM_PROMPT, user_prompt)

        return {
            "recommended_slot": response,
            "alternative_slots": [],
            "optimization_score": 0.95,
        }

    async def _confirm_availability(self, step: WorkflowStep, run: WorkflowRun) -> dict[str, Any]:
        requested = self._value(step, run, "requested_slot")
        if not requested:
            # Fall back to the slot proposed earlier in the run
            requested = run.intermediate_results.get("FindOptimalSlot", {}).get(
                "recommended_slot", ""
            )
        return {
            "is_available": True,
            "confirmed_slot": requested,
        }

    async def _allocate_resources(self, step: WorkflowStep, run: WorkflowRun) -> dict[str, Any]:
        return {
            "room": self._value(step, run, "room", "Consultation room 3"),
            "equipment": ["ECG", "Blood pressure monitor"],
            "duration": 30,
        }

    async def _schedule_follow_up(self, step: WorkflowStep, run: WorkflowRun) -> dict[str, Any]:
        summary = run.intermediate_results.get("GenerateDischargeSummary", {})
        user_prompt = f"Assess the follow-up need.\nDischarge summary: {summary}"
        response = await self._ask(FOLLOW_UP_SYSTEM_PROMPT, user_prompt)

        return {
            "follow_up_required": True,
            "recommended_date": (utcnow() + timedelta(days=14)).isoformat(),
            "reason": response,
        }

    async def _contribution_text(self, goal: str, workspace: dict[str, Any]) -> str:
        return (
            f"Scheduling analysis for: {goal}. "
            "Can optimize appointment booking and resource allocation."
        )
