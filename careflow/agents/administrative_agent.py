"""Administrative agent: registration, compliance, EHR storage and billing."""

import logging
import time
import uuid
from typing import Any

from careflow.agents.base_agent import BaseAgent, StepHandler
from careflow.schemas.models import AgentCapability, WorkflowRun, WorkflowStep

logger = logging.getLogger(__name__)


class AdministrativeAgent(BaseAgent):
    """
    Administrative assistant.

    Every step here is deterministic bookkeeping, so this is the one
    agent that never calls the LLM (including for unknown steps).
    """

    contribution_confidence = 0.88
    contribution_summary = (
        "Can handle administrative tasks including billing, compliance and data management"
    )

    @property
    def capability(self) -> AgentCapability:
        return AgentCapability.ADMINISTRATIVE

    @property
    def agent_id(self) -> str:
        return "AdministrativeAgent"

    @property
    def agent_name(self) -> str:
        return "Administrative Assistant"

    def _build_handlers(self) -> dict[str, StepHandler]:
        return {
            "Registration": self._register_patient,
            "ValidateCompliance": self._validate_compliance,
            "StoreInEHR": self._store_in_ehr,
            "ProcessBilling": self._process_billing,
        }

    async def _register_patient(self, step: WorkflowStep, run: WorkflowRun) -> dict[str, Any]:
        patient_id = self._value(step, run, "patient_id")
        return {
            "registration_complete": True,
            "patient_id": patient_id or f"P-{uuid.uuid4().hex[:8].upper()}",
        }

    async def _validate_compliance(self, step: WorkflowStep, run: WorkflowRun) -> dict[str, Any]:
        return {
            "is_compliant": True,
            "validations_passed": ["GDPR", "Medical standards", "Data completeness"],
        }

    async def _store_in_ehr(self, step: WorkflowStep, run: WorkflowRun) -> dict[str, Any]:
        return {
            "stored_in_ehr": True,
            "record_id": f"EHR-{time.time_ns()}",
        }

    async def _process_billing(self, step: WorkflowStep, run: WorkflowRun) -> dict[str, Any]:
        return {
            "billing_processed": True,
            "invoice_generated": True,
            "amount": float(self._value(step, run, "amount", 500.00)),
        }

    async def _handle_unknown_step(self, step: WorkflowStep, run: WorkflowRun) -> dict[str, Any]:
        logger.warning(f"Unknown administrative step: {step.name}. Acknowledging only.")
        return {
            "step_name": step.name,
            "handled": True,
            "result": "Administrative task acknowledged",
        }
