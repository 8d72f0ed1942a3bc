"""
Agents Module
=============

Capability-bound agents and the registry that resolves them.

Agents:
- SchedulingAgent: Appointment slots, resources, follow-ups
- DocumentationAgent: Transcripts, SOAP notes, discharge summaries
- TriageAgent: Urgency assessment
- CommunicationAgent: Patient, staff and GP messages
- AdministrativeAgent: Registration, compliance, EHR, billing
- ClinicalDecisionAgent: Assessments, ICD-10 codes, emergency guidance
"""

from careflow.agents.administrative_agent import AdministrativeAgent
from careflow.agents.base_agent import BaseAgent
from careflow.agents.clinical_decision_agent import ClinicalDecisionAgent
from careflow.agents.communication_agent import CommunicationAgent
from careflow.agents.documentation_agent import DocumentationAgent
from careflow.agents.registry import AgentRegistry, create_default_registry
from careflow.agents.scheduling_agent import SchedulingAgent
from careflow.agents.triage_agent import TriageAgent

__all__ = [
    "AdministrativeAgent",
    "AgentRegistry",
    "BaseAgent",
    "ClinicalDecisionAgent",
    "CommunicationAgent",
    "DocumentationAgent",
    "SchedulingAgent",
    "TriageAgent",
    "create_default_registry",
]
