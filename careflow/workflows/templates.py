"""
Workflow Templates
==================

The fixed catalog of healthcare workflows.

Each template is an ordered list of steps. A step names the capability
that executes it and whether it is required: a failed required step
aborts the run, a failed optional step is recorded and skipped over.

    PatientAdmission       Triage → Registration → InitialAssessment →
                           ResourceAllocation → Documentation →
                           (PatientCommunication)

    AppointmentScheduling  AnalyzeRequest → FindOptimalSlot →
                           ConfirmAvailability → SendConfirmation →
                           (PrepareDocuments)

    ClinicalDocumentation  TranscribeConsultation → GenerateSOAPNote →
                           (SuggestICD10Codes) → ValidateCompliance →
                           StoreInEHR

    DischargeProcess       GenerateDischargeSummary → PrepareInstructions →
                           (ScheduleFollowUp) → ProcessBilling →
                           SendToFastlege

    EmergencyTriage        AssessUrgency → AlertStaff → AllocateResources →
                           ClinicalGuidance → DocumentInitialAssessment

(parenthesised steps are optional)
"""

from careflow.errors import UnknownWorkflowType
from careflow.schemas.models import AgentCapability, WorkflowStep, WorkflowTemplate

SCHEDULING = AgentCapability.SCHEDULING
DOCUMENTATION = AgentCapability.DOCUMENTATION
TRIAGE = AgentCapability.TRIAGE
COMMUNICATION = AgentCapability.COMMUNICATION
ADMINISTRATIVE = AgentCapability.ADMINISTRATIVE
CLINICAL_DECISION = AgentCapability.CLINICAL_DECISION


def _step(name: str, capability: AgentCapability, required: bool = True) -> WorkflowStep:
    return WorkflowStep(name=name, capability=capability, required=required)


PATIENT_ADMISSION = WorkflowTemplate(
    name="PatientAdmission",
    display_name="Patient Admission",
    description="Admit a patient from triage through to documentation",
    steps=(
        _step("Triage", TRIAGE),
        _step("Registration", ADMINISTRATIVE),
        _step("InitialAssessment", CLINICAL_DECISION),
        _step("ResourceAllocation", SCHEDULING),
        _step("Documentation", DOCUMENTATION),
        _step("PatientCommunication", COMMUNICATION, required=False),
    ),
)

APPOINTMENT_SCHEDULING = WorkflowTemplate(
    name="AppointmentScheduling",
    display_name="Appointment Scheduling",
    description="Find, confirm and communicate an appointment slot",
    steps=(
        _step("AnalyzeRequest", TRIAGE),
        _step("FindOptimalSlot", SCHEDULING),
        _step("ConfirmAvailability", SCHEDULING),
        _step("SendConfirmation", COMMUNICATION),
        _step("PrepareDocuments", DOCUMENTATION, required=False),
    ),
)

CLINICAL_DOCUMENTATION = WorkflowTemplate(
    name="ClinicalDocumentation",
    display_name="Clinical Documentation",
    description="Turn a consultation into a stored, compliant SOAP note",
    steps=(
        _step("TranscribeConsultation", DOCUMENTATION),
        _step("GenerateSOAPNote", DOCUMENTATION),
        _step("SuggestICD10Codes", CLINICAL_DECISION, required=False),
        _step("ValidateCompliance", ADMINISTRATIVE),
        _step("StoreInEHR", ADMINISTRATIVE),
    ),
)

DISCHARGE_PROCESS = WorkflowTemplate(
    name="DischargeProcess",
    display_name="Discharge Process",
    description="Discharge a patient and hand over to their GP",
    steps=(
        _step("GenerateDischargeSummary", DOCUMENTATION),
        _step("PrepareInstructions", COMMUNICATION),
        _step("ScheduleFollowUp", SCHEDULING, required=False),
        _step("ProcessBilling", ADMINISTRATIVE),
        _step("SendToFastlege", COMMUNICATION),
    ),
)

EMERGENCY_TRIAGE = WorkflowTemplate(
    name="EmergencyTriage",
    display_name="Emergency Triage",
    description="Assess, alert and guide an emergency presentation",
    steps=(
        _step("AssessUrgency", TRIAGE),
        _step("AlertStaff", COMMUNICATION),
        _step("AllocateResources", SCHEDULING),
        _step("ClinicalGuidance", CLINICAL_DECISION),
        _step("DocumentInitialAssessment", DOCUMENTATION),
    ),
)


WORKFLOW_TEMPLATES: dict[str, WorkflowTemplate] = {
    template.name: template
    for template in (
        PATIENT_ADMISSION,
        APPOINTMENT_SCHEDULING,
        CLINICAL_DOCUMENTATION,
        DISCHARGE_PROCESS,
        EMERGENCY_TRIAGE,
    )
}


def get_template(workflow_type: str) -> WorkflowTemplate:
    """
    Look up a built-in template by its type key.

    Raises:
        UnknownWorkflowType: If there is no such template
    """
    template = WORKFLOW_TEMPLATES.get(workflow_type)
    if template is None:
        raise UnknownWorkflowType(workflow_type)
    return template
