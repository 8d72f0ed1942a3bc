"""Tests for the workflow engine."""

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from careflow.agents.registry import AgentRegistry, create_default_registry
from careflow.config import get_settings
from careflow.errors import AgentNotFound, UnknownWorkflowType
from careflow.llm.generation import GenerationClient
from careflow.schemas.models import AgentCapability, AgentTask, SuccessPolicy
from careflow.services.workflow_engine import InMemoryRunCheckpointer, WorkflowEngine
from careflow.workflows.templates import WORKFLOW_TEMPLATES, get_template

from conftest import StubAgent


ALL_TYPES = sorted(WORKFLOW_TEMPLATES)


def step_names(workflow_type):
    return [step.name for step in get_template(workflow_type).steps]


class TestTemplates:
    """Tests for the built-in template catalog."""

    def test_catalog(self):
        assert ALL_TYPES == [
            "AppointmentScheduling",
            "ClinicalDocumentation",
            "DischargeProcess",
            "EmergencyTriage",
            "PatientAdmission",
        ]

    def test_unknown_template(self):
        with pytest.raises(UnknownWorkflowType):
            get_template("Teleportation")


class TestExecuteWorkflow:
    """Tests for WorkflowEngine.execute_workflow."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("workflow_type", ALL_TYPES)
    async def test_every_template_runs_with_stubs(self, workflow_type, stub_registry):
        engine = WorkflowEngine(stub_registry)

        result = await engine.execute_workflow(workflow_type, {"patient_info": "54yo"})

        assert result.success is True
        assert result.workflow_type == workflow_type
        assert result.executed_steps == step_names(workflow_type)
        assert all(r.success for r in result.results)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("workflow_type", ALL_TYPES)
    async def test_every_template_runs_with_default_agents(self, workflow_type):
        client = GenerationClient(llm=FakeListChatModel(responses=["Mock LLM response."]))
        engine = WorkflowEngine(create_default_registry(client))

        result = await engine.execute_workflow(
            workflow_type,
            {"patient_info": "54yo male", "symptoms": "chest pain"},
        )

        assert result.success is True
        assert result.executed_steps == step_names(workflow_type)

    @pytest.mark.asyncio
    async def test_first_required_failure_stops_the_run(self, stub_agents):
        stub_agents[AgentCapability.TRIAGE].fail_steps = {"Triage"}
        engine = WorkflowEngine(AgentRegistry(stub_agents.values()))

        result = await engine.execute_workflow("PatientAdmission")

        assert result.success is False
        assert result.executed_steps == ["Triage"]
        assert result.results[0].error == "Triage failed"
        for capability, agent in stub_agents.items():
            if capability != AgentCapability.TRIAGE:
                assert agent.executed == []

    @pytest.mark.asyncio
    async def test_required_failure_mid_run(self, stub_agents):
        stub_agents[AgentCapability.SCHEDULING].fail_steps = {"FindOptimalSlot"}
        engine = WorkflowEngine(AgentRegistry(stub_agents.values()))

        result = await engine.execute_workflow("AppointmentScheduling")

        assert result.success is False
        assert result.executed_steps == ["AnalyzeRequest", "FindOptimalSlot"]
        assert stub_agents[AgentCapability.COMMUNICATION].executed == []

    @pytest.mark.asyncio
    async def test_optional_failure_continues(self, stub_agents):
        stub_agents[AgentCapability.CLINICAL_DECISION].fail_steps = {"SuggestICD10Codes"}
        engine = WorkflowEngine(AgentRegistry(stub_agents.values()))

        result = await engine.execute_workflow("ClinicalDocumentation")

        assert result.success is True
        assert result.executed_steps == step_names("ClinicalDocumentation")
        assert result.results[2].success is False

    @pytest.mark.asyncio
    async def test_later_steps_see_earlier_outputs(self, stub_agents):
        engine = WorkflowEngine(AgentRegistry(stub_agents.values()))

        await engine.execute_workflow("AppointmentScheduling")

        communication = stub_agents[AgentCapability.COMMUNICATION]
        seen = communication.seen_results[0]
        assert seen["AnalyzeRequest"] == {"done": "AnalyzeRequest"}
        assert seen["ConfirmAvailability"] == {"done": "ConfirmAvailability"}
        assert "PrepareDocuments" not in seen

    @pytest.mark.asyncio
    async def test_default_agents_share_run_results(self):
        client = GenerationClient(llm=FakeListChatModel(responses=["Tuesday 09:00"]))
        engine = WorkflowEngine(create_default_registry(client))

        result = await engine.execute_workflow("AppointmentScheduling")

        confirm = next(r for r in result.results if r.step_name == "ConfirmAvailability")
        assert confirm.output["confirmed_slot"] == "Tuesday 09:00"

    @pytest.mark.asyncio
    async def test_unknown_workflow_type(self, stub_registry):
        engine = WorkflowEngine(stub_registry)

        with pytest.raises(UnknownWorkflowType) as exc_info:
            await engine.execute_workflow("Teleportation")

        assert exc_info.value.workflow_type == "Teleportation"

    def test_missing_capability_fails_at_construction(self, stub_agents):
        del stub_agents[AgentCapability.ADMINISTRATIVE]

        with pytest.raises(AgentNotFound):
            WorkflowEngine(AgentRegistry(stub_agents.values()))

    @pytest.mark.asyncio
    async def test_agent_removed_after_construction(self, stub_registry):
        engine = WorkflowEngine(stub_registry)
        stub_registry.unregister(AgentCapability.COMMUNICATION)

        result = await engine.execute_workflow("AppointmentScheduling")

        assert result.success is False
        assert result.executed_steps == [
            "AnalyzeRequest", "FindOptimalSlot", "ConfirmAvailability", "SendConfirmation",
        ]
        assert "communication" in result.results[-1].error

    @pytest.mark.asyncio
    async def test_raising_agent_becomes_failed_step(self, stub_agents):
        class ExplodingAgent(StubAgent):
            async def execute_step(self, step, run):
                raise RuntimeError("boom")

        stub_agents[AgentCapability.TRIAGE] = ExplodingAgent(AgentCapability.TRIAGE)
        engine = WorkflowEngine(AgentRegistry(stub_agents.values()))

        result = await engine.execute_workflow("EmergencyTriage")

        assert result.success is False
        assert result.results[0].error == "boom"
        assert len(result.results) == 1


class TestSuccessPolicy:
    """A step whose agent disappears stops the run and fails it."""

    async def _run(self, stub_registry, policy, capability, workflow_type):
        engine = WorkflowEngine(stub_registry, success_policy=policy)
        stub_registry.unregister(capability)
        return await engine.execute_workflow(workflow_type)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("policy", list(SuccessPolicy))
    async def test_missing_optional_agent_fails_run(self, stub_registry, policy):
        result = await self._run(
            stub_registry, policy, AgentCapability.SCHEDULING, "DischargeProcess"
        )

        assert result.executed_steps == [
            "GenerateDischargeSummary", "PrepareInstructions", "ScheduleFollowUp",
        ]
        assert result.success is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("policy", list(SuccessPolicy))
    async def test_required_steps_after_missing_agent_never_run(self, stub_registry, policy):
        result = await self._run(
            stub_registry, policy,
            AgentCapability.CLINICAL_DECISION, "ClinicalDocumentation",
        )

        assert result.executed_steps == [
            "TranscribeConsultation", "GenerateSOAPNote", "SuggestICD10Codes",
        ]
        assert result.results[0].success is True
        assert result.results[1].success is True
        assert result.success is False

    @pytest.mark.asyncio
    async def test_policy_from_settings(self, stub_registry, monkeypatch):
        monkeypatch.setenv("CAREFLOW_WORKFLOW_SUCCESS_POLICY", "all_steps")
        get_settings.cache_clear()

        engine = WorkflowEngine(stub_registry)
        result = await engine.execute_workflow("DischargeProcess")

        assert engine.success_policy == SuccessPolicy.ALL_STEPS
        assert result.success is True


class TestCheckpointing:
    """Tests for the run checkpointer hook."""

    @pytest.mark.asyncio
    async def test_checkpointer_sees_every_step(self, stub_registry):
        checkpointer = InMemoryRunCheckpointer()
        engine = WorkflowEngine(stub_registry, checkpointer=checkpointer)

        result = await engine.execute_workflow("EmergencyTriage")

        assert list(checkpointer.runs.values()) == [result]
        (steps,) = checkpointer.steps.values()
        assert [s.step_name for s in steps] == step_names("EmergencyTriage")
        assert result.run_id in checkpointer.runs


class TestExecuteAgentTask:
    """Tests for WorkflowEngine.execute_agent_task."""

    @pytest.mark.asyncio
    async def test_dispatches_to_capability(self, stub_agents):
        engine = WorkflowEngine(AgentRegistry(stub_agents.values()))
        task = AgentTask(name="Triage", capability=AgentCapability.TRIAGE)

        result = await engine.execute_agent_task(task)

        assert result.success is True
        assert result.task_id == task.id
        assert stub_agents[AgentCapability.TRIAGE].executed == ["Triage"]

    @pytest.mark.asyncio
    async def test_unbound_capability_returns_failed_result(self, stub_registry):
        engine = WorkflowEngine(stub_registry)
        stub_registry.unregister(AgentCapability.TRIAGE)
        task = AgentTask(name="Triage", capability=AgentCapability.TRIAGE)

        result = await engine.execute_agent_task(task)

        assert result.success is False
        assert result.task_id == task.id
        assert "triage" in result.error
