"""Tests for the workflow execution engine."""
import asyncio

import pytest

from jira_core.models import StepKind
from jira_core.schemas import (
    ActionStep,
    InputStep,
    QuestionStep,
    WorkflowDefinition,
    WorkflowInstance,
)
from jira_core.workflow_engine import (
    ActionExecutionError,
    ActiveWorkflowStore,
    DefinitionNotFoundError,
    NoActiveInstanceError,
    StepNotFoundError,
    WorkflowEngine,
    WorkflowError,
)
from jira_core.workflow_definitions import TEST_CASE_GENERATION as TEST_CASE_DEFINITION
from jira_core.workflow_registry import WorkflowRegistry

WORKFLOW_ID = "test_case_generation"


async def require_ok(data):
    """Fails until the 'confirm' step was answered with 'ok'."""
    if data.get("confirm") != "ok":
        raise RuntimeError("confirmation missing")
    return {"message": "confirmed"}


def confirm_engine() -> WorkflowEngine:
    """Engine with a two-step workflow whose action depends on its own response."""
    definition = WorkflowDefinition(
        id="confirm",
        name="Confirm",
        trigger="get_bugs",
        steps=[
            QuestionStep(id="start", prompt="Go?", options=["Go"], next_step="confirm"),
            ActionStep(id="confirm", prompt="Type ok", operation="require_ok"),
        ],
    )
    return WorkflowEngine(WorkflowRegistry([definition]), actions={"require_ok": require_ok})


class TestStart:
    """Test starting workflows."""

    def test_start_positions_on_entry_step(self, engine, sample_issue):
        instance = engine.start(WORKFLOW_ID, {"issue": sample_issue})

        assert instance.definition_id == WORKFLOW_ID
        assert instance.current_step_id == "ask_generate_test_cases"
        assert instance.completed is False
        assert instance.data["issue"]["key"] == "PROJ-123"

    def test_current_step_after_start_is_first_step(self, engine):
        engine.start(WORKFLOW_ID, {})

        step = engine.current_step(WORKFLOW_ID)
        assert step.id == "ask_generate_test_cases"
        assert step.kind == StepKind.QUESTION
        assert step.options == ["Yes", "No"]

    def test_start_copies_initial_context(self, engine):
        context = {"note": "original"}
        instance = engine.start(WORKFLOW_ID, context)

        instance.record("note", "changed")
        assert context == {"note": "original"}

    def test_start_unknown_definition_raises(self, engine):
        with pytest.raises(DefinitionNotFoundError) as exc_info:
            engine.start("nope", {})

        assert exc_info.value.definition_id == "nope"
        assert "nope" in str(exc_info.value)
        assert len(engine.store) == 0

    async def test_second_start_replaces_first_run(self, engine, sample_issue):
        engine.start(WORKFLOW_ID, {"issue": sample_issue})
        await engine.respond(WORKFLOW_ID, "Yes")
        assert engine.current_step(WORKFLOW_ID).id == "get_filename"

        engine.start(WORKFLOW_ID, {})

        assert len(engine.list_active()) == 1
        assert engine.current_step(WORKFLOW_ID).id == "ask_generate_test_cases"
        assert "issue" not in engine.store.get(WORKFLOW_ID).data


class TestTriggerFor:
    """Test trigger lookup through the engine."""

    def test_trigger_for_get_issue(self, engine, sample_issue):
        definition = engine.trigger_for("get_issue", {"issue": sample_issue})
        assert definition.id == WORKFLOW_ID

    def test_trigger_for_does_not_start(self, engine):
        engine.trigger_for("get_issue", {})
        assert engine.list_active() == []

    def test_trigger_for_unknown_tool(self, engine):
        assert engine.trigger_for("get_projects", {}) is None


class TestBuiltInFlow:
    """Walk the test case generation workflow end to end."""

    async def test_full_flow(self, engine, sample_issue):
        engine.start(WORKFLOW_ID, {"issue": sample_issue})
        assert engine.current_step(WORKFLOW_ID).id == "ask_generate_test_cases"

        result = await engine.respond(WORKFLOW_ID, "Yes")
        assert result.completed is False
        assert result.next_step.id == "get_filename"
        assert result.next_step.required is True

        result = await engine.respond(WORKFLOW_ID, "my-tests.md")
        assert result.completed is False
        assert result.next_step.id == "generate_test_cases"
        assert result.next_step.kind == StepKind.ACTION

        result = await engine.respond(WORKFLOW_ID, "")
        assert result.completed is True
        assert result.next_step is None

        action_result = result.result["generate_test_cases_result"]
        assert action_result["success"] is True
        assert action_result["filename"] == "my-tests.md"
        assert action_result["issueKey"] == "PROJ-123"
        assert action_result["issueSummary"] == "Login button does nothing"

    async def test_completed_workflow_is_removed(self, engine, sample_issue):
        engine.start(WORKFLOW_ID, {"issue": sample_issue})
        for response in ("Yes", "my-tests.md", ""):
            await engine.respond(WORKFLOW_ID, response)

        assert engine.current_step(WORKFLOW_ID) is None
        assert engine.list_active() == []
        with pytest.raises(NoActiveInstanceError):
            await engine.respond(WORKFLOW_ID, "again")

    async def test_responses_recorded_by_step_id(self, engine, sample_issue):
        engine.start(WORKFLOW_ID, {"issue": sample_issue})
        await engine.respond(WORKFLOW_ID, "No")
        await engine.respond(WORKFLOW_ID, "cases.md")
        result = await engine.respond(WORKFLOW_ID, "go")

        assert result.result["ask_generate_test_cases"] == "No"
        assert result.result["get_filename"] == "cases.md"
        # Action steps record the response too, before running
        assert result.result["generate_test_cases"] == "go"

    async def test_options_are_not_enforced(self, engine):
        engine.start(WORKFLOW_ID, {})
        result = await engine.respond(WORKFLOW_ID, "Maybe later")

        assert result.next_step.id == "get_filename"

    async def test_required_is_not_enforced(self, engine):
        engine.start(WORKFLOW_ID, {})
        await engine.respond(WORKFLOW_ID, "Yes")
        result = await engine.respond(WORKFLOW_ID, "")

        assert result.next_step.id == "generate_test_cases"


class TestRespondErrors:
    """Test failure modes of respond."""

    async def test_no_active_instance(self, engine):
        for _ in range(2):
            with pytest.raises(NoActiveInstanceError) as exc_info:
                await engine.respond(WORKFLOW_ID, "Yes")
            assert exc_info.value.definition_id == WORKFLOW_ID

        assert engine.list_active() == []

    async def test_definition_removed_after_start(self, engine):
        engine.store.put(WorkflowInstance(definition_id="ghost", current_step_id="x"))

        with pytest.raises(DefinitionNotFoundError):
            await engine.respond("ghost", "hi")

    async def test_current_step_missing_from_definition(self, engine):
        engine.store.put(WorkflowInstance(definition_id=WORKFLOW_ID, current_step_id="bogus"))

        with pytest.raises(StepNotFoundError) as exc_info:
            await engine.respond(WORKFLOW_ID, "hi")

        assert exc_info.value.step_id == "bogus"
        assert isinstance(exc_info.value, WorkflowError)

    async def test_dangling_next_step(self):
        definition = WorkflowDefinition(
            id="broken",
            name="Broken",
            trigger="get_tasks",
            steps=[InputStep(id="first", prompt="?", next_step="missing")],
        )
        engine = WorkflowEngine(WorkflowRegistry([definition]))
        engine.start("broken", {})

        result = await engine.respond("broken", "answer")
        assert result.completed is False
        assert result.next_step is None
        assert engine.current_step("broken") is None

        with pytest.raises(StepNotFoundError):
            await engine.respond("broken", "again")


class TestActionFailures:
    """Test action step failure and retry."""

    async def test_builtin_action_without_issue_fails(self, engine):
        engine.start(WORKFLOW_ID, {})
        await engine.respond(WORKFLOW_ID, "Yes")
        await engine.respond(WORKFLOW_ID, "my-tests.md")

        with pytest.raises(ActionExecutionError) as exc_info:
            await engine.respond(WORKFLOW_ID, "")

        error = exc_info.value
        assert error.step_id == "generate_test_cases"
        assert "Missing required data: issue or filename" in str(error)
        assert isinstance(error.__cause__, ValueError)

        # Still active, still on the action step
        active = engine.list_active()
        assert len(active) == 1
        assert active[0].definition_id == WORKFLOW_ID
        assert active[0].current_step_id == "generate_test_cases"

    async def test_retry_after_failure_succeeds(self):
        engine = confirm_engine()
        engine.start("confirm", {})
        await engine.respond("confirm", "Go")

        with pytest.raises(ActionExecutionError):
            await engine.respond("confirm", "nope")
        assert engine.current_step("confirm").id == "confirm"
        assert len(engine.store) == 1

        result = await engine.respond("confirm", "ok")
        assert result.completed is True
        assert result.result["confirm_result"] == {"message": "confirmed"}
        assert len(engine.store) == 0

    async def test_unknown_operation(self):
        definition = WorkflowDefinition(
            id="unknown_op",
            name="Unknown op",
            trigger="get_tasks",
            steps=[ActionStep(id="run", prompt="Running", operation="does_not_exist")],
        )
        engine = WorkflowEngine(WorkflowRegistry([definition]))
        engine.start("unknown_op", {})

        with pytest.raises(ActionExecutionError) as exc_info:
            await engine.respond("unknown_op", "")

        assert "Unknown action: does_not_exist" in str(exc_info.value)
        assert engine.current_step("unknown_op").id == "run"


class TestCancelAndList:
    """Test cancel and list_active."""

    def test_cancel_unknown_returns_false(self, engine):
        engine.start(WORKFLOW_ID, {})
        before = engine.list_active()

        assert engine.cancel("nope") is False
        assert engine.list_active() == before

    def test_cancel_known_removes_run(self, engine):
        engine.start(WORKFLOW_ID, {})

        assert engine.cancel(WORKFLOW_ID) is True
        assert engine.current_step(WORKFLOW_ID) is None
        assert engine.list_active() == []
        assert engine.cancel(WORKFLOW_ID) is False

    async def test_list_active_tracks_each_workflow(self, engine):
        other = confirm_engine().registry.get("confirm")
        engine.registry.register(other)
        engine.actions["require_ok"] = require_ok

        engine.start(WORKFLOW_ID, {})
        engine.start("confirm", {})
        await engine.respond("confirm", "Go")

        active = {s.definition_id: s for s in engine.list_active()}
        assert set(active) == {WORKFLOW_ID, "confirm"}
        assert active[WORKFLOW_ID].current_step_id == "ask_generate_test_cases"
        assert active["confirm"].current_step_id == "confirm"
        assert all(not s.completed for s in active.values())

        await engine.respond("confirm", "ok")
        engine.cancel(WORKFLOW_ID)
        assert engine.list_active() == []

    def test_engines_do_not_share_state(self, engine):
        other = WorkflowEngine(engine.registry)
        engine.start(WORKFLOW_ID, {})

        assert other.list_active() == []

    def test_injected_store_is_used(self, engine):
        store = ActiveWorkflowStore()
        injected = WorkflowEngine(engine.registry, store=store)
        injected.start(WORKFLOW_ID, {})

        assert WORKFLOW_ID in store


class GatedAction:
    """Action that waits on an event, so tests can act while it is running."""

    def __init__(self):
        self.calls = []
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self, data):
        self.calls.append(data.get("act"))
        self.started.set()
        await self.release.wait()
        return {"message": f"ran with {data.get('act')}"}


def gated_engine(action: GatedAction) -> WorkflowEngine:
    definition = WorkflowDefinition(
        id="gated",
        name="Gated",
        trigger="get_tasks",
        steps=[ActionStep(id="act", prompt="Running", operation="gated")],
    )
    return WorkflowEngine(WorkflowRegistry([definition]), actions={"gated": action})


class TestOverlappingResponds:
    """Test respond calls that overlap while an action is running."""

    async def test_second_respond_waits_for_first(self):
        action = GatedAction()
        engine = gated_engine(action)
        engine.start("gated", {})

        first = asyncio.create_task(engine.respond("gated", "a"))
        second = asyncio.create_task(engine.respond("gated", "b"))
        await action.started.wait()
        action.release.set()

        result = await first
        with pytest.raises(NoActiveInstanceError):
            await second

        assert action.calls == ["a"]
        assert result.completed is True
        assert result.result["act"] == "a"
        assert result.result["act_result"] == {"message": "ran with a"}

    async def test_cancel_during_action(self):
        action = GatedAction()
        engine = gated_engine(action)
        engine.start("gated", {})

        pending = asyncio.create_task(engine.respond("gated", "a"))
        await action.started.wait()
        assert engine.cancel("gated") is True
        action.release.set()

        with pytest.raises(NoActiveInstanceError):
            await pending
        assert engine.list_active() == []

    async def test_restart_during_action_keeps_new_run(self):
        action = GatedAction()
        engine = gated_engine(action)
        engine.start("gated", {"act": "old"})

        pending = asyncio.create_task(engine.respond("gated", "a"))
        await action.started.wait()
        replacement = engine.start("gated", {"note": "fresh"})
        action.release.set()

        with pytest.raises(NoActiveInstanceError):
            await pending
        assert engine.store.get("gated") is replacement
        assert replacement.data == {"note": "fresh"}
        assert replacement.completed is False


class TestActiveStoreOrder:
    """Test that list_active follows the most recent start of each run."""

    def test_restart_moves_run_to_end(self):
        engine = confirm_engine()
        engine.registry.register(TEST_CASE_DEFINITION)

        engine.start(WORKFLOW_ID, {})
        engine.start("confirm", {})
        engine.start(WORKFLOW_ID, {})

        assert [s.definition_id for s in engine.list_active()] == ["confirm", WORKFLOW_ID]
