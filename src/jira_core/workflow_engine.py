"""Lifecycle of active workflow instances.

A workflow run moves through its definition's steps one response at a time:

    started -> active(step) -> active(next step) ... -> completed
                           \\-> cancelled

Only one instance per workflow id is tracked. Starting a workflow that is
already active replaces the earlier run. Completed and cancelled runs are
dropped from the store and nothing about them is kept.
"""
import asyncio
import logging
from typing import Iterator, Mapping, Optional

from .schemas import (
    ActionStep,
    ActiveWorkflowSummary,
    RespondResult,
    WorkflowDefinition,
    WorkflowInstance,
    WorkflowStep,
    WorkflowValue,
)
from .workflow_actions import DEFAULT_ACTIONS, WorkflowAction
from .workflow_registry import WorkflowRegistry

logger = logging.getLogger("jira-core.workflow_engine")


class WorkflowError(Exception):
    """Base class for workflow engine failures."""

    def __init__(self, message: str, definition_id: str):
        super().__init__(message)
        self.definition_id = definition_id


class DefinitionNotFoundError(WorkflowError):
    """Raised when a workflow id is unknown to the registry."""

    def __init__(self, definition_id: str):
        super().__init__(f"Workflow {definition_id} not found", definition_id)


class NoActiveInstanceError(WorkflowError):
    """Raised when responding to a workflow that has no active run."""

    def __init__(self, definition_id: str):
        super().__init__(f"No active workflow found for {definition_id}", definition_id)


class StepNotFoundError(WorkflowError):
    """Raised when a run points at a step its definition does not have."""

    def __init__(self, definition_id: str, step_id: str):
        super().__init__(f"Step {step_id} not found in workflow {definition_id}", definition_id)
        self.step_id = step_id


class ActionExecutionError(WorkflowError):
    """Raised when an action step's operation fails.

    The run stays on the action step so the call can be retried.
    """

    def __init__(self, definition_id: str, step_id: str, reason: str):
        super().__init__(f"Error executing workflow action: {reason}", definition_id)
        self.step_id = step_id
        self.reason = reason


class ActiveWorkflowStore:
    """Active workflow instances keyed by workflow id, in start order."""

    def __init__(self) -> None:
        self._instances: dict[str, WorkflowInstance] = {}

    def get(self, definition_id: str) -> Optional[WorkflowInstance]:
        return self._instances.get(definition_id)

    def put(self, instance: WorkflowInstance) -> None:
        """Add a run, replacing any run with the same id and moving it to the end."""
        self._instances.pop(instance.definition_id, None)
        self._instances[instance.definition_id] = instance

    def remove(self, definition_id: str) -> bool:
        return self._instances.pop(definition_id, None) is not None

    def clear(self) -> None:
        self._instances.clear()

    def __iter__(self) -> Iterator[WorkflowInstance]:
        return iter(list(self._instances.values()))

    def __contains__(self, definition_id: object) -> bool:
        return definition_id in self._instances

    def __len__(self) -> int:
        return len(self._instances)


class WorkflowEngine:
    """Starts, advances, completes and cancels workflow runs.

    Args:
        registry: Definitions the engine can start
        store: Table of active runs (a new empty store if omitted)
        actions: Operation name -> action callable for action steps
    """

    def __init__(
        self,
        registry: WorkflowRegistry,
        store: Optional[ActiveWorkflowStore] = None,
        actions: Optional[Mapping[str, WorkflowAction]] = None,
    ):
        self.registry = registry
        self.store = store if store is not None else ActiveWorkflowStore()
        self.actions: dict[str, WorkflowAction] = dict(DEFAULT_ACTIONS if actions is None else actions)
        # Serializes respond calls, which may suspend while an action runs
        self._respond_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Definitions
    # ------------------------------------------------------------------

    def get_definition(self, definition_id: str) -> Optional[WorkflowDefinition]:
        return self.registry.get(definition_id)

    def list_definitions(self) -> list[WorkflowDefinition]:
        return self.registry.list_definitions()

    def trigger_for(self, tool_name: str, context: Optional[Mapping[str, WorkflowValue]] = None) -> Optional[WorkflowDefinition]:
        """Return the workflow triggered by ``tool_name`` without starting it.

        ``context`` is accepted for symmetry with ``start``; lookup is by
        tool name only.
        """
        return self.registry.find_by_trigger(tool_name)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, definition_id: str, initial_context: Optional[Mapping[str, WorkflowValue]] = None) -> WorkflowInstance:
        """Create a run positioned on the definition's entry step.

        Raises:
            DefinitionNotFoundError: If no such definition is registered
        """
        definition = self.registry.get(definition_id)
        if definition is None:
            logger.warning(f"Cannot start unknown workflow: {definition_id}")
            raise DefinitionNotFoundError(definition_id)

        if definition_id in self.store:
            logger.warning(f"Workflow {definition_id} already active; replacing the existing run")

        instance = WorkflowInstance(
            definition_id=definition_id,
            current_step_id=definition.entry_step.id,
            data=dict(initial_context or {}),
        )
        self.store.put(instance)
        logger.info(f"Started workflow {definition_id} at step {instance.current_step_id}")
        return instance

    def current_step(self, definition_id: str) -> Optional[WorkflowStep]:
        """Step the active run is waiting on, or None."""
        instance = self.store.get(definition_id)
        if instance is None:
            return None
        definition = self.registry.get(definition_id)
        if definition is None:
            return None
        return definition.get_step(instance.current_step_id)

    async def respond(self, definition_id: str, response: str) -> RespondResult:
        """Record a response for the current step and move the run forward.

        Responses are handled one at a time. If the run is cancelled or
        replaced while its action is running, the action's result is dropped.

        Raises:
            NoActiveInstanceError: If the workflow has no active run, or the run
                was cancelled or replaced during its action
            DefinitionNotFoundError: If the definition was removed after start
            StepNotFoundError: If the run's current step is not in the definition
            ActionExecutionError: If an action step's operation fails
        """
        async with self._respond_lock:
            return await self._respond(definition_id, response)

    async def _respond(self, definition_id: str, response: str) -> RespondResult:
        instance = self.store.get(definition_id)
        if instance is None:
            logger.warning(f"Response for inactive workflow: {definition_id}")
            raise NoActiveInstanceError(definition_id)

        definition = self.registry.get(definition_id)
        if definition is None:
            raise DefinitionNotFoundError(definition_id)

        step = definition.get_step(instance.current_step_id)
        if step is None:
            logger.error(f"Workflow {definition_id} is on unknown step {instance.current_step_id}")
            raise StepNotFoundError(definition_id, instance.current_step_id)

        instance.record(step.id, response)

        if isinstance(step, ActionStep):
            result = await self._run_action(definition_id, step, instance)
            if self.store.get(definition_id) is not instance:
                logger.warning(f"Workflow {definition_id} was cancelled or replaced while {step.id} ran")
                raise NoActiveInstanceError(definition_id)
            instance.record(f"{step.id}_result", result)

        if step.next_step:
            instance.current_step_id = step.next_step
            next_step = definition.get_step(step.next_step)
            logger.debug(f"Workflow {definition_id}: {step.id} → {step.next_step}")
            return RespondResult(completed=False, next_step=next_step)

        instance.completed = True
        self.store.remove(definition_id)
        logger.info(f"Completed workflow {definition_id}")
        return RespondResult(completed=True, result=instance.data)

    def list_active(self) -> list[ActiveWorkflowSummary]:
        return [
            ActiveWorkflowSummary(
                definition_id=instance.definition_id,
                current_step_id=instance.current_step_id,
                completed=instance.completed,
            )
            for instance in self.store
        ]

    def cancel(self, definition_id: str) -> bool:
        """Drop the active run, if any. Recorded data and side effects stay as they are."""
        removed = self.store.remove(definition_id)
        if removed:
            logger.info(f"Cancelled workflow {definition_id}")
        return removed

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _run_action(self, definition_id: str, step: ActionStep, instance: WorkflowInstance) -> dict:
        action = self.actions.get(step.operation)
        if action is None:
            logger.warning(f"Workflow {definition_id} step {step.id} references unknown action {step.operation}")
            raise ActionExecutionError(definition_id, step.id, f"Unknown action: {step.operation}")

        try:
            return await action(dict(instance.data))
        except Exception as e:
            logger.warning(f"Action {step.operation} failed in workflow {definition_id}: {e}")
            raise ActionExecutionError(definition_id, step.id, str(e)) from e
