"""Pydantic schemas for workflow definitions and runs."""
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .models import StepKind

# Values held in a workflow's data: caller responses (str), structured
# records such as the fetched issue, and action results (mappings).
WorkflowValue = Union[str, dict[str, Any]]


# Workflow Step Schemas

class WorkflowStepBase(BaseModel):
    """Fields common to every step kind."""

    id: str = Field(..., min_length=1, description="Unique within the owning workflow")
    prompt: str = Field(..., description="Text shown to the caller")
    required: bool = Field(False, description="Advisory only; not enforced by the engine")
    next_step: Optional[str] = Field(None, description="Successor step id, None if terminal")

    model_config = ConfigDict(frozen=True)


class QuestionStep(WorkflowStepBase):
    """Step offering a fixed set of choices.

    Options are informational: the caller's response is recorded as given.
    """

    kind: Literal["question"] = StepKind.QUESTION.value
    options: list[str] = Field(default_factory=list)


class InputStep(WorkflowStepBase):
    """Step requesting free text."""

    kind: Literal["input"] = StepKind.INPUT.value


class ActionStep(WorkflowStepBase):
    """Step that runs a registered operation instead of prompting.

    The operation is referenced by name so definitions stay serializable.
    """

    kind: Literal["action"] = StepKind.ACTION.value
    operation: str = Field(..., min_length=1, description="Name of a registered workflow action")


WorkflowStep = Annotated[
    Union[QuestionStep, InputStep, ActionStep],
    Field(discriminator="kind"),
]


# Workflow Definition Schemas

class WorkflowDefinition(BaseModel):
    """Immutable workflow template.

    ``steps[0]`` is the entry point. ``next_step`` references are expected to
    resolve within the same definition and to form an acyclic chain; neither
    is checked here.
    """

    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    trigger: str = Field(..., description="Tool name that starts this workflow automatically")
    steps: list[WorkflowStep] = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)

    @property
    def entry_step(self) -> WorkflowStep:
        return self.steps[0]

    def get_step(self, step_id: str) -> Optional[WorkflowStep]:
        """Return the step with ``step_id``, or None."""
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


# Workflow Run Schemas

class WorkflowInstance(BaseModel):
    """One in-progress run of a workflow definition."""

    definition_id: str
    current_step_id: str
    data: dict[str, WorkflowValue] = Field(default_factory=dict)
    completed: bool = False

    def record(self, key: str, value: WorkflowValue) -> None:
        """Store a value in the run's data under ``key``."""
        self.data[key] = value


class RespondResult(BaseModel):
    """Outcome of feeding a response into a workflow."""

    completed: bool
    next_step: Optional[WorkflowStep] = None
    result: Optional[dict[str, WorkflowValue]] = None


class ActiveWorkflowSummary(BaseModel):
    """Snapshot row for list views of active workflows."""

    definition_id: str
    current_step_id: str
    completed: bool = False
