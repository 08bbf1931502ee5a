"""Enumerations shared by the Jira client and the workflow engine."""
import enum


class StepKind(str, enum.Enum):
    """Kind of a workflow step.

    - question: presents a fixed list of choices
    - input: asks for free text
    - action: runs an operation against the accumulated workflow data
    """

    QUESTION = "question"
    INPUT = "input"
    ACTION = "action"


class IssueType(str, enum.Enum):
    """Standard Jira issue type names used by the canned queries."""

    BUG = "Bug"
    TASK = "Task"
    STORY = "Story"


# Statuses treated as closed by the open-issues query
CLOSED_STATUSES: tuple[str, ...] = ("Done", "Closed")
