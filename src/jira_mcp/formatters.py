"""Shared formatting functions for MCP responses.

Tracker records arrive as Jira JSON mappings; workflow objects are the
pydantic schemas from ``jira_core.schemas``.
"""
from typing import Optional

from jira_core.schemas import ActiveWorkflowSummary, QuestionStep, WorkflowDefinition, WorkflowStep


def format_date(value: Optional[str]) -> str:
    """Date part of a Jira timestamp (e.g. 2024-01-15T10:30:00.000+0000 -> 2024-01-15)."""
    if not value:
        return "unknown"
    return value.split("T", 1)[0]


def _yes_no(flag) -> str:
    return "Yes" if flag else "No"


def _display_name(person: Optional[dict], default: str) -> str:
    return (person or {}).get("displayName") or default


# ============================================================================
# Projects
# ============================================================================

def format_project_summary(project: dict) -> str:
    """Format a project for list views."""
    return (f"**{project['name']}** ({project['key']})\n"
            f"Type: {project.get('projectTypeKey', 'unknown')}\n"
            f"Lead: {_display_name(project.get('lead'), 'Unknown')}\n"
            f"Private: {_yes_no(project.get('isPrivate'))}\n"
            f"Archived: {_yes_no(project.get('archived'))}\n")


def format_project(project: dict) -> str:
    """Format a single project with details."""
    category = (project.get('projectCategory') or {}).get('name') or 'N/A'
    return f"""**{project['name']}** ({project['key']})
Type: {project.get('projectTypeKey', 'unknown')}
Lead: {_display_name(project.get('lead'), 'Unknown')}
Private: {_yes_no(project.get('isPrivate'))}
Archived: {_yes_no(project.get('archived'))}
Category: {category}
Issue Types: {len(project.get('issueTypes') or [])}
Components: {len(project.get('components') or [])}"""


def format_issue_type(issue_type: dict) -> str:
    return (f"**{issue_type['name']}** ({issue_type['id']})\n"
            f"Description: {issue_type.get('description') or 'No description'}\n"
            f"Hierarchy Level: {issue_type.get('hierarchyLevel', 'N/A')}\n")


def format_component(component: dict) -> str:
    return (f"**{component['name']}**\n"
            f"ID: {component['id']}\n"
            f"Description: {component.get('description') or 'No description'}\n"
            f"Lead: {_display_name(component.get('lead'), 'No lead')}\n")


# ============================================================================
# Issues
# ============================================================================

def format_issue(issue: dict) -> str:
    """Format an issue with full details."""
    fields = issue.get('fields') or {}
    return f"""**{issue['key']}** - {fields.get('summary', '(no summary)')}
Type: {(fields.get('issuetype') or {}).get('name', 'unknown')}
Status: {(fields.get('status') or {}).get('name', 'unknown')}
Priority: {(fields.get('priority') or {}).get('name', 'None')}
Assignee: {_display_name(fields.get('assignee'), 'Unassigned')}
Reporter: {_display_name(fields.get('reporter'), 'Unknown')}
Created: {format_date(fields.get('created'))}
Updated: {format_date(fields.get('updated'))}
Description: {fields.get('description') or 'No description'}
Resolution: {(fields.get('resolution') or {}).get('name') or 'Unresolved'}"""


# Lines shown per issue in list views, by list kind
ISSUE_LIST_LINES: dict[str, tuple[str, ...]] = {
    "search": ("type", "status", "priority", "assignee", "reporter", "created", "updated"),
    "project": ("type", "status", "priority", "assignee", "created"),
    "mine": ("type", "status", "priority", "project", "updated"),
    "open": ("type", "status", "priority", "assignee", "project"),
    "typed": ("status", "priority", "assignee", "project", "created"),
}


def format_issue_summary(issue: dict, kind: str = "search") -> str:
    """Format an issue for list views; ``kind`` picks which fields are shown."""
    fields = issue.get('fields') or {}
    values = {
        "type": ("Type", (fields.get('issuetype') or {}).get('name', 'unknown')),
        "status": ("Status", (fields.get('status') or {}).get('name', 'unknown')),
        "priority": ("Priority", (fields.get('priority') or {}).get('name', 'None')),
        "assignee": ("Assignee", _display_name(fields.get('assignee'), 'Unassigned')),
        "reporter": ("Reporter", _display_name(fields.get('reporter'), 'Unknown')),
        "project": ("Project", (fields.get('project') or {}).get('name', 'unknown')),
        "created": ("Created", format_date(fields.get('created'))),
        "updated": ("Updated", format_date(fields.get('updated'))),
    }
    lines = [f"**{issue['key']}** - {fields.get('summary', '(no summary)')}"]
    for name in ISSUE_LIST_LINES[kind]:
        label, value = values[name]
        lines.append(f"{label}: {value}")
    return "\n".join(lines) + "\n"


def format_issue_list(issues: list[dict], kind: str = "search") -> str:
    return "\n---\n".join(format_issue_summary(issue, kind) for issue in issues)


def format_comment(comment: dict) -> str:
    return (f"Comment ID: {comment.get('id', 'unknown')}\n"
            f"Author: {_display_name(comment.get('author'), 'Unknown')}\n"
            f"Created: {format_date(comment.get('created'))}\n"
            f"Body: {comment.get('body', '')}")


def format_transition(transition: dict) -> str:
    target = (transition.get('to') or {}).get('name')
    target_info = f" → {target}" if target else ""
    return f"- {transition['name']} (ID: {transition['id']}){target_info}"


# ============================================================================
# Workflows
# ============================================================================

def format_workflow_step(step: WorkflowStep, label: str = "Current Step") -> str:
    """Format a workflow step with its prompt, options and required flag."""
    text = f"**{label}:** {step.id}\n\n**Message:** {step.prompt}"
    if isinstance(step, QuestionStep) and step.options:
        text += f"\n\n**Options:** {', '.join(step.options)}"
    if step.required:
        text += "\n\n**Required:** Yes"
    return text


def format_workflow_prompt(definition: WorkflowDefinition, step: WorkflowStep) -> str:
    """Format the notice appended to a tool result when a workflow starts."""
    text = f"\n\n---\n**Workflow Triggered: {definition.name}**\n\n{step.prompt}"
    if isinstance(step, QuestionStep) and step.options:
        text += f"\n\nOptions: {', '.join(step.options)}"
    text += f"\n\nUse the 'respond_to_workflow' tool with workflowId '{definition.id}' to continue."
    return text


def format_workflow_definition(definition: WorkflowDefinition) -> str:
    steps = " → ".join(step.id for step in definition.steps)
    return (f"**{definition.name}** ({definition.id})\n"
            f"Description: {definition.description or 'No description'}\n"
            f"Trigger: {definition.trigger}\n"
            f"Steps: {steps}")


def format_active_workflow(summary: ActiveWorkflowSummary) -> str:
    return (f"**Workflow ID:** {summary.definition_id}\n"
            f"**Current Step:** {summary.current_step_id}\n"
            f"**Status:** {'Completed' if summary.completed else 'Active'}")


def format_workflow_completion(result: Optional[dict]) -> str:
    """Format the result of a completed workflow.

    Action results are recorded as ``<step id>_result``; the message of the
    last one recorded is shown.
    """
    message = None
    for key, value in (result or {}).items():
        if key.endswith("_result") and isinstance(value, dict) and value.get("message"):
            message = value["message"]
    return f"**Workflow Completed Successfully!**\n\n{message or 'Workflow has been completed.'}"
