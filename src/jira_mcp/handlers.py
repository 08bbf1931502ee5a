"""MCP tool handlers.

All handlers follow a consistent pattern:
- Accept: arguments dict, a JiraClient and the process's WorkflowEngine
- Return: list[TextContent] rendered with the formatters module
- Raise on failure; the server turns exceptions into error text
- Log all operations for debugging
"""
from typing import Any
import logging

from mcp.types import TextContent

from jira_core.jira_client import DEFAULT_MAX_RESULTS, JiraClient
from jira_core.workflow_definitions import GET_ISSUE_TOOL
from jira_core.workflow_engine import WorkflowEngine

from . import formatters

logger = logging.getLogger("jira-mcp.handlers")


class ToolInputError(ValueError):
    """Raised when a tool call is missing arguments or targets nothing."""


def _require(arguments: dict, name: str) -> Any:
    value = arguments.get(name)
    if value is None or value == "":
        raise ToolInputError(f"Missing required argument: {name}")
    return value


def _max_results(arguments: dict) -> int:
    value = arguments.get("maxResults")
    return int(value) if value else DEFAULT_MAX_RESULTS


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _project_suffix(project_key) -> str:
    return f" for project {project_key}" if project_key else ""


# ============================================================================
# Project Handlers
# ============================================================================

async def handle_get_projects(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    """List all projects visible to the configured account."""
    projects = await jira.get_projects()
    logger.info(f"Successfully listed {len(projects)} projects")

    items_text = "\n---\n".join(formatters.format_project_summary(p) for p in projects)
    return _text(f"Found {len(projects)} projects:\n\n{items_text}")


async def handle_get_project(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    project_key = _require(arguments, "projectKey")
    project = await jira.get_project(project_key)
    logger.info(f"Successfully retrieved project {project_key}")

    return _text(f"Project Details:\n\n{formatters.format_project(project)}")


async def handle_get_issue_types(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    project_key = _require(arguments, "projectKey")
    issue_types = await jira.get_issue_types(project_key)
    logger.info(f"Successfully listed {len(issue_types)} issue types for project {project_key}")

    items_text = "\n---\n".join(formatters.format_issue_type(t) for t in issue_types)
    return _text(f"Available issue types for project {project_key}:\n\n{items_text}")


async def handle_get_project_components(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    project_key = _require(arguments, "projectKey")
    components = await jira.get_project_components(project_key)
    logger.info(f"Successfully listed {len(components)} components for project {project_key}")

    if not components:
        return _text(f"No components found for project {project_key}.")

    items_text = "\n---\n".join(formatters.format_component(c) for c in components)
    return _text(f"Components for project {project_key}:\n\n{items_text}")


# ============================================================================
# Issue Handlers
# ============================================================================

async def handle_search_issues(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    """Run a JQL search.

    The header reports Jira's total alongside the number of issues returned,
    which is capped by maxResults.
    """
    jql = _require(arguments, "jql")
    result = await jira.search_issues(jql, _max_results(arguments))
    issues = result.get("issues", [])
    total = result.get("total", len(issues))
    logger.info(f"JQL search returned {len(issues)} of {total} issues")

    return _text(f"Found {total} issues (showing {len(issues)}):\n\n"
                 f"{formatters.format_issue_list(issues, 'search')}")


async def handle_get_issue(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    """Fetch one issue and start the workflow it triggers, if any.

    The started workflow's first prompt is appended to the issue details.
    """
    issue_key = _require(arguments, "issueKey")
    issue = await jira.get_issue(issue_key)
    logger.info(f"Successfully retrieved issue {issue_key}")

    workflow_text = ""
    context = {"issue": issue}
    definition = engine.trigger_for(GET_ISSUE_TOOL, context)
    if definition is not None:
        engine.start(definition.id, context)
        step = engine.current_step(definition.id)
        if step is not None:
            workflow_text = formatters.format_workflow_prompt(definition, step)
        logger.info(f"get_issue triggered workflow {definition.id} for {issue_key}")

    return _text(f"Issue Details:\n\n{formatters.format_issue(issue)}{workflow_text}")


async def handle_get_project_issues(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    project_key = _require(arguments, "projectKey")
    issues = await jira.get_project_issues(project_key, _max_results(arguments))
    logger.info(f"Successfully listed {len(issues)} issues for project {project_key}")

    return _text(f"Found {len(issues)} issues for project {project_key}:\n\n"
                 f"{formatters.format_issue_list(issues, 'project')}")


async def handle_get_my_issues(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    issues = await jira.get_my_issues(_max_results(arguments))
    logger.info(f"Successfully listed {len(issues)} issues assigned to current user")

    return _text(f"Found {len(issues)} issues assigned to you:\n\n"
                 f"{formatters.format_issue_list(issues, 'mine')}")


async def handle_get_open_issues(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    project_key = arguments.get("projectKey")
    issues = await jira.get_open_issues(project_key, _max_results(arguments))
    logger.info(f"Successfully listed {len(issues)} open issues")

    return _text(f"Found {len(issues)} open issues{_project_suffix(project_key)}:\n\n"
                 f"{formatters.format_issue_list(issues, 'open')}")


async def handle_get_bugs(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    project_key = arguments.get("projectKey")
    issues = await jira.get_bugs(project_key, _max_results(arguments))
    return _text(f"Found {len(issues)} bugs{_project_suffix(project_key)}:\n\n"
                 f"{formatters.format_issue_list(issues, 'typed')}")


async def handle_get_tasks(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    project_key = arguments.get("projectKey")
    issues = await jira.get_tasks(project_key, _max_results(arguments))
    return _text(f"Found {len(issues)} tasks{_project_suffix(project_key)}:\n\n"
                 f"{formatters.format_issue_list(issues, 'typed')}")


async def handle_get_stories(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    project_key = arguments.get("projectKey")
    issues = await jira.get_stories(project_key, _max_results(arguments))
    return _text(f"Found {len(issues)} stories{_project_suffix(project_key)}:\n\n"
                 f"{formatters.format_issue_list(issues, 'typed')}")


async def handle_create_issue(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    project_key = _require(arguments, "projectKey")
    summary = _require(arguments, "summary")
    description = arguments.get("description") or ""
    issue_type = arguments.get("issueType") or "Task"

    issue = await jira.create_issue(project_key, summary, description, issue_type)
    logger.info(f"Successfully created issue {issue['key']}")

    fields = issue.get("fields") or {}
    text = (f"Issue created successfully:\n\n"
            f"**{issue['key']}** - {fields.get('summary', summary)}\n"
            f"Type: {(fields.get('issuetype') or {}).get('name', issue_type)}\n"
            f"Status: {(fields.get('status') or {}).get('name', 'unknown')}\n"
            f"Project: {(fields.get('project') or {}).get('name', project_key)}\n"
            f"Created: {formatters.format_date(fields.get('created'))}")
    return _text(text)


async def handle_update_issue(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    issue_key = _require(arguments, "issueKey")
    fields = {name: arguments[name] for name in ("summary", "description") if arguments.get(name) is not None}
    if not fields:
        raise ToolInputError("Nothing to update: provide summary and/or description")

    await jira.update_issue(issue_key, fields)
    return _text(f"Issue {issue_key} updated successfully ({', '.join(fields)}).")


async def handle_add_comment(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    issue_key = _require(arguments, "issueKey")
    comment_text = _require(arguments, "comment")
    comment = await jira.add_comment(issue_key, comment_text)
    logger.info(f"Successfully added comment {comment.get('id')} to {issue_key}")

    return _text(f"Comment added successfully to {issue_key}:\n\n{formatters.format_comment(comment)}")


async def handle_get_transitions(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    issue_key = _require(arguments, "issueKey")
    transitions = await jira.get_transitions(issue_key)

    if not transitions:
        return _text(f"No transitions available for {issue_key}.")

    items_text = "\n".join(formatters.format_transition(t) for t in transitions)
    return _text(f"Available transitions for {issue_key}:\n\n{items_text}")


async def handle_transition_issue(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    issue_key = _require(arguments, "issueKey")
    transition_id = str(_require(arguments, "transitionId"))
    await jira.transition_issue(issue_key, transition_id)
    return _text(f"Issue {issue_key} transitioned successfully (transition {transition_id}).")


# ============================================================================
# Workflow Handlers
# ============================================================================

async def handle_list_workflows(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    definitions = engine.list_definitions()
    if not definitions:
        return _text("No workflows registered.")

    items_text = "\n\n---\n\n".join(formatters.format_workflow_definition(d) for d in definitions)
    return _text(f"**Available Workflows:**\n\n{items_text}")


async def handle_start_workflow(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    """Start a workflow by id, optionally loading an issue into its data."""
    workflow_id = _require(arguments, "workflowId")
    context: dict = {}
    issue_key = arguments.get("issueKey")
    if issue_key:
        context["issue"] = await jira.get_issue(issue_key)

    instance = engine.start(workflow_id, context)
    definition = engine.get_definition(workflow_id)
    step = engine.current_step(workflow_id)

    text = f"**Workflow Started: {definition.name if definition else workflow_id}**"
    if issue_key:
        text += f"\nIssue: {issue_key}"
    if step is not None:
        text += f"\n\n{formatters.format_workflow_step(step)}"
    text += f"\n\nUse the 'respond_to_workflow' tool with workflowId '{instance.definition_id}' to continue."
    return _text(text)


async def handle_get_workflow_step(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    workflow_id = _require(arguments, "workflowId")
    step = engine.current_step(workflow_id)
    if step is None:
        raise ToolInputError(f"No active workflow found with ID: {workflow_id}")

    return _text(formatters.format_workflow_step(step))


async def handle_respond_to_workflow(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    """Feed the caller's answer into the workflow and report what comes next."""
    workflow_id = _require(arguments, "workflowId")
    response = arguments.get("response")
    if response is None:
        raise ToolInputError("Missing required argument: response")

    result = await engine.respond(workflow_id, str(response))

    if result.completed:
        logger.info(f"Workflow {workflow_id} completed")
        return _text(formatters.format_workflow_completion(result.result))
    if result.next_step is not None:
        return _text(formatters.format_workflow_step(result.next_step, label="Next Step"))
    return _text("Workflow step processed successfully.")


async def handle_get_active_workflows(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    active = engine.list_active()
    if not active:
        return _text("No active workflows found.")

    items_text = "\n\n---\n\n".join(formatters.format_active_workflow(s) for s in active)
    return _text(f"**Active Workflows:**\n\n{items_text}")


async def handle_cancel_workflow(arguments: dict, jira: JiraClient, engine: WorkflowEngine) -> list[TextContent]:
    workflow_id = _require(arguments, "workflowId")
    if not engine.cancel(workflow_id):
        raise ToolInputError(f"No active workflow found with ID: {workflow_id}")

    return _text(f"Workflow {workflow_id} has been cancelled successfully.")


HANDLERS = {
    # Project handlers
    "get_projects": handle_get_projects,
    "get_project": handle_get_project,
    "get_issue_types": handle_get_issue_types,
    "get_project_components": handle_get_project_components,
    # Issue handlers
    "search_issues": handle_search_issues,
    GET_ISSUE_TOOL: handle_get_issue,
    "get_project_issues": handle_get_project_issues,
    "get_my_issues": handle_get_my_issues,
    "get_open_issues": handle_get_open_issues,
    "get_bugs": handle_get_bugs,
    "get_tasks": handle_get_tasks,
    "get_stories": handle_get_stories,
    "create_issue": handle_create_issue,
    "update_issue": handle_update_issue,
    "add_comment": handle_add_comment,
    "get_transitions": handle_get_transitions,
    "transition_issue": handle_transition_issue,
    # Workflow handlers
    "list_workflows": handle_list_workflows,
    "start_workflow": handle_start_workflow,
    "get_workflow_step": handle_get_workflow_step,
    "respond_to_workflow": handle_respond_to_workflow,
    "get_active_workflows": handle_get_active_workflows,
    "cancel_workflow": handle_cancel_workflow,
}
