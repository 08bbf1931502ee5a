"""MCP tool definitions for the Jira server.

This module provides the definitive list of tools exposed to MCP clients.
Argument names are camelCase to match Jira's own vocabulary.
"""

from mcp.types import Tool

from jira_core.workflow_definitions import GET_ISSUE_TOOL

MAX_RESULTS_PROPERTY = {
    "type": "number",
    "description": "Maximum number of results to return (default: 50)",
}

OPTIONAL_PROJECT_KEY_PROPERTY = {
    "type": "string",
    "description": "The key of the project (optional)",
}

WORKFLOW_ID_PROPERTY = {
    "type": "string",
    "description": "The ID of the workflow (e.g., 'test_case_generation')",
}


def _typed_issue_tool(name: str, description: str) -> Tool:
    return Tool(
        name=name,
        description=description,
        inputSchema={
            "type": "object",
            "properties": {
                "projectKey": OPTIONAL_PROJECT_KEY_PROPERTY,
                "maxResults": MAX_RESULTS_PROPERTY,
            },
        }
    )


def get_tools() -> list[Tool]:
    """Get the list of all MCP tools for Jira access and workflows."""
    return [
        # ============================================================================
        # Project Tools
        # ============================================================================
        Tool(
            name="get_projects",
            description="Get all projects from Jira. "
                       "Use get_project() for details of one project.",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
        Tool(
            name="get_project",
            description="Get a specific project by key. "
                       "Errors: 404 (not found), 403 (no permission).",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectKey": {
                        "type": "string",
                        "description": "The key of the project to get"
                    }
                },
                "required": ["projectKey"]
            }
        ),
        Tool(
            name="get_issue_types",
            description="Get available issue types for a project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectKey": {
                        "type": "string",
                        "description": "The key of the project"
                    }
                },
                "required": ["projectKey"]
            }
        ),
        Tool(
            name="get_project_components",
            description="Get components for a project.",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectKey": {
                        "type": "string",
                        "description": "The key of the project"
                    }
                },
                "required": ["projectKey"]
            }
        ),

        # ============================================================================
        # Issue Tools
        # ============================================================================
        Tool(
            name="search_issues",
            description="Search for issues using JQL (Jira Query Language).",
            inputSchema={
                "type": "object",
                "properties": {
                    "jql": {
                        "type": "string",
                        "description": "JQL query string (e.g., \"project = PROJECTKEY AND status = 'In Progress'\")"
                    },
                    "maxResults": MAX_RESULTS_PROPERTY,
                },
                "required": ["jql"]
            }
        ),
        Tool(
            name=GET_ISSUE_TOOL,
            description="Get a specific issue by key. "
                       "May start the test case generation workflow; follow the instructions "
                       "at the end of the result and answer with respond_to_workflow().",
            inputSchema={
                "type": "object",
                "properties": {
                    "issueKey": {
                        "type": "string",
                        "description": "The key of the issue to get (e.g., \"PROJECT-123\")"
                    }
                },
                "required": ["issueKey"]
            }
        ),
        Tool(
            name="get_project_issues",
            description="Get all issues for a specific project, newest first.",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectKey": {
                        "type": "string",
                        "description": "The key of the project"
                    },
                    "maxResults": MAX_RESULTS_PROPERTY,
                },
                "required": ["projectKey"]
            }
        ),
        Tool(
            name="get_my_issues",
            description="Get issues assigned to the current user.",
            inputSchema={
                "type": "object",
                "properties": {
                    "maxResults": MAX_RESULTS_PROPERTY,
                }
            }
        ),
        _typed_issue_tool("get_open_issues", "Get open/unresolved issues (status not Done or Closed)."),
        _typed_issue_tool("get_bugs", "Get bug issues."),
        _typed_issue_tool("get_tasks", "Get task issues."),
        _typed_issue_tool("get_stories", "Get story issues."),
        Tool(
            name="create_issue",
            description="Create a new issue.",
            inputSchema={
                "type": "object",
                "properties": {
                    "projectKey": {
                        "type": "string",
                        "description": "The key of the project"
                    },
                    "summary": {
                        "type": "string",
                        "description": "Summary/title of the issue"
                    },
                    "description": {
                        "type": "string",
                        "description": "Description of the issue"
                    },
                    "issueType": {
                        "type": "string",
                        "description": "Type of issue (Task, Bug, Story, etc.; default: Task)"
                    }
                },
                "required": ["projectKey", "summary", "description"]
            }
        ),
        Tool(
            name="update_issue",
            description="Update the summary and/or description of an issue.",
            inputSchema={
                "type": "object",
                "properties": {
                    "issueKey": {
                        "type": "string",
                        "description": "The key of the issue (e.g., \"PROJECT-123\")"
                    },
                    "summary": {
                        "type": "string",
                        "description": "New summary/title"
                    },
                    "description": {
                        "type": "string",
                        "description": "New description"
                    }
                },
                "required": ["issueKey"]
            }
        ),
        Tool(
            name="add_comment",
            description="Add a comment to an issue.",
            inputSchema={
                "type": "object",
                "properties": {
                    "issueKey": {
                        "type": "string",
                        "description": "The key of the issue (e.g., \"PROJECT-123\")"
                    },
                    "comment": {
                        "type": "string",
                        "description": "The comment text to add"
                    }
                },
                "required": ["issueKey", "comment"]
            }
        ),
        Tool(
            name="get_transitions",
            description="List the status transitions currently available for an issue. "
                       "Use the returned ID with transition_issue().",
            inputSchema={
                "type": "object",
                "properties": {
                    "issueKey": {
                        "type": "string",
                        "description": "The key of the issue (e.g., \"PROJECT-123\")"
                    }
                },
                "required": ["issueKey"]
            }
        ),
        Tool(
            name="transition_issue",
            description="Move an issue through its workflow using a transition ID from get_transitions().",
            inputSchema={
                "type": "object",
                "properties": {
                    "issueKey": {
                        "type": "string",
                        "description": "The key of the issue (e.g., \"PROJECT-123\")"
                    },
                    "transitionId": {
                        "type": "string",
                        "description": "ID of the transition to apply"
                    }
                },
                "required": ["issueKey", "transitionId"]
            }
        ),

        # ============================================================================
        # Workflow Tools
        # ============================================================================
        Tool(
            name="list_workflows",
            description="List the workflows this server knows, with their triggers and steps.",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
        Tool(
            name="start_workflow",
            description="Start a workflow explicitly. Replaces any active run of the same workflow. "
                       "Pass issueKey to load that issue into the workflow's data.",
            inputSchema={
                "type": "object",
                "properties": {
                    "workflowId": WORKFLOW_ID_PROPERTY,
                    "issueKey": {
                        "type": "string",
                        "description": "Issue to attach to the workflow (optional)"
                    }
                },
                "required": ["workflowId"]
            }
        ),
        Tool(
            name="get_workflow_step",
            description="Get the current step of an active workflow.",
            inputSchema={
                "type": "object",
                "properties": {
                    "workflowId": {
                        "type": "string",
                        "description": "The ID of the workflow to check"
                    }
                },
                "required": ["workflowId"]
            }
        ),
        Tool(
            name="respond_to_workflow",
            description="Respond to the current step of an active workflow.",
            inputSchema={
                "type": "object",
                "properties": {
                    "workflowId": {
                        "type": "string",
                        "description": "The ID of the workflow to respond to"
                    },
                    "response": {
                        "type": "string",
                        "description": "The response to the current workflow step"
                    }
                },
                "required": ["workflowId", "response"]
            }
        ),
        Tool(
            name="get_active_workflows",
            description="Get all currently active workflows.",
            inputSchema={
                "type": "object",
                "properties": {},
                "required": []
            }
        ),
        Tool(
            name="cancel_workflow",
            description="Cancel an active workflow. Data already recorded and actions already run are not undone.",
            inputSchema={
                "type": "object",
                "properties": {
                    "workflowId": {
                        "type": "string",
                        "description": "The ID of the workflow to cancel"
                    }
                },
                "required": ["workflowId"]
            }
        ),
    ]
