"""Shared fixtures for Jira MCP tests."""
import pytest

from jira_core.config import Settings
from jira_core.workflow_engine import WorkflowEngine
from jira_core.workflow_registry import default_registry

JIRA_BASE = "https://acme.atlassian.net/rest/api/2"


@pytest.fixture
def settings():
    """Settings for a fake Jira site, ignoring any local .env file."""
    return Settings(
        _env_file=None,
        JIRA_DOMAIN="acme.atlassian.net",
        JIRA_EMAIL="dev@acme.com",
        JIRA_API_TOKEN="token-123",
    )


@pytest.fixture
def engine():
    """Engine with the built-in workflows and an empty active store."""
    return WorkflowEngine(default_registry())


@pytest.fixture
def sample_issue():
    return {
        "id": "10001",
        "key": "PROJ-123",
        "self": f"{JIRA_BASE}/issue/10001",
        "fields": {
            "summary": "Login button does nothing",
            "description": "Clicking login on Safari has no effect.",
            "status": {"id": "3", "name": "In Progress"},
            "priority": {"id": "2", "name": "High"},
            "assignee": {"accountId": "a1", "displayName": "Jane Doe", "emailAddress": "jane@acme.com"},
            "reporter": {"accountId": "r1", "displayName": "Sam Roe", "emailAddress": "sam@acme.com"},
            "created": "2024-01-15T10:30:00.000+0000",
            "updated": "2024-01-16T08:00:00.000+0000",
            "resolution": None,
            "issuetype": {"id": "1", "name": "Bug", "hierarchyLevel": 0},
            "project": {"id": "100", "key": "PROJ", "name": "Project"},
        },
    }
