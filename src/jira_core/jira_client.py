"""Async client for the Jira Cloud REST API (v2).

Issue and project records are returned as the JSON mappings Jira sends.
HTTP failures are translated into ``JiraAPIError`` with a message suitable
for showing to the caller.
"""
import logging
from typing import Any, Optional

import httpx

from .config import Settings
from .models import CLOSED_STATUSES, IssueType

logger = logging.getLogger("jira-core.jira_client")

DEFAULT_MAX_RESULTS = 50

# Fields requested by every search
SEARCH_FIELDS: list[str] = [
    "summary",
    "description",
    "status",
    "priority",
    "assignee",
    "reporter",
    "created",
    "updated",
    "resolution",
    "issuetype",
    "project",
]


class JiraAPIError(Exception):
    """Raised when a Jira API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class JiraConnectionError(JiraAPIError):
    """Raised when the Jira server cannot be reached."""


STATUS_MESSAGES: dict[int, str] = {
    401: "Authentication failed. Please check your Jira email and API token.",
    403: "Access denied. Please check your Jira permissions.",
    404: "Resource not found. Please check your project key or issue key.",
}


def _project_filter(project_key: Optional[str]) -> str:
    return f"project = {project_key} AND " if project_key else ""


class JiraClient:
    """Thin async wrapper around the Jira REST endpoints used by the MCP tools.

    Use as an async context manager, or call ``close()`` when done.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.domain = settings.jira_domain
        self._client = httpx.AsyncClient(
            base_url=settings.base_url,
            auth=httpx.BasicAuth(settings.jira_email, settings.jira_api_token.get_secret_value()),
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            timeout=settings.jira_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "JiraClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body (None when empty)."""
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(f"Jira API {method} {path} failed with status {status}")
            message = STATUS_MESSAGES.get(status)
            if message is None:
                message = f"Jira API error: {_error_detail(e.response) or str(e)}"
            raise JiraAPIError(message, status_code=status) from e
        except httpx.ConnectError as e:
            logger.error(f"Cannot connect to Jira at {self.domain}: {e}")
            raise JiraConnectionError(
                f"Cannot connect to Jira server at {self.domain}. "
                f"Please check the domain and ensure the server is running."
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Jira API {method} {path} request error: {type(e).__name__}: {e}")
            raise JiraAPIError(f"Jira API error: {e}") from e

        if not response.content:
            return None
        return response.json()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def get_projects(self) -> list[dict]:
        return await self._request("GET", "/project")

    async def get_project(self, project_key: str) -> dict:
        return await self._request("GET", f"/project/{project_key}")

    async def get_issue_types(self, project_key: str) -> list[dict]:
        project = await self.get_project(project_key)
        return project.get("issueTypes", [])

    async def get_project_components(self, project_key: str) -> list[dict]:
        return await self._request("GET", f"/project/{project_key}/components")

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    async def search_issues(self, jql: str, max_results: int = DEFAULT_MAX_RESULTS, start_at: int = 0) -> dict:
        """Run a JQL search. Returns the raw search response (``total``, ``issues``, ...)."""
        logger.debug(f"JQL search: {jql} (max {max_results}, start {start_at})")
        return await self._request("POST", "/search", json={
            "jql": jql,
            "startAt": start_at,
            "maxResults": max_results,
            "fields": SEARCH_FIELDS,
        })

    async def _search_issue_list(self, jql: str, max_results: int) -> list[dict]:
        result = await self.search_issues(jql, max_results)
        return result.get("issues", [])

    async def get_issue(self, issue_key: str) -> dict:
        return await self._request("GET", f"/issue/{issue_key}")

    async def get_project_issues(self, project_key: str, max_results: int = DEFAULT_MAX_RESULTS) -> list[dict]:
        jql = f"project = {project_key} ORDER BY created DESC"
        return await self._search_issue_list(jql, max_results)

    async def get_my_issues(self, max_results: int = DEFAULT_MAX_RESULTS) -> list[dict]:
        jql = "assignee = currentUser() ORDER BY updated DESC"
        return await self._search_issue_list(jql, max_results)

    async def get_open_issues(self, project_key: Optional[str] = None, max_results: int = DEFAULT_MAX_RESULTS) -> list[dict]:
        status_filter = " AND ".join(f'status != "{status}"' for status in CLOSED_STATUSES)
        jql = f"{_project_filter(project_key)}{status_filter} ORDER BY priority DESC, updated DESC"
        return await self._search_issue_list(jql, max_results)

    async def get_issues_by_type(
        self,
        issue_type: IssueType,
        project_key: Optional[str] = None,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> list[dict]:
        jql = f'{_project_filter(project_key)}issuetype = "{issue_type.value}" ORDER BY priority DESC, created DESC'
        return await self._search_issue_list(jql, max_results)

    async def get_bugs(self, project_key: Optional[str] = None, max_results: int = DEFAULT_MAX_RESULTS) -> list[dict]:
        return await self.get_issues_by_type(IssueType.BUG, project_key, max_results)

    async def get_tasks(self, project_key: Optional[str] = None, max_results: int = DEFAULT_MAX_RESULTS) -> list[dict]:
        return await self.get_issues_by_type(IssueType.TASK, project_key, max_results)

    async def get_stories(self, project_key: Optional[str] = None, max_results: int = DEFAULT_MAX_RESULTS) -> list[dict]:
        return await self.get_issues_by_type(IssueType.STORY, project_key, max_results)

    async def create_issue(self, project_key: str, summary: str, description: str, issue_type: str = "Task") -> dict:
        """Create an issue and return the full record.

        Jira answers a create with only ``id``/``key``/``self``, so the new
        issue is fetched back for display.
        """
        created = await self._request("POST", "/issue", json={
            "fields": {
                "project": {"key": project_key},
                "summary": summary,
                "description": description,
                "issuetype": {"name": issue_type},
            }
        })
        logger.info(f"Created issue {created['key']} in project {project_key}")
        return await self.get_issue(created["key"])

    async def update_issue(self, issue_key: str, fields: dict) -> None:
        await self._request("PUT", f"/issue/{issue_key}", json={"fields": fields})
        logger.info(f"Updated issue {issue_key}: {', '.join(fields)}")

    async def get_transitions(self, issue_key: str) -> list[dict]:
        result = await self._request("GET", f"/issue/{issue_key}/transitions")
        return result.get("transitions", [])

    async def transition_issue(self, issue_key: str, transition_id: str) -> None:
        await self._request("POST", f"/issue/{issue_key}/transitions", json={
            "transition": {"id": transition_id}
        })
        logger.info(f"Transitioned issue {issue_key} with transition {transition_id}")

    async def add_comment(self, issue_key: str, comment: str) -> dict:
        return await self._request("POST", f"/issue/{issue_key}/comment", json={"body": comment})


def _error_detail(response: httpx.Response) -> Optional[str]:
    """Best-effort extraction of Jira's error text from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or None
    if isinstance(body, dict):
        messages = list(body.get("errorMessages") or [])
        messages.extend(f"{field}: {msg}" for field, msg in (body.get("errors") or {}).items())
        if messages:
            return "; ".join(messages)
    return None
