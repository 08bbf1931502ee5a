"""Operations run by action steps.

An action receives the workflow's accumulated data and returns a result
mapping, or raises to signal failure. The engine records the result under
``"<step id>_result"`` and wraps any exception in ``ActionExecutionError``.
Actions are looked up by name from the table the engine is built with.
"""
from typing import Any, Awaitable, Callable, Mapping

from .schemas import WorkflowValue

WorkflowAction = Callable[[Mapping[str, WorkflowValue]], Awaitable[dict[str, Any]]]


def _issue_key_and_summary(issue: Any) -> tuple[str, str]:
    """Pull key and summary out of a Jira issue record."""
    if not isinstance(issue, Mapping):
        raise ValueError("Workflow data 'issue' is not an issue record")
    key = issue.get("key")
    if not key:
        raise ValueError("Issue record has no key")
    fields = issue.get("fields") or {}
    return key, fields.get("summary", "")


async def generate_test_cases(data: Mapping[str, WorkflowValue]) -> dict[str, Any]:
    """Prepare test-case generation details for an issue.

    Requires the fetched ``issue`` and a ``filename``. The filename prompt
    records its answer under the step id ``get_filename``, which is used
    when no explicit ``filename`` is present.
    """
    issue = data.get("issue")
    filename = data.get("filename") or data.get("get_filename")

    if not issue or not filename:
        raise ValueError("Missing required data: issue or filename")

    issue_key, summary = _issue_key_and_summary(issue)

    # Generation itself happens on the caller's side; hand back what it needs
    return {
        "success": True,
        "issueKey": issue_key,
        "issueSummary": summary,
        "filename": filename,
        "message": f"Ready to generate test cases for {issue_key} with filename: {filename}",
    }


DEFAULT_ACTIONS: dict[str, WorkflowAction] = {
    "generate_test_cases": generate_test_cases,
}
