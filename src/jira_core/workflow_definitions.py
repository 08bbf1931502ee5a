"""Built-in workflow definitions."""
from .schemas import ActionStep, InputStep, QuestionStep, WorkflowDefinition

# Tool whose result triggers the test case workflow
GET_ISSUE_TOOL = "get_issue"

TEST_CASE_GENERATION = WorkflowDefinition(
    id="test_case_generation",
    name="Test Case Generation",
    description="Generate test cases for a Jira issue",
    trigger=GET_ISSUE_TOOL,
    steps=[
        QuestionStep(
            id="ask_generate_test_cases",
            prompt="Would you like to generate test cases for this issue?",
            options=["Yes", "No"],
            next_step="get_filename",
        ),
        InputStep(
            id="get_filename",
            prompt="Please provide the name for the test case workflow markdown file:",
            required=True,
            next_step="generate_test_cases",
        ),
        ActionStep(
            id="generate_test_cases",
            prompt=(
                "Test case generation workflow completed. "
                "You can now use the provided filename to create your test cases."
            ),
            operation="generate_test_cases",
        ),
    ],
)

BUILTIN_DEFINITIONS: list[WorkflowDefinition] = [TEST_CASE_GENERATION]
