"""Catalog of known workflow templates.

Definitions are keyed by id and looked up either directly or by the name of
the tool call that triggers them. Iteration follows registration order;
re-registering an id replaces the definition but keeps its original slot.
"""
import logging
from typing import Iterable, Optional

from .schemas import WorkflowDefinition

logger = logging.getLogger("jira-core.workflow_registry")


class WorkflowRegistry:
    """In-memory registry of workflow definitions."""

    def __init__(self, definitions: Iterable[WorkflowDefinition] = ()) -> None:
        self._definitions: dict[str, WorkflowDefinition] = {}
        for definition in definitions:
            self.register(definition)

    def register(self, definition: WorkflowDefinition) -> None:
        """Insert or replace a definition under its id."""
        if definition.id in self._definitions:
            logger.info(f"Replacing workflow definition: {definition.id}")
        else:
            logger.debug(f"Registered workflow definition: {definition.id} (trigger: {definition.trigger})")
        self._definitions[definition.id] = definition

    def get(self, definition_id: str) -> Optional[WorkflowDefinition]:
        return self._definitions.get(definition_id)

    def find_by_trigger(self, tool_name: str) -> Optional[WorkflowDefinition]:
        """Return the earliest-registered definition triggered by ``tool_name``."""
        for definition in self._definitions.values():
            if definition.trigger == tool_name:
                return definition
        return None

    def list_definitions(self) -> list[WorkflowDefinition]:
        return list(self._definitions.values())

    def __contains__(self, definition_id: object) -> bool:
        return definition_id in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)


def default_registry() -> WorkflowRegistry:
    """Registry preloaded with the built-in workflow definitions."""
    from .workflow_definitions import BUILTIN_DEFINITIONS

    return WorkflowRegistry(BUILTIN_DEFINITIONS)
