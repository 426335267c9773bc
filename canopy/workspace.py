from typing import Any

from loguru import logger

from canopy.commands import Command, CommandResult, dispatch
from canopy.domain.graph import ObjectData
from canopy.domain.workspace import WorkspaceSnapshot
from canopy.graph.context import ContextAssembler


class Workspace:
    """Single-writer handle over a workspace snapshot.

    Each executed command replaces the held snapshot wholesale, so readers
    holding an earlier snapshot never observe a partial update.
    """

    def __init__(self, snapshot: WorkspaceSnapshot | None = None) -> None:
        self._snapshot = snapshot or WorkspaceSnapshot()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Workspace":
        """Create a Workspace from a serialized snapshot (camelCase or snake_case keys)."""
        return cls(WorkspaceSnapshot.model_validate(data))

    @property
    def snapshot(self) -> WorkspaceSnapshot:
        return self._snapshot

    def execute(self, command: Command) -> CommandResult:
        result = dispatch(self._snapshot, command)
        if result.applied:
            self._snapshot = result.snapshot
            logger.debug(f"Applied {command.kind}")
        return result

    def object_data(self, page_id: str) -> ObjectData | None:
        page = self._snapshot.object_page(page_id)
        return page.object_data if page else None

    def context(self, page_id: str) -> ContextAssembler | None:
        data = self.object_data(page_id)
        return ContextAssembler(data) if data else None

    def serialize(self) -> dict[str, Any]:
        return self._snapshot.to_dict()
