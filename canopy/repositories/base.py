from typing import Protocol

from canopy.domain.workspace import WorkspaceSnapshot


class WorkspaceRepository(Protocol):
    def load(self) -> WorkspaceSnapshot:
        """Load the stored workspace, or an empty one if nothing is stored."""
        ...

    def save(self, snapshot: WorkspaceSnapshot) -> None:
        """Store a workspace snapshot, replacing the previous one."""
        ...
