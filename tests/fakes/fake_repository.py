from typing import List

from canopy.domain.workspace import WorkspaceSnapshot
from canopy.repositories.base import WorkspaceRepository


class FakeWorkspaceRepository(WorkspaceRepository):
    """In-memory repository that keeps every saved snapshot."""

    def __init__(self, snapshot: WorkspaceSnapshot | None = None) -> None:
        self.saved: List[WorkspaceSnapshot] = [snapshot] if snapshot else []

    def load(self) -> WorkspaceSnapshot:
        return self.saved[-1] if self.saved else WorkspaceSnapshot()

    def save(self, snapshot: WorkspaceSnapshot) -> None:
        self.saved.append(snapshot)
