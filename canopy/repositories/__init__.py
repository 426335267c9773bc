from canopy.repositories.base import WorkspaceRepository
from canopy.repositories.local import LocalWorkspaceRepository

__all__ = ["LocalWorkspaceRepository", "WorkspaceRepository"]
