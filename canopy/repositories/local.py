import json
from pathlib import Path

from loguru import logger

from canopy.domain.workspace import WorkspaceSnapshot
from canopy.repositories.base import WorkspaceRepository


class LocalWorkspaceRepository(WorkspaceRepository):
    """Workspace repository that stores the snapshot in a JSON file."""

    def __init__(self, filepath: str | Path) -> None:
        """Initialize LocalWorkspaceRepository.

        Args:
            filepath: Path to the workspace file. It is created on the first save;
                     loading a path that does not exist yet returns an empty workspace.
        """
        self._filepath = Path(filepath)

    @property
    def filepath(self) -> Path:
        return self._filepath

    def load(self) -> WorkspaceSnapshot:
        """Load the workspace from the JSON file."""
        if not self._filepath.exists():
            logger.info(f"No workspace file at {self._filepath}; starting empty")
            return WorkspaceSnapshot()

        with open(self._filepath, "r") as f:
            data = json.load(f)
        snapshot = WorkspaceSnapshot.model_validate(data)
        logger.info(
            f"Loaded workspace with {len(snapshot.pages.items)} pages "
            f"and {len(snapshot.favorites.items)} favorites"
        )
        return snapshot

    def save(self, snapshot: WorkspaceSnapshot) -> None:
        """Save the workspace to the JSON file."""
        self._filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(self._filepath, "w") as f:
            json.dump(snapshot.to_dict(), f, ensure_ascii=False)
        logger.info(f"Saved workspace to {self._filepath}")
