"""Folder tree domain models."""

from typing import Literal

from pydantic import Field

from canopy.domain.base import Record, now_ms


class Folder(Record):
    """A folder in a page or favorites tree.

    Attributes:
        id: Unique identifier
        name: Display name, not required to be unique
        parent_id: Parent folder ID, None for root-level folders
        order: Fractional order key within the sibling set
        expanded: Whether the folder is expanded in the sidebar
        created_at: Creation timestamp (milliseconds since epoch)
        description: Optional folder description (favorites)
        color: Optional folder colour (favorites)
    """

    id: str
    name: str
    parent_id: str | None = None
    order: float
    expanded: bool = True
    created_at: float = Field(default_factory=now_ms)
    description: str | None = None
    color: str | None = None


class LeafItem(Record):
    """An ordered item that lives in a folder but never contains anything."""

    id: str
    title: str
    folder_id: str | None = None
    order: float
    created_at: float = Field(default_factory=now_ms)
    updated_at: float = Field(default_factory=now_ms)


class ItemRef(Record):
    """Reference to either a folder or a leaf item in a tree."""

    kind: Literal["folder", "leaf"]
    id: str


class FolderTree(Record):
    """Snapshot of a folder tree and the leaf items filed in it."""

    folders: dict[str, Folder] = {}
    items: dict[str, LeafItem] = {}
