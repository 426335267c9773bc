from canopy.tree.dragdrop import drop_at_gap, drop_into_folder
from canopy.tree.store import (
    add_leaf,
    children_of,
    clear_folder,
    create_folder,
    delete_folder,
    delete_leaf,
    move_folder,
    move_leaf,
    rename_folder,
    reorder_siblings,
)

__all__ = [
    "add_leaf",
    "children_of",
    "clear_folder",
    "create_folder",
    "delete_folder",
    "delete_leaf",
    "drop_at_gap",
    "drop_into_folder",
    "move_folder",
    "move_leaf",
    "rename_folder",
    "reorder_siblings",
]
