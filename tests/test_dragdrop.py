"""Tests for sidebar drag and drop."""

import pytest

from canopy.domain.folder import Folder, FolderTree, ItemRef, LeafItem
from canopy.errors import CycleDetected
from canopy.tree import store
from canopy.tree.dragdrop import drop_at_gap, drop_into_folder

FOLDER_A = ItemRef(kind="folder", id="A")
FOLDER_R = ItemRef(kind="folder", id="R")
LEAF_B = ItemRef(kind="leaf", id="B")


def test_drop_before_sibling_takes_key_one_step_lower(folder_tree: FolderTree) -> None:
    tree = drop_at_gap(folder_tree, LEAF_B, FOLDER_A, drop_position=-1)

    assert tree.items["B"].order == tree.folders["A"].order - 1000
    assert [child.id for child in store.children_of(tree, "R")] == ["B", "A"]


def test_dropping_root_folder_into_child_is_rejected(folder_tree: FolderTree) -> None:
    with pytest.raises(CycleDetected):
        drop_into_folder(folder_tree, FOLDER_R, "A")

    assert folder_tree.folders["R"].parent_id is None


def test_drop_after_target_goes_between_neighbours(folder_tree: FolderTree) -> None:
    tree = store.add_leaf(folder_tree, LeafItem(id="C", title="C", folder_id="R", order=3000.0))

    tree = drop_at_gap(tree, ItemRef(kind="leaf", id="C"), FOLDER_A, drop_position=1)

    assert tree.items["C"].order == 1500.0
    assert [child.id for child in store.children_of(tree, "R")] == ["A", "C", "B"]


def test_drop_at_gap_adopts_target_parent() -> None:
    tree = FolderTree(
        folders={
            "X": Folder(id="X", name="X", order=1000.0),
            "Y": Folder(id="Y", name="Y", order=2000.0),
        },
        items={
            "x1": LeafItem(id="x1", title="x1", folder_id="X", order=1000.0),
            "y1": LeafItem(id="y1", title="y1", folder_id="Y", order=1000.0),
        },
    )

    tree = drop_at_gap(tree, ItemRef(kind="leaf", id="x1"), ItemRef(kind="leaf", id="y1"), 1)

    assert tree.items["x1"].folder_id == "Y"
    assert tree.items["x1"].order == 2000.0


def test_drop_into_expanded_folder_becomes_first_child(folder_tree: FolderTree) -> None:
    tree = store.add_leaf(folder_tree, LeafItem(id="a1", title="a1", folder_id="A", order=1000.0))
    tree = store.add_leaf(tree, LeafItem(id="a2", title="a2", folder_id="A", order=2000.0))

    tree = drop_into_folder(tree, LEAF_B, "A")

    assert tree.items["B"].order == 0.0
    assert [child.id for child in store.children_of(tree, "A")] == ["B", "a1", "a2"]


def test_drop_into_collapsed_folder_becomes_last_child(folder_tree: FolderTree) -> None:
    tree = store.add_leaf(folder_tree, LeafItem(id="a1", title="a1", folder_id="A", order=1000.0))
    tree = store.toggle_folder(tree, "A")

    tree = drop_into_folder(tree, LEAF_B, "A")

    assert [child.id for child in store.children_of(tree, "A")] == ["a1", "B"]


def test_drop_into_empty_folder_uses_step(folder_tree: FolderTree) -> None:
    tree = drop_into_folder(folder_tree, LEAF_B, "A")
    assert tree.items["B"].order == 1000.0
    assert tree.items["B"].folder_id == "A"


def test_drop_with_missing_item_is_noop(folder_tree: FolderTree) -> None:
    missing = ItemRef(kind="leaf", id="missing")
    assert drop_into_folder(folder_tree, missing, "A") is folder_tree
    assert drop_at_gap(folder_tree, missing, FOLDER_A, -1) is folder_tree


def test_drop_next_to_itself_is_noop(folder_tree: FolderTree) -> None:
    assert drop_at_gap(folder_tree, LEAF_B, LEAF_B, 1) is folder_tree


def test_drop_between_siblings_sharing_a_key_renumbers() -> None:
    tree = FolderTree(
        folders={"R": Folder(id="R", name="R", order=1000.0)},
        items={
            "x": LeafItem(id="x", title="x", folder_id="R", order=1000.0),
            "y": LeafItem(id="y", title="y", folder_id="R", order=1000.0),
            "z": LeafItem(id="z", title="z", order=2000.0),
        },
    )

    tree = drop_at_gap(tree, ItemRef(kind="leaf", id="z"), ItemRef(kind="leaf", id="x"), 1)

    assert [child.id for child in store.children_of(tree, "R")] == ["x", "z", "y"]
    assert [tree.items[item_id].order for item_id in ("x", "z", "y")] == [1000.0, 1500.0, 2000.0]
