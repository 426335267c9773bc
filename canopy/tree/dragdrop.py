"""Sidebar drag-and-drop expressed as tree moves with computed order keys."""

from loguru import logger

from canopy.domain.folder import ItemRef
from canopy.tree.store import TreeT, exists, key_between, move, parent_of, siblings


def drop_into_folder(tree: TreeT, item: ItemRef, folder_id: str) -> TreeT:
    """Drop an item onto a folder.

    The item becomes the first child of an expanded, non-empty folder and the
    last child of a collapsed one. An empty folder gives the item the base key.

    Raises:
        CycleDetected: If a folder is dropped into itself or a descendant
    """
    folder = tree.folders.get(folder_id)
    if folder is None or not exists(tree, item):
        logger.debug(f"Drop of {item.id} into {folder_id} ignored: missing id")
        return tree

    children = siblings(tree, folder_id, exclude=item)
    if not children:
        tree, new_order = key_between(tree, folder_id, None, None, exclude=item)
    elif folder.expanded:
        tree, new_order = key_between(tree, folder_id, None, children[0][0], exclude=item)
    else:
        tree, new_order = key_between(tree, folder_id, children[-1][0], None, exclude=item)
    return move(tree, item, folder_id, new_order)


def drop_at_gap(tree: TreeT, item: ItemRef, target: ItemRef, drop_position: int) -> TreeT:
    """Drop an item in the gap next to a target, adopting the target's parent.

    Args:
        tree: Current snapshot
        item: Dragged folder or leaf
        target: Item next to which the dragged item is dropped
        drop_position: Negative to insert before the target, otherwise after it

    Raises:
        CycleDetected: If a folder would end up inside its own subtree
    """
    if not exists(tree, item) or not exists(tree, target):
        logger.debug(f"Drop of {item.id} next to {target.id} ignored: missing id")
        return tree
    if item == target:
        logger.debug(f"Drop of {item.id} next to itself ignored")
        return tree

    parent_id = parent_of(tree, target)
    candidates = siblings(tree, parent_id, exclude=item)
    refs = [ref for ref, _ in candidates]

    if target not in refs:
        low = refs[-1] if refs else None
        tree, new_order = key_between(tree, parent_id, low, None, exclude=item)
    else:
        index = refs.index(target)
        if drop_position < 0:
            low = refs[index - 1] if index > 0 else None
            high = target
        else:
            low = target
            high = refs[index + 1] if index + 1 < len(refs) else None
        tree, new_order = key_between(tree, parent_id, low, high, exclude=item)

    return move(tree, item, parent_id, new_order)
