"""Pure operations over folder tree snapshots.

Every function takes a snapshot and returns a new one; the input is never
modified. Referencing a missing id returns the input snapshot unchanged.
Folders and leaf items filed under the same parent share one sibling set and
one ordering.
"""

import uuid
from typing import Literal, TypeVar

from loguru import logger
from pydantic import ValidationError

from canopy import ordering
from canopy.domain.base import Record, now_ms
from canopy.domain.folder import Folder, FolderTree, ItemRef, LeafItem
from canopy.errors import CycleDetected, OrderKeyExhausted, PreconditionViolation

TreeT = TypeVar("TreeT", bound=FolderTree)
RecordT = TypeVar("RecordT", bound=Record)

DeletePolicy = Literal["flatten", "discard_items"]

# Fields that place a record in the tree or link it to other records.
FOLDER_LINK_FIELDS = {"id", "parent_id", "order"}
LEAF_LINK_FIELDS = {"id", "folder_id", "order", "type", "lineage"}


def generate_id() -> str:
    return str(uuid.uuid4())


# ========================================
# Readers
# ========================================


def parent_of(tree: FolderTree, ref: ItemRef) -> str | None:
    """Return the parent folder id of a folder or leaf item."""
    if ref.kind == "folder":
        folder = tree.folders.get(ref.id)
        return folder.parent_id if folder else None
    item = tree.items.get(ref.id)
    return item.folder_id if item else None


def exists(tree: FolderTree, ref: ItemRef) -> bool:
    if ref.kind == "folder":
        return ref.id in tree.folders
    return ref.id in tree.items


def siblings(
    tree: FolderTree, parent_id: str | None, exclude: ItemRef | None = None
) -> list[tuple[ItemRef, float]]:
    """Return the sibling set under `parent_id` as (ref, order) pairs, sorted by order."""
    entries = [
        (ItemRef(kind="folder", id=folder.id), folder.order)
        for folder in tree.folders.values()
        if folder.parent_id == parent_id
    ]
    entries += [
        (ItemRef(kind="leaf", id=item.id), item.order)
        for item in tree.items.values()
        if item.folder_id == parent_id
    ]
    return sorted((entry for entry in entries if entry[0] != exclude), key=lambda entry: entry[1])


def children_of(tree: FolderTree, parent_id: str | None) -> list[Folder | LeafItem]:
    """Return folders and leaf items directly under `parent_id`, in display order."""
    return [
        tree.folders[ref.id] if ref.kind == "folder" else tree.items[ref.id]
        for ref, _ in siblings(tree, parent_id)
    ]


def folder_path(tree: FolderTree, folder_id: str) -> list[Folder]:
    """Return the root-first chain of folders ending at `folder_id`."""
    path: list[Folder] = []
    seen: set[str] = set()
    current = tree.folders.get(folder_id)
    while current and current.id not in seen:
        seen.add(current.id)
        path.insert(0, current)
        current = tree.folders.get(current.parent_id) if current.parent_id else None
    return path


def is_descendant(tree: FolderTree, candidate_id: str | None, ancestor_id: str) -> bool:
    """Whether `candidate_id` is `ancestor_id` or lies below it.

    Walks the ancestor chain of the candidate up to the root, so the cost is
    proportional to the candidate's depth.
    """
    seen: set[str] = set()
    current = candidate_id
    while current is not None and current not in seen:
        if current == ancestor_id:
            return True
        seen.add(current)
        folder = tree.folders.get(current)
        current = folder.parent_id if folder else None
    return False


# ========================================
# Ordering helpers
# ========================================


def _with_orders(tree: TreeT, orders: dict[ItemRef, float]) -> TreeT:
    folders = dict(tree.folders)
    items = dict(tree.items)
    for ref, order in orders.items():
        if ref.kind == "folder":
            folders[ref.id] = folders[ref.id].model_copy(update={"order": order})
        else:
            items[ref.id] = items[ref.id].model_copy(update={"order": order})
    return tree.model_copy(update={"folders": folders, "items": items})


def renumber_siblings(
    tree: TreeT, parent_id: str | None, exclude: ItemRef | None = None
) -> TreeT:
    """Reassign evenly spaced keys to a sibling set, keeping its current order."""
    refs = [ref for ref, _ in siblings(tree, parent_id, exclude)]
    logger.info(f"Renumbering {len(refs)} siblings under {parent_id}")
    return _with_orders(tree, ordering.renumber(refs))


def _order_of(tree: FolderTree, ref: ItemRef | None) -> float | None:
    if ref is None:
        return None
    record = tree.folders[ref.id] if ref.kind == "folder" else tree.items[ref.id]
    return record.order


def key_between(
    tree: TreeT,
    parent_id: str | None,
    low: ItemRef | None,
    high: ItemRef | None,
    exclude: ItemRef | None = None,
) -> tuple[TreeT, float]:
    """Compute a key between two siblings, renumbering the set if keys are exhausted.

    Neighbours that share a key (or are out of sequence) are treated like
    exhausted keys: the set is renumbered in its current display order.

    Returns:
        The snapshot (renumbered when needed) and the new key
    """
    low_key, high_key = _order_of(tree, low), _order_of(tree, high)
    if low_key is not None and high_key is not None and low_key >= high_key:
        logger.warning(f"Sibling keys {low_key!r} >= {high_key!r} under {parent_id}; renumbering")
    else:
        try:
            return tree, ordering.between(low_key, high_key)
        except OrderKeyExhausted as e:
            logger.warning(f"{e.message}; renumbering siblings under {parent_id}")
    tree = renumber_siblings(tree, parent_id, exclude)
    return tree, ordering.between(_order_of(tree, low), _order_of(tree, high))


def _validated_update(record: RecordT, fields: dict, protected: set[str], hint: str) -> RecordT:
    """Merge `fields` into a record and validate the result as a whole.

    Raises:
        PreconditionViolation: If a protected or unknown field is given, or
            the merged record does not validate
    """
    rejected = protected & fields.keys()
    if rejected:
        raise PreconditionViolation(f"Cannot update {sorted(rejected)} of {record.id}; {hint}")
    unknown = fields.keys() - type(record).model_fields.keys()
    if unknown:
        raise PreconditionViolation(f"Unknown {type(record).__name__} fields: {sorted(unknown)}")
    try:
        return type(record).model_validate({**record.model_dump(), **fields})
    except ValidationError as e:
        raise PreconditionViolation(f"Invalid {type(record).__name__} update: {e}") from e


def _place(tree: TreeT, ref: ItemRef, parent_id: str | None, new_order: float) -> TreeT:
    """Set parent and order of an item, resolving a key collision with a sibling.

    A requested key that equals another sibling's key places the item
    immediately after that sibling.
    """
    others = siblings(tree, parent_id, exclude=ref)
    collision = next((index for index, (_, key) in enumerate(others) if key == new_order), None)
    if collision is not None:
        low = others[collision][0]
        high = others[collision + 1][0] if collision + 1 < len(others) else None
        logger.debug(f"Order key {new_order} collides under {parent_id}; inserting after {low.id}")
        tree, new_order = key_between(tree, parent_id, low, high, exclude=ref)

    if ref.kind == "folder":
        folder = tree.folders[ref.id].model_copy(update={"parent_id": parent_id, "order": new_order})
        return tree.model_copy(update={"folders": {**tree.folders, ref.id: folder}})
    item = tree.items[ref.id].model_copy(
        update={"folder_id": parent_id, "order": new_order, "updated_at": now_ms()}
    )
    return tree.model_copy(update={"items": {**tree.items, ref.id: item}})


# ========================================
# Folder operations
# ========================================


def create_folder(
    tree: TreeT,
    name: str,
    parent_id: str | None = None,
    order: float | None = None,
    folder_id: str | None = None,
    **fields,
) -> tuple[TreeT, str | None]:
    """Create a folder at the end of its sibling set.

    Args:
        tree: Current snapshot
        name: Folder name, duplicates allowed
        parent_id: Parent folder ID, None for the root level
        order: Explicit order key; defaults to one step after the last sibling
        folder_id: Explicit ID; generated when omitted
        **fields: Extra folder fields such as description or color

    Returns:
        The new snapshot and the new folder ID, or the unchanged snapshot and
        None if the parent does not exist
    """
    if parent_id is not None and parent_id not in tree.folders:
        logger.debug(f"Parent folder {parent_id} not found; folder not created")
        return tree, None

    folder_id = folder_id or generate_id()
    if folder_id in tree.folders:
        raise PreconditionViolation(f"Folder {folder_id} already exists")

    if order is None:
        order = ordering.key_after(key for _, key in siblings(tree, parent_id))
    folder = Folder(id=folder_id, name=name, parent_id=parent_id, order=0.0, **fields)
    tree = tree.model_copy(update={"folders": {**tree.folders, folder_id: folder}})
    tree = _place(tree, ItemRef(kind="folder", id=folder_id), parent_id, order)
    logger.info(f"Created folder {folder_id} ({name}) under {parent_id}")
    return tree, folder_id


def update_folder(tree: TreeT, folder_id: str, **fields) -> TreeT:
    """Update non-structural folder fields such as name, description or color."""
    folder = tree.folders.get(folder_id)
    if folder is None:
        return tree
    updated = _validated_update(folder, fields, FOLDER_LINK_FIELDS, "use move_folder")
    return tree.model_copy(update={"folders": {**tree.folders, folder_id: updated}})


def rename_folder(tree: TreeT, folder_id: str, name: str) -> TreeT:
    return update_folder(tree, folder_id, name=name)


def toggle_folder(tree: TreeT, folder_id: str) -> TreeT:
    folder = tree.folders.get(folder_id)
    if folder is None:
        return tree
    return update_folder(tree, folder_id, expanded=not folder.expanded)


def delete_folder(tree: TreeT, folder_id: str, policy: DeletePolicy = "flatten") -> TreeT:
    """Delete a folder, moving its contents up one level.

    Child folders are always reparented to the deleted folder's parent. Leaf
    items are reparented as well under the "flatten" policy and deleted under
    "discard_items". Moved items keep their keys; collisions with the new
    siblings are resolved by renumbering the merged set.
    """
    folder = tree.folders.get(folder_id)
    if folder is None:
        return tree

    new_parent = folder.parent_id
    folders = {
        fid: (f.model_copy(update={"parent_id": new_parent}) if f.parent_id == folder_id else f)
        for fid, f in tree.folders.items()
        if fid != folder_id
    }
    items = {}
    for item_id, item in tree.items.items():
        if item.folder_id != folder_id:
            items[item_id] = item
        elif policy == "flatten":
            items[item_id] = item.model_copy(update={"folder_id": new_parent})

    result = tree.model_copy(update={"folders": folders, "items": items})
    if not ordering.has_distinct_keys(key for _, key in siblings(result, new_parent)):
        result = renumber_siblings(result, new_parent)

    logger.info(f"Deleted folder {folder_id} ({policy}); contents moved to {new_parent}")
    return result


def clear_folder(tree: TreeT, folder_id: str) -> TreeT:
    """Delete the leaf items directly inside a folder, keeping the folder and subfolders."""
    if folder_id not in tree.folders:
        return tree
    items = {item_id: item for item_id, item in tree.items.items() if item.folder_id != folder_id}
    logger.info(f"Cleared {len(tree.items) - len(items)} items from folder {folder_id}")
    return tree.model_copy(update={"items": items})


def move_folder(
    tree: TreeT, folder_id: str, target_parent_id: str | None, new_order: float
) -> TreeT:
    """Reparent and reorder a folder.

    Raises:
        CycleDetected: If the target is the folder itself or one of its descendants
    """
    if folder_id not in tree.folders:
        return tree
    if target_parent_id is not None and target_parent_id not in tree.folders:
        logger.debug(f"Target folder {target_parent_id} not found; move ignored")
        return tree
    if is_descendant(tree, target_parent_id, folder_id):
        raise CycleDetected(folder_id, target_parent_id)
    return _place(tree, ItemRef(kind="folder", id=folder_id), target_parent_id, new_order)


# ========================================
# Leaf operations
# ========================================


def add_leaf(tree: TreeT, item: LeafItem, at_front: bool = False) -> TreeT:
    """File a leaf item into its folder.

    The item's own `order` is used unless it collides; pass `at_front` to
    place it before every existing sibling instead.
    """
    if item.id in tree.items:
        raise PreconditionViolation(f"Item {item.id} already exists")
    folder_id = item.folder_id
    if folder_id is not None and folder_id not in tree.folders:
        logger.debug(f"Folder {folder_id} not found; filing item {item.id} at the root")
        folder_id = None

    order = item.order
    if at_front:
        order = ordering.key_before(key for _, key in siblings(tree, folder_id))
    tree = tree.model_copy(update={"items": {**tree.items, item.id: item}})
    return _place(tree, ItemRef(kind="leaf", id=item.id), folder_id, order)


def next_leaf_order(tree: FolderTree, folder_id: str | None) -> float:
    return ordering.key_after(key for _, key in siblings(tree, folder_id))


def update_leaf(tree: TreeT, item_id: str, **fields) -> TreeT:
    """Update non-structural leaf fields; always stamps `updated_at`."""
    item = tree.items.get(item_id)
    if item is None:
        return tree
    updated = _validated_update(
        item, {**fields, "updated_at": now_ms()}, LEAF_LINK_FIELDS, "use move_leaf or record_derivation"
    )
    return tree.model_copy(update={"items": {**tree.items, item_id: updated}})


def delete_leaf(tree: TreeT, item_id: str) -> TreeT:
    if item_id not in tree.items:
        return tree
    items = {key: item for key, item in tree.items.items() if key != item_id}
    return tree.model_copy(update={"items": items})


def delete_leaves(tree: TreeT, item_ids: list[str]) -> TreeT:
    doomed = set(item_ids)
    items = {key: item for key, item in tree.items.items() if key not in doomed}
    return tree.model_copy(update={"items": items})


def move_leaf(tree: TreeT, item_id: str, target_folder_id: str | None, new_order: float) -> TreeT:
    """Refile and reorder a leaf item. Leaves cannot be ancestors, so no cycle check."""
    if item_id not in tree.items:
        return tree
    if target_folder_id is not None and target_folder_id not in tree.folders:
        logger.debug(f"Target folder {target_folder_id} not found; move ignored")
        return tree
    return _place(tree, ItemRef(kind="leaf", id=item_id), target_folder_id, new_order)


def move(tree: TreeT, ref: ItemRef, target_parent_id: str | None, new_order: float) -> TreeT:
    if ref.kind == "folder":
        return move_folder(tree, ref.id, target_parent_id, new_order)
    return move_leaf(tree, ref.id, target_parent_id, new_order)


def reorder_siblings(tree: TreeT, parent_id: str | None, ordered_ids: list[str]) -> TreeT:
    """Assign fresh keys matching the given sequence of sibling ids.

    Ids that are not in the sibling set are ignored; siblings missing from
    the sequence keep their relative order after the listed ones.
    """
    current = [ref for ref, _ in siblings(tree, parent_id)]
    by_id = {ref.id: ref for ref in current}
    listed = [by_id[item_id] for item_id in dict.fromkeys(ordered_ids) if item_id in by_id]
    rest = [ref for ref in current if ref not in listed]
    sequence = listed + rest
    keys = ordering.renumber([str(index) for index in range(len(sequence))])
    return _with_orders(tree, dict(zip(sequence, keys.values())))


def search_items(tree: FolderTree, query: str) -> list[str]:
    """Case-insensitive substring match over leaf titles, in insertion order."""
    needle = query.strip().lower()
    return [item_id for item_id, item in tree.items.items() if needle in item.title.lower()]
