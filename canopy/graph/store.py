"""Pure operations over object node graph snapshots.

Each function returns a new ObjectData and leaves its input untouched. A
missing node id makes the operation a no-op that returns the input snapshot.
Connections are stored on their source node only; removing a node never
rewrites connections that point at it.
"""

import uuid
from typing import Any

from loguru import logger
from pydantic import ValidationError

from canopy.domain.base import now_ms
from canopy.domain.graph import Connection, GraphNode, NodeMetadata, ObjectData, ObjectGenerationRecord
from canopy.errors import CycleDetected, PreconditionViolation
from canopy.graph.search import search

STRUCTURAL_FIELDS = {"id", "parent_id", "children"}


def generate_node_id() -> str:
    return str(uuid.uuid4())


def create_object_data(root: GraphNode, expanded: bool = True) -> ObjectData:
    """Create a snapshot holding a single root node."""
    if root.parent_id is not None or root.children:
        raise PreconditionViolation("A root node has no parent and starts without children")
    return ObjectData(
        root_node_id=root.id,
        nodes={root.id: root},
        expanded_nodes=[root.id] if expanded else [],
    )


def subtree_ids(data: ObjectData, node_id: str) -> list[str]:
    """Return `node_id` and all of its descendants, depth-first over `children`."""
    result: list[str] = []
    seen: set[str] = set()
    stack = [node_id]
    while stack:
        current = stack.pop()
        if current in seen or current not in data.nodes:
            continue
        seen.add(current)
        result.append(current)
        stack.extend(reversed(data.nodes[current].children))
    return result


def ancestor_ids(data: ObjectData, node_id: str) -> list[str]:
    """Return the ids above `node_id`, nearest parent first."""
    result: list[str] = []
    seen = {node_id}
    node = data.nodes.get(node_id)
    while node and node.parent_id and node.parent_id not in seen:
        result.append(node.parent_id)
        seen.add(node.parent_id)
        node = data.nodes.get(node.parent_id)
    return result


def would_create_cycle(data: ObjectData, node_id: str, new_parent_id: str) -> bool:
    """Whether placing `node_id` under `new_parent_id` makes it its own ancestor."""
    return new_parent_id == node_id or node_id in ancestor_ids(data, new_parent_id)


def _replace_nodes(data: ObjectData, updates: dict[str, GraphNode]) -> ObjectData:
    return data.model_copy(update={"nodes": {**data.nodes, **updates}})


# ========================================
# Node operations
# ========================================


def add_node(data: ObjectData, node: GraphNode, parent_id: str | None = None) -> ObjectData:
    """Insert a node, appending it to its parent's children.

    Raises:
        PreconditionViolation: If the id is taken, the node arrives with
            children, or no parent is given for a node that is not the root
    """
    if node.id in data.nodes:
        raise PreconditionViolation(f"Node {node.id} already exists")
    if node.children:
        raise PreconditionViolation(f"Node {node.id} must be added without children")
    if parent_id is None:
        if node.id != data.root_node_id:
            raise PreconditionViolation(f"Node {node.id} needs a parent; only the root has none")
        return _replace_nodes(data, {node.id: node.model_copy(update={"parent_id": None})})

    parent = data.nodes.get(parent_id)
    if parent is None:
        logger.debug(f"Parent {parent_id} not found; node {node.id} not added")
        return data

    return _replace_nodes(
        data,
        {
            parent_id: parent.model_copy(update={"children": [*parent.children, node.id]}),
            node.id: node.model_copy(update={"parent_id": parent_id}),
        },
    )


def update_node(data: ObjectData, node_id: str, updates: dict[str, Any]) -> ObjectData:
    """Shallow-merge field updates into a node and stamp `metadata.updated_at`.

    `metadata` updates are merged into the existing metadata rather than
    replacing it. Structural fields are rejected; use `move_node` instead.
    """
    node = data.nodes.get(node_id)
    if node is None:
        logger.debug(f"Node {node_id} not found; update ignored")
        return data

    structural = STRUCTURAL_FIELDS & updates.keys()
    if structural:
        raise PreconditionViolation(f"Cannot update {sorted(structural)} of node {node_id}")
    unknown = updates.keys() - GraphNode.model_fields.keys()
    if unknown:
        raise PreconditionViolation(f"Unknown node fields: {sorted(unknown)}")

    merged = node.model_dump()
    merged.update({key: value for key, value in updates.items() if key != "metadata"})
    metadata = updates.get("metadata") or {}
    if isinstance(metadata, NodeMetadata):
        metadata = metadata.model_dump(exclude_unset=True)
    merged["metadata"] = {**merged["metadata"], **metadata, "updated_at": now_ms()}

    try:
        updated = GraphNode.model_validate(merged)
    except ValidationError as e:
        raise PreconditionViolation(f"Invalid update for node {node_id}: {e}") from e
    return _replace_nodes(data, {node_id: updated})


def _remove(data: ObjectData, doomed: list[str], node_updates: dict[str, GraphNode]) -> ObjectData:
    removed = set(doomed)
    nodes = {nid: node for nid, node in data.nodes.items() if nid not in removed}
    nodes.update(node_updates)
    filtered = data.filtered_node_ids
    return data.model_copy(
        update={
            "nodes": nodes,
            "selected_node_id": None if data.selected_node_id in removed else data.selected_node_id,
            "expanded_nodes": [nid for nid in data.expanded_nodes if nid not in removed],
            "filtered_node_ids": (
                [nid for nid in filtered if nid not in removed] if filtered is not None else None
            ),
        }
    )


def delete_node(data: ObjectData, node_id: str) -> ObjectData:
    """Remove a node and its whole subtree.

    Raises:
        PreconditionViolation: If `node_id` is the root; clear its children instead
    """
    node = data.nodes.get(node_id)
    if node is None:
        return data
    if node_id == data.root_node_id:
        raise PreconditionViolation("The root node cannot be deleted")

    doomed = subtree_ids(data, node_id)
    updates = {}
    parent = data.nodes.get(node.parent_id) if node.parent_id else None
    if parent is not None:
        updates[parent.id] = parent.model_copy(
            update={"children": [cid for cid in parent.children if cid != node_id]}
        )
    logger.info(f"Deleting node {node_id} with {len(doomed) - 1} descendants")
    return _remove(data, doomed, updates)


def clear_children(data: ObjectData, node_id: str) -> ObjectData:
    """Remove every descendant of a node, leaving the node with no children."""
    node = data.nodes.get(node_id)
    if node is None or not node.children:
        return data

    doomed = [nid for child_id in node.children for nid in subtree_ids(data, child_id)]
    logger.info(f"Clearing {len(doomed)} descendants of node {node_id}")
    return _remove(data, doomed, {node_id: node.model_copy(update={"children": []})})


def move_node(
    data: ObjectData, node_id: str, new_parent_id: str, index: int | None = None
) -> ObjectData:
    """Reparent a node, inserting it at `index` among the new parent's children.

    Both the old parent's and the new parent's `children` lists are updated in
    the same snapshot. Moving within the same parent reorders.

    Raises:
        CycleDetected: If the new parent is the node itself or one of its descendants
    """
    node = data.nodes.get(node_id)
    new_parent = data.nodes.get(new_parent_id)
    if node is None or new_parent is None:
        logger.debug(f"Move of {node_id} under {new_parent_id} ignored: missing node")
        return data
    if would_create_cycle(data, node_id, new_parent_id):
        raise CycleDetected(node_id, new_parent_id)

    updates: dict[str, GraphNode] = {}
    old_parent = data.nodes.get(node.parent_id) if node.parent_id else None
    if old_parent is not None and old_parent.id != new_parent_id:
        updates[old_parent.id] = old_parent.model_copy(
            update={"children": [cid for cid in old_parent.children if cid != node_id]}
        )

    children = [cid for cid in new_parent.children if cid != node_id]
    position = len(children) if index is None else max(0, min(index, len(children)))
    children.insert(position, node_id)
    updates[new_parent_id] = new_parent.model_copy(update={"children": children})
    updates[node_id] = node.model_copy(update={"parent_id": new_parent_id})
    return _replace_nodes(data, updates)


def reorder_children(data: ObjectData, parent_id: str, ordered_ids: list[str]) -> ObjectData:
    """Replace the order of a node's children.

    Raises:
        PreconditionViolation: If `ordered_ids` is not a permutation of the children
    """
    parent = data.nodes.get(parent_id)
    if parent is None:
        return data
    if sorted(ordered_ids) != sorted(parent.children):
        raise PreconditionViolation(f"Reordered ids must be a permutation of {parent_id}'s children")
    return _replace_nodes(data, {parent_id: parent.model_copy(update={"children": list(ordered_ids)})})


# ========================================
# Expansion and selection
# ========================================


def toggle_expansion(data: ObjectData, node_id: str) -> ObjectData:
    if node_id in data.expanded_nodes:
        return collapse(data, node_id)
    return expand(data, node_id)


def expand(data: ObjectData, node_id: str) -> ObjectData:
    if node_id in data.expanded_nodes:
        return data
    return data.model_copy(update={"expanded_nodes": [*data.expanded_nodes, node_id]})


def collapse(data: ObjectData, node_id: str) -> ObjectData:
    if node_id not in data.expanded_nodes:
        return data
    return data.model_copy(
        update={"expanded_nodes": [nid for nid in data.expanded_nodes if nid != node_id]}
    )


def select_node(data: ObjectData, node_id: str | None) -> ObjectData:
    if node_id is not None and node_id not in data.nodes:
        return data
    return data.model_copy(update={"selected_node_id": node_id})


# ========================================
# Connections
# ========================================


def add_connection(data: ObjectData, node_id: str, connection: Connection) -> ObjectData:
    """Append a connection to the source node. The target is not validated."""
    node = data.nodes.get(node_id)
    if node is None:
        return data
    return _replace_nodes(
        data, {node_id: node.model_copy(update={"connections": [*node.connections, connection]})}
    )


def update_connection(
    data: ObjectData, node_id: str, index: int, connection: Connection
) -> ObjectData:
    node = data.nodes.get(node_id)
    if node is None or not 0 <= index < len(node.connections):
        return data
    connections = list(node.connections)
    connections[index] = connection
    return _replace_nodes(data, {node_id: node.model_copy(update={"connections": connections})})


def remove_connection(data: ObjectData, node_id: str, index: int) -> ObjectData:
    node = data.nodes.get(node_id)
    if node is None or not 0 <= index < len(node.connections):
        return data
    connections = [c for position, c in enumerate(node.connections) if position != index]
    return _replace_nodes(data, {node_id: node.model_copy(update={"connections": connections})})


def prune_dangling_connections(data: ObjectData) -> ObjectData:
    """Drop connections whose target no longer exists.

    Never called implicitly; deletes leave dangling connections in place.
    """
    updates = {}
    for node_id, node in data.nodes.items():
        kept = [c for c in node.connections if c.node_id in data.nodes]
        if len(kept) != len(node.connections):
            updates[node_id] = node.model_copy(update={"connections": kept})
    if not updates:
        return data
    logger.info(f"Pruned dangling connections from {len(updates)} nodes")
    return _replace_nodes(data, updates)


# ========================================
# Search state
# ========================================


def apply_search(data: ObjectData, query: str) -> ObjectData:
    if not query.strip():
        return clear_search(data)
    return data.model_copy(update={"search_query": query, "filtered_node_ids": search(data, query)})


def clear_search(data: ObjectData) -> ObjectData:
    return data.model_copy(update={"search_query": "", "filtered_node_ids": None})


# ========================================
# Generation history
# ========================================


def record_generation(data: ObjectData, record: ObjectGenerationRecord) -> ObjectData:
    return data.model_copy(update={"generation_history": [*data.generation_history, record]})


def update_generation_record(
    data: ObjectData, record_id: str, generated_node_ids: list[str]
) -> ObjectData:
    if not any(record.id == record_id for record in data.generation_history):
        return data
    history = [
        record.model_copy(update={"generated_node_ids": list(generated_node_ids)})
        if record.id == record_id
        else record
        for record in data.generation_history
    ]
    return data.model_copy(update={"generation_history": history})
