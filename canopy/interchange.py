"""Import and export of object graphs as plain documents."""

from typing import Any, Literal

from loguru import logger
from pydantic import ValidationError

from canopy.domain.graph import ObjectData
from canopy.errors import InvalidDocument

ImportMode = Literal["replace", "merge"]

REQUIRED_NODE_FIELDS = ("id", "name", "type")


def export_object_data(data: ObjectData) -> dict[str, Any]:
    """Export the persistent part of an object graph as a camelCase document."""
    return {
        "rootNodeId": data.root_node_id,
        "nodes": {node_id: node.to_dict() for node_id, node in data.nodes.items()},
        "expandedNodes": list(data.expanded_nodes),
        "generationHistory": [record.to_dict() for record in data.generation_history],
    }


def _check_structure(data: ObjectData) -> None:
    for node_id, node in data.nodes.items():
        if node.parent_id is None and node_id != data.root_node_id:
            raise InvalidDocument(f"Node {node_id} has no parent and is not the root")
        if node.parent_id is not None:
            parent = data.nodes.get(node.parent_id)
            if parent is None or node_id not in parent.children:
                raise InvalidDocument(f"Node {node_id} is not listed by its parent {node.parent_id}")
        for child_id in node.children:
            child = data.nodes.get(child_id)
            if child is None or child.parent_id != node_id:
                raise InvalidDocument(f"Child {child_id} of node {node_id} does not point back to it")
    if data.nodes[data.root_node_id].parent_id is not None:
        raise InvalidDocument("The root node must not have a parent")


def parse_object_document(doc: Any) -> ObjectData:
    """Validate a document and build an ObjectData from it.

    Raises:
        InvalidDocument: If the document lacks a nodes map, a root id that is
            one of its nodes, node id/name/type fields, or a consistent tree
    """
    if not isinstance(doc, dict):
        raise InvalidDocument("Object document must be a mapping")
    nodes = doc.get("nodes")
    if not isinstance(nodes, dict):
        raise InvalidDocument("Object document has no nodes map")
    root_id = doc.get("rootNodeId", doc.get("root_node_id"))
    if not isinstance(root_id, str) or not root_id:
        raise InvalidDocument("Object document has no rootNodeId")
    if root_id not in nodes:
        raise InvalidDocument(f"Root node {root_id} is not in the nodes map")

    for key, node in nodes.items():
        if not isinstance(node, dict):
            raise InvalidDocument(f"Node {key} must be a mapping")
        missing = [field for field in REQUIRED_NODE_FIELDS if field not in node]
        if missing:
            raise InvalidDocument(f"Node {key} is missing {missing}")
        if node["id"] != key:
            raise InvalidDocument(f"Node key {key} does not match its id {node['id']}")

    try:
        data = ObjectData.model_validate(doc)
    except ValidationError as e:
        raise InvalidDocument(f"Object document is malformed: {e}") from e
    _check_structure(data)
    return data


def import_object_data(
    target: ObjectData | None,
    doc: Any,
    mode: ImportMode = "replace",
    parent_id: str | None = None,
) -> ObjectData:
    """Import a document into an existing graph.

    Args:
        target: Graph to import into; None behaves like an empty store
        doc: Document as produced by `export_object_data`
        mode: "replace" swaps the graph wholesale; "merge" grafts the
            document's root under `parent_id`
        parent_id: Node the document is grafted under; defaults to the target root

    Returns:
        The resulting graph

    Raises:
        InvalidDocument: If the document is malformed or its ids collide with the target's
    """
    incoming = parse_object_document(doc)
    if mode == "replace" or target is None:
        logger.info(f"Imported object graph with {len(incoming.nodes)} nodes")
        return incoming

    parent_id = parent_id or target.root_node_id
    parent = target.nodes.get(parent_id)
    if parent is None:
        raise InvalidDocument(f"Merge parent {parent_id} not found")
    collisions = sorted(incoming.nodes.keys() & target.nodes.keys())
    if collisions:
        raise InvalidDocument(f"Imported node ids already exist: {collisions}")

    grafted_root = incoming.nodes[incoming.root_node_id].model_copy(update={"parent_id": parent_id})
    nodes = {
        **target.nodes,
        **incoming.nodes,
        incoming.root_node_id: grafted_root,
        parent_id: parent.model_copy(update={"children": [*parent.children, grafted_root.id]}),
    }
    expanded = list(
        dict.fromkeys([*target.expanded_nodes, *incoming.expanded_nodes])
    )
    logger.info(f"Merged {len(incoming.nodes)} nodes under {parent_id}")
    return target.model_copy(
        update={
            "nodes": nodes,
            "expanded_nodes": expanded,
            "generation_history": [*target.generation_history, *incoming.generation_history],
        }
    )
