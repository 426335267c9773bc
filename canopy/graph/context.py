"""Read-only derivations over an object graph, used to build AI prompt context."""

import json
from typing import List

from canopy.domain.graph import GraphNode, NodeContext, ObjectData, ResolvedConnection


class ContextAssembler:
    """Assemble node neighbourhoods and text context from an ObjectData snapshot.

    The assembler never mutates the snapshot. Missing ids produce empty
    results rather than errors.
    """

    def __init__(self, data: ObjectData) -> None:
        self.data = data

    @property
    def nodes(self) -> dict[str, GraphNode]:
        return self.data.nodes

    def ancestor_chain(self, node_id: str) -> List[GraphNode]:
        """Get the path from the root down to the node, inclusive.

        The walk stops at the first parent that does not resolve.
        """
        node = self.nodes.get(node_id)
        chain: List[GraphNode] = []
        seen: set[str] = set()
        while node is not None and node.id not in seen:
            chain.append(node)
            seen.add(node.id)
            node = self.nodes.get(node.parent_id) if node.parent_id else None
        chain.reverse()
        return chain

    def siblings(self, node_id: str) -> List[GraphNode]:
        """Get the other children of the node's parent, in children order."""
        node = self.nodes.get(node_id)
        if node is None or not node.parent_id:
            return []
        parent = self.nodes.get(node.parent_id)
        if parent is None:
            return []
        return [self.nodes[cid] for cid in parent.children if cid != node_id and cid in self.nodes]

    def direct_children(self, node_id: str) -> List[GraphNode]:
        node = self.nodes.get(node_id)
        if node is None:
            return []
        return [self.nodes[cid] for cid in node.children if cid in self.nodes]

    def resolved_connections(self, node_id: str) -> List[ResolvedConnection]:
        """Join each outgoing connection with its target; dangling targets resolve to None."""
        node = self.nodes.get(node_id)
        if node is None:
            return []
        return [
            ResolvedConnection(connection=connection, target=self.nodes.get(connection.node_id))
            for connection in node.connections
        ]

    def node_context(self, node_id: str) -> NodeContext | None:
        node = self.nodes.get(node_id)
        if node is None:
            return None
        return NodeContext(
            node=node,
            ancestor_chain=self.ancestor_chain(node_id),
            children=self.direct_children(node_id),
            siblings=self.siblings(node_id),
        )

    def node_information(self, node: GraphNode) -> str:
        """Render a detail block: name, description, properties and child summaries."""
        information = f"# Node - [{node.name}]\n{node.description or ''}"

        if node.properties:
            properties = [{"Name": key, "Value": value} for key, value in node.properties.items()]
            information += f"\n## Properties\n{json.dumps(properties, ensure_ascii=False)}"

        children = []
        for child in self.direct_children(node.id):
            summary = {"Name": child.name}
            if child.description:
                summary["Description"] = child.description
            children.append(summary)
        if children:
            information += f"\n## Children\n{json.dumps(children, ensure_ascii=False)}"

        return information

    def full_context_bundle(self, node_id: str) -> str:
        """Build the complete context text for a node.

        Sections, in order: an indented breadcrumb from the root, a detail
        block per level, a detail block per sibling, and the node's outgoing
        connections. The output depends only on the snapshot.
        """
        chain = self.ancestor_chain(node_id)
        if not chain:
            return ""

        lines = ["# Full context", "", "## Hierarchy", "Path from the root to the current node:"]
        for depth, ancestor in enumerate(chain):
            entry = f"{'  ' * depth}- {ancestor.name}"
            if ancestor.description:
                entry += f" ({ancestor.description})"
            lines.append(entry)

        lines.extend(["", "## Path node details"])
        for depth, ancestor in enumerate(chain, start=1):
            lines.extend(["", f"### Level {depth} node", self.node_information(ancestor)])

        lines.extend(["", "## Sibling nodes"])
        siblings = self.siblings(node_id)
        if siblings:
            for sibling in siblings:
                lines.extend(["", f"### Sibling - {sibling.name}", self.node_information(sibling)])
        else:
            lines.append("No sibling nodes")

        resolved = self.resolved_connections(node_id)
        if resolved:
            lines.extend(["", "## Connections"])
            for item in resolved:
                target = item.target.name if item.target else "node not found"
                entry = f"- {item.connection.role} -> {target} [{item.connection.strength}]"
                if item.connection.description:
                    entry += f": {item.connection.description}"
                lines.append(entry)

        return "\n".join(lines) + "\n"
