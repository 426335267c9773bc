from canopy.domain.graph import ObjectData


def search(data: ObjectData, query: str) -> list[str]:
    """Return ids of nodes whose name or description contains `query`, ignoring case.

    A linear scan in node-map order; the graphs this serves hold hundreds of
    nodes, not millions. A blank query matches every node.
    """
    needle = query.strip().lower()
    return [
        node_id
        for node_id, node in data.nodes.items()
        if needle in node.name.lower() or needle in (node.description or "").lower()
    ]
