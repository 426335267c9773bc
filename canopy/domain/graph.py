"""Object node graph domain models."""

from typing import Literal

from pydantic import Field, JsonValue

from canopy.domain.base import Record, now_ms

Source = Literal["user", "ai"]
Strength = Literal["weak", "medium", "strong"]


class ConnectionMetadata(Record):
    created_at: float | None = None
    updated_at: float | None = None
    source: Source | None = None
    ai_prompt: str | None = None
    bidirectional: bool | None = None
    tags: list[str] = []


class Connection(Record):
    """A directed, typed edge stored on its source node.

    Attributes:
        node_id: ID of the target node; may reference a removed node
        role: Role the target plays in this connection, e.g. "subject", "part-of"
        description: Free-text description of the role
        strength: Connection strength
        metadata: Provenance and tags
    """

    node_id: str
    role: str
    description: str | None = None
    strength: Strength = "medium"
    metadata: ConnectionMetadata = ConnectionMetadata()


class NodeMetadata(Record):
    created_at: float = Field(default_factory=now_ms)
    updated_at: float | None = None
    source: Source = "user"
    ai_prompt: str | None = None
    tags: list[str] = []
    readonly: bool = False


class GraphNode(Record):
    """A node of the object graph.

    `children` is the ordered list of nodes whose `parent_id` is this node.
    Only the root of an ObjectData has no `parent_id`.
    """

    id: str
    name: str
    description: str | None = None
    type: str = "entity"
    parent_id: str | None = None
    children: list[str] = []
    expanded: bool = False
    connections: list[Connection] = []
    properties: dict[str, JsonValue] = {}
    metadata: NodeMetadata = Field(default_factory=NodeMetadata)


class ObjectGenerationRecord(Record):
    """Audit entry for an AI-assisted subtree creation."""

    id: str
    parent_node_id: str
    prompt: str
    generated_node_ids: list[str] = []
    timestamp: float = Field(default_factory=now_ms)
    model_id: str | None = None


class ObjectData(Record):
    """Snapshot of an object node graph."""

    root_node_id: str
    nodes: dict[str, GraphNode]
    selected_node_id: str | None = None
    expanded_nodes: list[str] = []
    search_query: str | None = None
    filtered_node_ids: list[str] | None = None
    generation_history: list[ObjectGenerationRecord] = []

    @property
    def root(self) -> GraphNode | None:
        return self.nodes.get(self.root_node_id)


class NodeContext(Record):
    """A node together with its tree neighbourhood."""

    node: GraphNode
    ancestor_chain: list[GraphNode]
    children: list[GraphNode]
    siblings: list[GraphNode]


class ResolvedConnection(Record):
    """A connection joined to its target; `target` is None when dangling."""

    connection: Connection
    target: GraphNode | None = None
