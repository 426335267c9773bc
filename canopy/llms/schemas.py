from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ChildNames(BaseModel):
    """Names of new child nodes for the current node"""

    names: List[str] = Field(
        ...,
        description=(
            "Names of the child nodes to create. Each name should be short, specific, and "
            "must not repeat the name of an existing child"
        ),
    )


class NodeDescription(BaseModel):
    """A description of the current node"""

    description: str = Field(
        ..., description="A concise description of the node that fits its place in the hierarchy"
    )


class PropertyEntry(BaseModel):
    name: str = Field(..., description="Name of the property, e.g. 'colour' or 'weight'")
    value: str = Field(..., description="Value of the property for the current node")


class NodeProperties(BaseModel):
    """Properties that characterise the current node"""

    properties: List[PropertyEntry] = Field(
        ..., description="Key properties of the node as name/value pairs"
    )

    def as_dict(self) -> dict[str, str]:
        return {entry.name: entry.value for entry in self.properties if entry.name.strip()}


class ConnectionProposal(BaseModel):
    """A proposed connection from the current node to another node"""

    target_node_id: str = Field(..., description="ID of an existing node the connection points to")
    role: str = Field(..., description="Role the target plays, e.g. 'part-of' or 'causes'")
    description: Optional[str] = Field(None, description="Why the two nodes are connected")
    strength: Literal["weak", "medium", "strong"] = Field(
        "medium", description="How strong the connection is"
    )


class ConnectionProposals(BaseModel):
    """Connections proposed for the current node"""

    connections: List[ConnectionProposal] = Field(
        ..., description="Proposed connections; only reference node IDs listed in the context"
    )
