"""Factories for fresh object graphs, optionally seeded with meta relations."""

from typing import List

from pydantic import BaseModel

from canopy.domain.graph import Connection, GraphNode, NodeMetadata, ObjectData
from canopy.graph.store import add_node, create_object_data, expand, generate_node_id


class RelationConfig(BaseModel):
    name: str
    slug: str
    description: str
    category: str
    example: str | None = None
    is_transitive: bool | None = None
    is_symmetric: bool | None = None
    inverse_of: str | None = None

    def properties(self) -> dict:
        props = {"category": self.category}
        if self.example:
            props["example"] = self.example
        if self.is_transitive is not None:
            props["isTransitive"] = self.is_transitive
        if self.is_symmetric is not None:
            props["isSymmetric"] = self.is_symmetric
        if self.inverse_of:
            props["inverseOf"] = self.inverse_of
        return props


GENERAL_RELATION = "General relation (is-related-to)"

# The first entry is the inheritance relation that every inheritance instance is an instance of.
RELATION_CONFIGS: List[RelationConfig] = [
    RelationConfig(
        name="Inheritance (is-a)",
        slug="is-a",
        description="A class and its subclass or instance: A is a kind of B",
        category="Inheritance/classification",
        is_transitive=True,
        example="(cat) -is-a-> (animal)",
    ),
    RelationConfig(
        name="Composition (part-of)",
        slug="part-of",
        description="One thing is a part of another",
        category="Composition/containment",
        is_transitive=True,
        example="(engine) -part-of-> (car)",
    ),
    RelationConfig(
        name="Containment (has-part)",
        slug="has-part",
        description="One thing has another as one of its parts",
        category="Composition/containment",
        inverse_of="part-of",
        example="(car) -has-part-> (engine)",
    ),
    RelationConfig(
        name="Property (has-property)",
        slug="has-property",
        description="An entity has a property or characteristic",
        category="Property/characteristic",
        example="(crow) -has-property-> (colour: black)",
    ),
    RelationConfig(
        name="Property owner (property-of)",
        slug="property-of",
        description="A property or characteristic belongs to an entity",
        category="Property/characteristic",
        inverse_of="has-property",
        example="(colour: black) -property-of-> (crow)",
    ),
    RelationConfig(
        name="Function (is-used-for)",
        slug="is-used-for",
        description="A thing is used for a purpose or function",
        category="Function/purpose",
        example="(hammer) -is-used-for-> (driving nails)",
    ),
    RelationConfig(
        name="Purpose (has-purpose)",
        slug="has-purpose",
        description="A thing has a purpose or intent",
        category="Function/purpose",
        example="(law) -has-purpose-> (keeping social order)",
    ),
    RelationConfig(
        name="Causation (causes)",
        slug="causes",
        description="An event or state leads to another event or state",
        category="Causation",
        is_transitive=True,
        example="(long drought) -causes-> (food crisis)",
    ),
    RelationConfig(
        name="Caused by (caused-by)",
        slug="caused-by",
        description="An event or state results from another event or state",
        category="Causation",
        inverse_of="causes",
        example="(food crisis) -caused-by-> (long drought)",
    ),
    RelationConfig(
        name="Location (located-at)",
        slug="located-at",
        description="An entity is located at a place",
        category="Spatial",
        example="(Eiffel Tower) -located-at-> (Paris)",
    ),
    RelationConfig(
        name="Spatial containment (contains)",
        slug="contains",
        description="A region of space contains another entity",
        category="Spatial",
        inverse_of="located-at",
        example="(Paris) -contains-> (Eiffel Tower)",
    ),
    RelationConfig(
        name="Opposition (is-opposed-to)",
        slug="is-opposed-to",
        description="Two things stand in opposition to each other",
        category="Opposition",
        is_symmetric=True,
        example="(light magic) -is-opposed-to-> (dark magic)",
    ),
    RelationConfig(
        name="Conflict (conflicts-with)",
        slug="conflicts-with",
        description="Two things are in conflict or contradiction",
        category="Opposition",
        is_symmetric=True,
        example="(free will) -conflicts-with-> (fatalism)",
    ),
]


def _node(name: str, type: str, description: str, **fields) -> GraphNode:
    return GraphNode(
        id=generate_node_id(),
        name=name,
        type=type,
        description=description,
        metadata=NodeMetadata(source="user"),
        **fields,
    )


def create_object_root(name: str = "Root object", with_meta_relations: bool = True) -> ObjectData:
    """Create a fresh object graph.

    With `with_meta_relations`, the root holds a "Meta relations" container
    with a general relation whose children are the predefined relation
    types, and an "Inheritance instances" container recording, through
    subject/object/instance-of connections, that each relation type is a
    subclass of the general relation.

    Args:
        name: Name of the root node
        with_meta_relations: Whether to seed the meta relation subtree

    Returns:
        A new ObjectData snapshot
    """
    root = _node(name, "entity", "Root node of the object", expanded=True)
    data = create_object_data(root)
    if not with_meta_relations:
        return data

    meta = _node(
        "Meta relations",
        "container",
        "Predefined base relation types for building a knowledge graph",
        expanded=True,
    )
    general = _node(
        GENERAL_RELATION,
        "relation",
        "Base of all relations: two things are connected in some way",
        expanded=True,
        properties={"category": "Base relation", "isAbstract": True},
    )
    instances = _node(
        "Inheritance instances",
        "container",
        "Concrete inheritance facts linking each relation type to the general relation",
        expanded=True,
    )

    data = add_node(data, meta, root.id)
    relations = [
        _node(
            config.name,
            "relation",
            config.description,
            properties=config.properties(),
            connections=[
                Connection(
                    node_id=general.id,
                    role="subclass-of",
                    description=f"{config.name} is a subclass of the general relation",
                )
            ],
        )
        for config in RELATION_CONFIGS
    ]
    general = general.model_copy(
        update={
            "connections": [
                Connection(
                    node_id=relation.id,
                    role="superclass-of",
                    description=f"The general relation is the superclass of {relation.name}",
                )
                for relation in relations
            ]
        }
    )
    data = add_node(data, general, meta.id)
    for relation in relations:
        data = add_node(data, relation, general.id)

    data = add_node(data, instances, meta.id)
    is_a = relations[0]
    for relation in relations:
        instance = _node(
            f"{relation.name} inherits from the general relation",
            "relation",
            f"States that {relation.name} is a subclass of the general relation",
            properties={
                "relationshipType": "inheritance",
                "subject": relation.name,
                "object": GENERAL_RELATION,
            },
            connections=[
                Connection(node_id=relation.id, role="subject", description=f"{relation.name} as subject"),
                Connection(node_id=general.id, role="object", description="The general relation as object"),
                Connection(
                    node_id=is_a.id,
                    role="instance-of",
                    description="This inheritance fact is itself an instance of inheritance",
                ),
            ],
        )
        data = add_node(data, instance, instances.id)

    for node_id in (meta.id, general.id, instances.id):
        data = expand(data, node_id)
    return data
