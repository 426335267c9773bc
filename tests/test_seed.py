from canopy.graph.seed import GENERAL_RELATION, RELATION_CONFIGS, create_object_root


def test_plain_root() -> None:
    data = create_object_root("Empty", with_meta_relations=False)

    assert list(data.nodes) == [data.root_node_id]
    assert data.root.name == "Empty"
    assert data.expanded_nodes == [data.root_node_id]


def test_meta_relations_are_seeded() -> None:
    data = create_object_root()
    by_name = {node.name: node for node in data.nodes.values()}

    meta = by_name["Meta relations"]
    general = by_name[GENERAL_RELATION]
    instances = by_name["Inheritance instances"]

    assert data.root.children == [meta.id]
    assert meta.children == [general.id, instances.id]
    assert len(general.children) == len(RELATION_CONFIGS)
    assert len(instances.children) == len(RELATION_CONFIGS)
    assert {connection.node_id for connection in general.connections} == set(general.children)
    assert set(data.expanded_nodes) >= {data.root_node_id, meta.id, general.id, instances.id}


def test_inheritance_instances_link_relation_to_general() -> None:
    data = create_object_root()
    by_name = {node.name: node for node in data.nodes.values()}
    general = by_name[GENERAL_RELATION]
    is_a = by_name[RELATION_CONFIGS[0].name]
    part_of = by_name[RELATION_CONFIGS[1].name]

    instance = by_name[f"{part_of.name} inherits from the general relation"]
    roles = {connection.role: connection.node_id for connection in instance.connections}

    assert roles == {"subject": part_of.id, "object": general.id, "instance-of": is_a.id}
    assert part_of.connections[0].role == "subclass-of"
    assert part_of.properties["isTransitive"] is True
