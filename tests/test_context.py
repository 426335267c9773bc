"""Tests for context assembly over object graphs."""

from canopy.domain.graph import Connection, ObjectData
from canopy.graph import store
from canopy.graph.context import ContextAssembler


def names(nodes) -> list[str]:
    return [node.name for node in nodes]


def test_ancestor_chain_is_root_first(object_data: ObjectData) -> None:
    assembler = ContextAssembler(object_data)

    assert names(assembler.ancestor_chain("a1x")) == ["Root", "Animals", "Birds", "Crow"]
    assert names(assembler.ancestor_chain("root")) == ["Root"]
    assert assembler.ancestor_chain("missing") == []


def test_siblings_and_children(object_data: ObjectData) -> None:
    assembler = ContextAssembler(object_data)

    assert names(assembler.siblings("a1")) == ["Fish"]
    assert assembler.siblings("root") == []
    assert names(assembler.direct_children("a")) == ["Birds", "Fish"]


def test_resolved_connections_surface_missing_targets(object_data: ObjectData) -> None:
    data = store.add_connection(object_data, "a1x", Connection(node_id="b", role="uses"))
    data = store.add_connection(data, "a1x", Connection(node_id="gone", role="eats"))

    resolved = ContextAssembler(data).resolved_connections("a1x")

    assert resolved[0].target.name == "Tools"
    assert resolved[1].target is None


def test_node_information_lists_properties_and_children(object_data: ObjectData) -> None:
    assembler = ContextAssembler(object_data)
    information = assembler.node_information(object_data.nodes["a1"])

    assert information.startswith("# Node - [Birds]\n")
    assert '## Properties\n[{"Name": "legs", "Value": 2}]' in information
    assert '## Children\n[{"Name": "Crow", "Description": "A black bird"}]' in information


def test_node_context(object_data: ObjectData) -> None:
    context = ContextAssembler(object_data).node_context("a1")

    assert context.node.id == "a1"
    assert names(context.ancestor_chain) == ["Root", "Animals", "Birds"]
    assert names(context.children) == ["Crow"]
    assert names(context.siblings) == ["Fish"]
    assert ContextAssembler(object_data).node_context("missing") is None


def test_full_context_bundle(object_data: ObjectData) -> None:
    data = store.add_connection(object_data, "a1", Connection(node_id="gone", role="eats"))

    bundle = ContextAssembler(data).full_context_bundle("a1")

    assert "- Root\n  - Animals (Living creatures)\n    - Birds\n" in bundle
    assert "### Level 3 node\n# Node - [Birds]" in bundle
    assert "### Sibling - Fish\n# Node - [Fish]" in bundle
    assert "- eats -> node not found [medium]" in bundle
    assert bundle == ContextAssembler(data).full_context_bundle("a1")


def test_full_context_bundle_without_siblings(object_data: ObjectData) -> None:
    bundle = ContextAssembler(object_data).full_context_bundle("a1x")

    assert "## Sibling nodes\nNo sibling nodes" in bundle
    assert "## Connections" not in bundle
