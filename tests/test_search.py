from canopy.domain.graph import ObjectData
from canopy.graph.search import search


def test_search_matches_name_and_description_ignoring_case(object_data: ObjectData) -> None:
    assert search(object_data, "BIRD") == ["a1", "a1x"]
    assert search(object_data, "work") == ["b"]


def test_blank_query_matches_every_node(object_data: ObjectData) -> None:
    assert search(object_data, "  ") == list(object_data.nodes)


def test_search_without_match(object_data: ObjectData) -> None:
    assert search(object_data, "dragon") == []
