"""Tests for page provenance tracking."""

import pytest

from canopy import lineage
from canopy.domain.page import ObjectCrosstabContext, PageTree, RegularPage, SourceContext
from canopy.errors import CycleDetected, PreconditionViolation
from canopy.tree import store


def assert_symmetric(pages: PageTree) -> None:
    for page_id, page in pages.items.items():
        if page.lineage and page.lineage.source_page_id in pages.items:
            source = pages.items[page.lineage.source_page_id]
            assert page_id in source.lineage.generated_page_ids


@pytest.fixture
def crosstab_context() -> SourceContext:
    return SourceContext(
        object_crosstab=ObjectCrosstabContext(
            horizontal_node_id="a1",
            vertical_node_id="b",
            horizontal_node_name="Birds",
            vertical_node_name="Tools",
        )
    )


def test_record_derivation_links_both_sides(page_tree: PageTree, crosstab_context) -> None:
    pages = lineage.record_derivation(page_tree, "p1", "p2", "object_to_crosstab", crosstab_context)

    assert pages.items["p2"].lineage.source == "object_to_crosstab"
    assert pages.items["p2"].lineage.source_page_id == "p1"
    assert pages.items["p2"].lineage.source_context == crosstab_context
    assert pages.items["p1"].lineage.source == "user"
    assert pages.items["p1"].lineage.generated_page_ids == ["p2"]
    assert_symmetric(pages)


def test_record_derivation_is_idempotent(page_tree: PageTree) -> None:
    once = lineage.record_derivation(page_tree, "p1", "p2", "object_to_chat")
    twice = lineage.record_derivation(once, "p1", "p2", "object_to_chat")

    assert twice == once
    assert twice.items["p1"].lineage.generated_page_ids == ["p2"]


def test_record_derivation_with_missing_page_is_noop(page_tree: PageTree) -> None:
    assert lineage.record_derivation(page_tree, "p1", "missing", "other") is page_tree


def test_self_derivation_is_rejected(page_tree: PageTree) -> None:
    with pytest.raises(PreconditionViolation):
        lineage.record_derivation(page_tree, "p1", "p1", "other")


def test_derivation_cycle_is_rejected(page_tree: PageTree) -> None:
    pages = lineage.record_derivation(page_tree, "p1", "p2", "object_to_chat")
    pages = lineage.record_derivation(pages, "p2", "p3", "other")

    with pytest.raises(CycleDetected):
        lineage.record_derivation(pages, "p3", "p1", "other")


def test_rederiving_moves_page_between_sources(page_tree: PageTree) -> None:
    pages = lineage.record_derivation(page_tree, "p1", "p3", "other")
    pages = lineage.record_derivation(pages, "p2", "p3", "crosstab_to_chat")

    assert pages.items["p1"].lineage.generated_page_ids == []
    assert pages.items["p2"].lineage.generated_page_ids == ["p3"]
    assert pages.items["p3"].lineage.source_page_id == "p2"
    assert_symmetric(pages)


def test_remove_page_leaves_dangling_references(page_tree: PageTree) -> None:
    pages = lineage.record_derivation(page_tree, "p1", "p2", "object_to_chat")
    pages = lineage.remove_page(pages, "p1")

    assert pages.items["p2"].lineage.source_page_id == "p1"
    assert lineage.source_page(pages, "p2") is None

    pruned = lineage.prune_stale_lineage(pages)
    assert pruned.items["p2"].lineage.source_page_id is None


def test_generated_pages_skip_deleted_ids(page_tree: PageTree) -> None:
    pages = lineage.record_derivation(page_tree, "p1", "p2", "object_to_chat")
    pages = lineage.record_derivation(pages, "p1", "p3", "object_to_chat")
    pages = lineage.remove_page(pages, "p2")

    assert pages.items["p1"].lineage.generated_page_ids == ["p2", "p3"]
    assert [page.id for page in lineage.generated_pages(pages, "p1")] == ["p3"]


def test_create_derived_page_goes_to_front_of_folder(page_tree: PageTree) -> None:
    page = RegularPage(id="p4", title="Follow-up", folder_id="f1", order=0.0)

    pages = lineage.create_derived_page(page_tree, "p1", page, "object_to_chat", description="From p1")

    assert [child.id for child in store.children_of(pages, "f1")] == ["p4", "p1", "p2"]
    assert pages.items["p4"].lineage.description == "From p1"
    assert [p.id for p in lineage.lineage_chain(pages, "p4")] == ["p1", "p4"]


def test_update_lineage_rejects_link_fields(page_tree: PageTree) -> None:
    pages = lineage.update_lineage(page_tree, "p2", description="Imported")
    assert pages.items["p2"].lineage.description == "Imported"

    with pytest.raises(PreconditionViolation):
        lineage.update_lineage(page_tree, "p2", source_page_id="p1")


def test_update_lineage_validates_values(page_tree: PageTree) -> None:
    with pytest.raises(PreconditionViolation):
        lineage.update_lineage(page_tree, "p2", source="telepathy")
    with pytest.raises(PreconditionViolation):
        lineage.update_lineage(page_tree, "p2", mood="happy")


def test_has_stale_lineage(page_tree: PageTree) -> None:
    pages = lineage.record_derivation(page_tree, "p1", "p2", "object_to_chat")
    assert not lineage.has_stale_lineage(pages)

    pages = lineage.remove_page(pages, "p2")
    assert lineage.has_stale_lineage(pages)
    assert not lineage.has_stale_lineage(lineage.prune_stale_lineage(pages))
