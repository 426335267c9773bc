"""Provenance links between pages.

A page has at most one source page and any number of generated pages. Both
directions are written in the same snapshot. Deleting a page never cascades:
derived pages keep a dangling `source_page_id` and the source keeps the stale
id in `generated_page_ids` until `prune_stale_lineage` is called.
"""

from typing import List

from loguru import logger
from pydantic import ValidationError

from canopy.domain.base import now_ms
from canopy.domain.page import LineageSource, Page, PageLineage, PageTree, SourceContext
from canopy.errors import CycleDetected, PreconditionViolation
from canopy.tree.store import add_leaf, delete_leaf


def _set_lineage(pages: PageTree, page_id: str, lineage: PageLineage) -> PageTree:
    page = pages.items[page_id].model_copy(update={"lineage": lineage})
    return pages.model_copy(update={"items": {**pages.items, page_id: page}})


def source_page(pages: PageTree, page_id: str) -> Page | None:
    page = pages.items.get(page_id)
    if page is None or page.lineage is None or page.lineage.source_page_id is None:
        return None
    return pages.items.get(page.lineage.source_page_id)


def generated_pages(pages: PageTree, page_id: str) -> List[Page]:
    """Get the pages derived from a page, skipping ids that no longer exist."""
    page = pages.items.get(page_id)
    if page is None or page.lineage is None:
        return []
    return [pages.items[pid] for pid in page.lineage.generated_page_ids if pid in pages.items]


def lineage_chain(pages: PageTree, page_id: str) -> List[Page]:
    """Get the provenance path from the oldest existing ancestor down to the page."""
    chain: List[Page] = []
    seen: set[str] = set()
    page = pages.items.get(page_id)
    while page is not None and page.id not in seen:
        chain.append(page)
        seen.add(page.id)
        page = source_page(pages, page.id)
    chain.reverse()
    return chain


def is_derivation_recorded(
    pages: PageTree,
    source_page_id: str,
    new_page_id: str,
    source: LineageSource,
    context: SourceContext | None = None,
) -> bool:
    """Whether both sides of this exact derivation are already in place."""
    source_item = pages.items.get(source_page_id)
    new_item = pages.items.get(new_page_id)
    if source_item is None or new_item is None:
        return False
    current = new_item.lineage
    return (
        current is not None
        and current.source_page_id == source_page_id
        and current.source == source
        and current.source_context == context
        and source_item.lineage is not None
        and new_page_id in source_item.lineage.generated_page_ids
    )


def record_derivation(
    pages: PageTree,
    source_page_id: str,
    new_page_id: str,
    source: LineageSource,
    context: SourceContext | None = None,
    description: str | None = None,
) -> PageTree:
    """Link a page to the page it was derived from.

    The derived page's lineage and the source's `generated_page_ids` change
    together. Recording the same derivation twice leaves the snapshot as is.
    A source page without lineage is given a `"user"` lineage first.

    Args:
        pages: Current page tree
        source_page_id: Page the new page was derived from
        new_page_id: The derived page
        source: Kind of derivation
        context: What inside the source page the derivation started from
        description: Human readable provenance note

    Returns:
        The updated page tree, or the input when either page is missing

    Raises:
        PreconditionViolation: If a page is derived from itself
        CycleDetected: If the source page already descends from the new page
    """
    if source_page_id == new_page_id:
        raise PreconditionViolation(f"Page {new_page_id} cannot be derived from itself")
    source_item = pages.items.get(source_page_id)
    new_item = pages.items.get(new_page_id)
    if source_item is None or new_item is None:
        logger.debug(f"Derivation {source_page_id} -> {new_page_id} ignored: missing page")
        return pages
    if any(page.id == new_page_id for page in lineage_chain(pages, source_page_id)):
        raise CycleDetected(new_page_id, source_page_id)

    if is_derivation_recorded(pages, source_page_id, new_page_id, source, context):
        return pages

    current = new_item.lineage
    source_lineage = source_item.lineage or PageLineage(source="user")
    previous_id = current.source_page_id if current else None
    if previous_id and previous_id != source_page_id and previous_id in pages.items:
        previous = pages.items[previous_id].lineage
        if previous is not None:
            remaining = [pid for pid in previous.generated_page_ids if pid != new_page_id]
            pages = _set_lineage(
                pages, previous_id, previous.model_copy(update={"generated_page_ids": remaining})
            )

    if description is None and current is not None:
        description = current.description
    pages = _set_lineage(
        pages,
        new_page_id,
        PageLineage(
            source=source,
            source_page_id=source_page_id,
            source_context=context,
            generated_page_ids=current.generated_page_ids if current else [],
            generated_at=now_ms(),
            description=description,
        ),
    )
    if new_page_id not in source_lineage.generated_page_ids:
        source_lineage = source_lineage.model_copy(
            update={"generated_page_ids": [*source_lineage.generated_page_ids, new_page_id]}
        )
    pages = _set_lineage(pages, source_page_id, source_lineage)
    logger.info(f"Recorded {source} derivation {source_page_id} -> {new_page_id}")
    return pages


def create_derived_page(
    pages: PageTree,
    source_page_id: str,
    page: Page,
    source: LineageSource,
    context: SourceContext | None = None,
    description: str | None = None,
) -> PageTree:
    """Insert a page at the front of its folder and record where it came from."""
    pages = add_leaf(pages, page, at_front=True)
    return record_derivation(pages, source_page_id, page.id, source, context, description)


def update_lineage(pages: PageTree, page_id: str, **fields) -> PageTree:
    """Merge descriptive fields into a page's lineage.

    Link fields are rejected; use `record_derivation` so both sides stay in sync.
    """
    page = pages.items.get(page_id)
    if page is None:
        return pages
    links = {"source_page_id", "generated_page_ids"} & fields.keys()
    if links:
        raise PreconditionViolation(f"Use record_derivation to change {sorted(links)}")
    unknown = fields.keys() - PageLineage.model_fields.keys()
    if unknown:
        raise PreconditionViolation(f"Unknown lineage fields: {sorted(unknown)}")
    lineage = page.lineage or PageLineage()
    try:
        updated = PageLineage.model_validate({**lineage.model_dump(), **fields})
    except ValidationError as e:
        raise PreconditionViolation(f"Invalid lineage update for page {page_id}: {e}") from e
    return _set_lineage(pages, page_id, updated)


def remove_page(pages: PageTree, page_id: str) -> PageTree:
    """Delete a page without touching the lineage of related pages."""
    return delete_leaf(pages, page_id)


def _pruned(pages: PageTree, lineage: PageLineage) -> tuple[list[str], str | None]:
    generated = [pid for pid in lineage.generated_page_ids if pid in pages.items]
    source_id = lineage.source_page_id if lineage.source_page_id in pages.items else None
    return generated, source_id


def has_stale_lineage(pages: PageTree) -> bool:
    """Whether any lineage references a page that no longer exists."""
    return any(
        _pruned(pages, page.lineage) != (page.lineage.generated_page_ids, page.lineage.source_page_id)
        for page in pages.items.values()
        if page.lineage is not None
    )


def prune_stale_lineage(pages: PageTree) -> PageTree:
    """Drop lineage references to pages that no longer exist."""
    pruned = pages
    for page_id, page in pages.items.items():
        lineage = page.lineage
        if lineage is None:
            continue
        generated, source_id = _pruned(pages, lineage)
        if generated != lineage.generated_page_ids or source_id != lineage.source_page_id:
            pruned = _set_lineage(
                pruned,
                page_id,
                lineage.model_copy(update={"generated_page_ids": generated, "source_page_id": source_id}),
            )
    return pruned
