"""Page, favorite and lineage domain models."""

from typing import Annotated, Any, Literal, Union

from pydantic import Field

from canopy.domain.base import Record, now_ms
from canopy.domain.folder import FolderTree, LeafItem
from canopy.domain.graph import ObjectData

LineageSource = Literal[
    "user",
    "object_to_crosstab",
    "crosstab_to_chat",
    "object_to_chat",
    "chat_to_object",
    "other",
]


class ObjectCrosstabContext(Record):
    horizontal_node_id: str
    vertical_node_id: str
    horizontal_node_name: str
    vertical_node_name: str


class CrosstabChatContext(Record):
    horizontal_item: str
    vertical_item: str
    cell_content: str


class SourceContext(Record):
    """What a generated page was derived from inside its source page."""

    object_crosstab: ObjectCrosstabContext | None = None
    crosstab_chat: CrosstabChatContext | None = None
    custom_context: dict[str, Any] | None = None


class PageLineage(Record):
    """Provenance of a page.

    Attributes:
        source: How the page came to exist
        source_page_id: Page this one was derived from; may reference a deleted page
        source_context: Details of the derivation
        generated_page_ids: Pages derived from this one; may contain deleted ids
        generated_at: Derivation timestamp (milliseconds since epoch)
        description: Human readable provenance note
    """

    source: LineageSource = "user"
    source_page_id: str | None = None
    source_context: SourceContext | None = None
    generated_page_ids: list[str] = []
    generated_at: float | None = None
    description: str | None = None


class PageBase(LeafItem):
    starred: bool = False
    pinned: bool = False
    lineage: PageLineage | None = None


class RegularPage(PageBase):
    type: Literal["regular"] = "regular"
    messages: list[dict[str, Any]] = []


class CrosstabPage(PageBase):
    type: Literal["crosstab"] = "crosstab"
    crosstab_data: dict[str, Any] = {}


class ObjectPage(PageBase):
    type: Literal["object"] = "object"
    object_data: ObjectData


Page = Annotated[Union[RegularPage, CrosstabPage, ObjectPage], Field(discriminator="type")]


class PageTree(FolderTree):
    items: dict[str, Page] = {}


class FavoriteSource(Record):
    type: Literal["page", "message"]
    page_id: str | None = None
    message_id: str | None = None
    page_title: str | None = None
    timestamp: float = Field(default_factory=now_ms)


class FavoriteItem(LeafItem):
    """A favorited page snapshot, message or text fragment."""

    kind: Literal["page", "message", "text-fragment"]
    data: dict[str, Any] = {}
    description: str | None = None
    tags: list[str] = []
    starred: bool = False
    source: FavoriteSource | None = None


class FavoriteTree(FolderTree):
    items: dict[str, FavoriteItem] = {}
