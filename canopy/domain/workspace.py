from canopy.domain.base import Record
from canopy.domain.page import FavoriteTree, ObjectPage, PageTree


class WorkspaceSnapshot(Record):
    """Everything a workspace holds: the page tree and the favorites tree."""

    pages: PageTree = PageTree()
    favorites: FavoriteTree = FavoriteTree()

    def object_page(self, page_id: str) -> ObjectPage | None:
        page = self.pages.items.get(page_id)
        return page if isinstance(page, ObjectPage) else None
