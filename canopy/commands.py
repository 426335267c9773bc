"""Commands over a workspace snapshot and the dispatcher that applies them.

Every state change is expressed as one command model. `dispatch` routes the
command to a handler that runs the pure store functions and reports whether
anything changed. Handlers decide no-ops explicitly and give a reason.
"""

from typing import Annotated, Any, Callable, Dict, List, Literal, NamedTuple, Optional, Type, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from canopy import lineage
from canopy.domain.base import Record
from canopy.domain.folder import ItemRef
from canopy.domain.graph import Connection, GraphNode, ObjectData, ObjectGenerationRecord
from canopy.domain.page import FavoriteItem, LineageSource, ObjectPage, Page, SourceContext
from canopy.domain.workspace import WorkspaceSnapshot
from canopy.errors import CycleDetected
from canopy.graph import store as graph
from canopy.graph.seed import create_object_root
from canopy.interchange import ImportMode, import_object_data
from canopy.tree import store as tree_store
from canopy.tree.dragdrop import drop_at_gap, drop_into_folder
from canopy.tree.store import DeletePolicy

TreeName = Literal["pages", "favorites"]


# ========================================
# Graph commands
# ========================================


class GraphCommand(Record):
    page_id: str


class AddNode(GraphCommand):
    kind: Literal["add_node"] = "add_node"
    node: GraphNode
    parent_id: str | None = None


class UpdateNode(GraphCommand):
    kind: Literal["update_node"] = "update_node"
    node_id: str
    updates: Dict[str, Any]


class DeleteNode(GraphCommand):
    kind: Literal["delete_node"] = "delete_node"
    node_id: str


class ClearChildren(GraphCommand):
    kind: Literal["clear_children"] = "clear_children"
    node_id: str


class MoveNode(GraphCommand):
    kind: Literal["move_node"] = "move_node"
    node_id: str
    new_parent_id: str
    index: int | None = None


class ReorderChildren(GraphCommand):
    kind: Literal["reorder_children"] = "reorder_children"
    parent_id: str
    ordered_ids: List[str]


class ToggleExpansion(GraphCommand):
    kind: Literal["toggle_expansion"] = "toggle_expansion"
    node_id: str


class ExpandNode(GraphCommand):
    kind: Literal["expand_node"] = "expand_node"
    node_id: str


class CollapseNode(GraphCommand):
    kind: Literal["collapse_node"] = "collapse_node"
    node_id: str


class SelectNode(GraphCommand):
    kind: Literal["select_node"] = "select_node"
    node_id: str | None = None


class AddConnection(GraphCommand):
    kind: Literal["add_connection"] = "add_connection"
    node_id: str
    connection: Connection


class UpdateConnection(GraphCommand):
    kind: Literal["update_connection"] = "update_connection"
    node_id: str
    index: int
    connection: Connection


class RemoveConnection(GraphCommand):
    kind: Literal["remove_connection"] = "remove_connection"
    node_id: str
    index: int


class PruneDanglingConnections(GraphCommand):
    kind: Literal["prune_dangling_connections"] = "prune_dangling_connections"


class ApplySearch(GraphCommand):
    kind: Literal["apply_search"] = "apply_search"
    query: str


class ClearSearch(GraphCommand):
    kind: Literal["clear_search"] = "clear_search"


class RecordGeneration(GraphCommand):
    kind: Literal["record_generation"] = "record_generation"
    record: ObjectGenerationRecord


class UpdateGenerationRecord(GraphCommand):
    kind: Literal["update_generation_record"] = "update_generation_record"
    record_id: str
    generated_node_ids: List[str]


class ImportObject(GraphCommand):
    kind: Literal["import_object"] = "import_object"
    document: Dict[str, Any]
    mode: ImportMode = "replace"
    parent_id: str | None = None


# ========================================
# Tree commands
# ========================================


class TreeCommand(Record):
    tree: TreeName = "pages"


class CreateFolder(TreeCommand):
    kind: Literal["create_folder"] = "create_folder"
    name: str
    parent_id: str | None = None
    order: float | None = None
    folder_id: str | None = None
    description: str | None = None
    color: str | None = None


class RenameFolder(TreeCommand):
    kind: Literal["rename_folder"] = "rename_folder"
    folder_id: str
    name: str


class UpdateFolder(TreeCommand):
    kind: Literal["update_folder"] = "update_folder"
    folder_id: str
    fields: Dict[str, Any]


class ToggleFolder(TreeCommand):
    kind: Literal["toggle_folder"] = "toggle_folder"
    folder_id: str


class DeleteFolder(TreeCommand):
    kind: Literal["delete_folder"] = "delete_folder"
    folder_id: str
    policy: DeletePolicy = "flatten"


class ClearFolder(TreeCommand):
    kind: Literal["clear_folder"] = "clear_folder"
    folder_id: str


class MoveFolder(TreeCommand):
    kind: Literal["move_folder"] = "move_folder"
    folder_id: str
    target_parent_id: str | None = None
    new_order: float


class MoveLeaf(TreeCommand):
    kind: Literal["move_leaf"] = "move_leaf"
    item_id: str
    target_folder_id: str | None = None
    new_order: float


class ReorderSiblings(TreeCommand):
    kind: Literal["reorder_siblings"] = "reorder_siblings"
    parent_id: str | None = None
    ordered_ids: List[str]


class DropIntoFolder(TreeCommand):
    kind: Literal["drop_into_folder"] = "drop_into_folder"
    item: ItemRef
    folder_id: str


class DropAtGap(TreeCommand):
    kind: Literal["drop_at_gap"] = "drop_at_gap"
    item: ItemRef
    target: ItemRef
    drop_position: int


class UpdateLeaf(TreeCommand):
    kind: Literal["update_leaf"] = "update_leaf"
    item_id: str
    fields: Dict[str, Any]


class DeleteLeaves(TreeCommand):
    kind: Literal["delete_leaves"] = "delete_leaves"
    item_ids: List[str]


class AddFavorite(Record):
    kind: Literal["add_favorite"] = "add_favorite"
    item: FavoriteItem
    at_front: bool = True


# ========================================
# Page and lineage commands
# ========================================


class AddPage(Record):
    kind: Literal["add_page"] = "add_page"
    page: Page
    at_front: bool = False


class CreateObjectPage(Record):
    kind: Literal["create_object_page"] = "create_object_page"
    title: str
    folder_id: str | None = None
    page_id: str | None = None
    with_meta_relations: bool = True


class RemovePage(Record):
    kind: Literal["remove_page"] = "remove_page"
    page_id: str


class RecordDerivation(Record):
    kind: Literal["record_derivation"] = "record_derivation"
    source_page_id: str
    new_page_id: str
    source: LineageSource
    context: SourceContext | None = None
    description: str | None = None


class CreateDerivedPage(Record):
    kind: Literal["create_derived_page"] = "create_derived_page"
    source_page_id: str
    page: Page
    source: LineageSource
    context: SourceContext | None = None
    description: str | None = None


class UpdateLineage(Record):
    kind: Literal["update_lineage"] = "update_lineage"
    page_id: str
    fields: Dict[str, Any]


class PruneStaleLineage(Record):
    kind: Literal["prune_stale_lineage"] = "prune_stale_lineage"


Command = Annotated[
    Union[
        AddNode,
        UpdateNode,
        DeleteNode,
        ClearChildren,
        MoveNode,
        ReorderChildren,
        ToggleExpansion,
        ExpandNode,
        CollapseNode,
        SelectNode,
        AddConnection,
        UpdateConnection,
        RemoveConnection,
        PruneDanglingConnections,
        ApplySearch,
        ClearSearch,
        RecordGeneration,
        UpdateGenerationRecord,
        ImportObject,
        CreateFolder,
        RenameFolder,
        UpdateFolder,
        ToggleFolder,
        DeleteFolder,
        ClearFolder,
        MoveFolder,
        MoveLeaf,
        ReorderSiblings,
        DropIntoFolder,
        DropAtGap,
        UpdateLeaf,
        DeleteLeaves,
        AddFavorite,
        AddPage,
        CreateObjectPage,
        RemovePage,
        RecordDerivation,
        CreateDerivedPage,
        UpdateLineage,
        PruneStaleLineage,
    ],
    Field(discriminator="kind"),
]

command_adapter: TypeAdapter[Command] = TypeAdapter(Command)


def parse_command(payload: dict) -> Command:
    """Validate a camelCase or snake_case payload into a command model."""
    return command_adapter.validate_python(payload)


class CommandResult(BaseModel):
    """Outcome of dispatching one command.

    Attributes:
        snapshot: The snapshot after the command; the input snapshot when nothing changed
        applied: Whether the command changed anything
        error: Domain error that rejected the command, if any
        created_id: ID of the entity the command created, if any
        reason: Why the command was not applied
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    snapshot: WorkspaceSnapshot
    applied: bool
    error: Optional[CycleDetected] = None
    created_id: str | None = None
    reason: str | None = None


class Change(NamedTuple):
    """What a handler did. A `state` of None means nothing changed."""

    state: Any
    reason: str | None = None
    created_id: str | None = None


def skip(reason: str) -> Change:
    return Change(None, reason)


Handler = Callable[[Any, Any], Change]

_GRAPH_HANDLERS: Dict[Type[Record], Handler] = {}
_TREE_HANDLERS: Dict[Type[Record], Handler] = {}
_PAGE_HANDLERS: Dict[Type[Record], Handler] = {}


def handles(registry: Dict[Type[Record], Handler], command_type: Type[Record]):
    def decorator(func: Handler) -> Handler:
        registry[command_type] = func
        return func

    return decorator


def _node_missing(data: ObjectData, *node_ids: str | None) -> Change | None:
    for node_id in node_ids:
        if node_id is not None and node_id not in data.nodes:
            return skip(f"node {node_id} not found")
    return None


# ========================================
# Graph handlers
# ========================================


@handles(_GRAPH_HANDLERS, AddNode)
def _add_node(data: ObjectData, command: AddNode) -> Change:
    if command.parent_id is not None and command.parent_id not in data.nodes:
        return skip(f"parent {command.parent_id} not found")
    return Change(graph.add_node(data, command.node, command.parent_id), created_id=command.node.id)


@handles(_GRAPH_HANDLERS, UpdateNode)
def _update_node(data: ObjectData, command: UpdateNode) -> Change:
    return _node_missing(data, command.node_id) or Change(
        graph.update_node(data, command.node_id, command.updates)
    )


@handles(_GRAPH_HANDLERS, DeleteNode)
def _delete_node(data: ObjectData, command: DeleteNode) -> Change:
    return _node_missing(data, command.node_id) or Change(graph.delete_node(data, command.node_id))


@handles(_GRAPH_HANDLERS, ClearChildren)
def _clear_children(data: ObjectData, command: ClearChildren) -> Change:
    missing = _node_missing(data, command.node_id)
    if missing:
        return missing
    if not data.nodes[command.node_id].children:
        return skip("node has no children")
    return Change(graph.clear_children(data, command.node_id))


@handles(_GRAPH_HANDLERS, MoveNode)
def _move_node(data: ObjectData, command: MoveNode) -> Change:
    return _node_missing(data, command.node_id, command.new_parent_id) or Change(
        graph.move_node(data, command.node_id, command.new_parent_id, command.index)
    )


@handles(_GRAPH_HANDLERS, ReorderChildren)
def _reorder_children(data: ObjectData, command: ReorderChildren) -> Change:
    return _node_missing(data, command.parent_id) or Change(
        graph.reorder_children(data, command.parent_id, command.ordered_ids)
    )


@handles(_GRAPH_HANDLERS, ToggleExpansion)
def _toggle_expansion(data: ObjectData, command: ToggleExpansion) -> Change:
    return _node_missing(data, command.node_id) or Change(
        graph.toggle_expansion(data, command.node_id)
    )


@handles(_GRAPH_HANDLERS, ExpandNode)
def _expand(data: ObjectData, command: ExpandNode) -> Change:
    missing = _node_missing(data, command.node_id)
    if missing:
        return missing
    if command.node_id in data.expanded_nodes:
        return skip("already expanded")
    return Change(graph.expand(data, command.node_id))


@handles(_GRAPH_HANDLERS, CollapseNode)
def _collapse(data: ObjectData, command: CollapseNode) -> Change:
    missing = _node_missing(data, command.node_id)
    if missing:
        return missing
    if command.node_id not in data.expanded_nodes:
        return skip("already collapsed")
    return Change(graph.collapse(data, command.node_id))


@handles(_GRAPH_HANDLERS, SelectNode)
def _select(data: ObjectData, command: SelectNode) -> Change:
    return _node_missing(data, command.node_id) or Change(graph.select_node(data, command.node_id))


def _connection_missing(data: ObjectData, node_id: str, index: int) -> Change | None:
    missing = _node_missing(data, node_id)
    if missing:
        return missing
    if not 0 <= index < len(data.nodes[node_id].connections):
        return skip(f"connection index {index} out of range")
    return None


@handles(_GRAPH_HANDLERS, AddConnection)
def _add_connection(data: ObjectData, command: AddConnection) -> Change:
    return _node_missing(data, command.node_id) or Change(
        graph.add_connection(data, command.node_id, command.connection)
    )


@handles(_GRAPH_HANDLERS, UpdateConnection)
def _update_connection(data: ObjectData, command: UpdateConnection) -> Change:
    return _connection_missing(data, command.node_id, command.index) or Change(
        graph.update_connection(data, command.node_id, command.index, command.connection)
    )


@handles(_GRAPH_HANDLERS, RemoveConnection)
def _remove_connection(data: ObjectData, command: RemoveConnection) -> Change:
    return _connection_missing(data, command.node_id, command.index) or Change(
        graph.remove_connection(data, command.node_id, command.index)
    )


@handles(_GRAPH_HANDLERS, PruneDanglingConnections)
def _prune_connections(data: ObjectData, command: PruneDanglingConnections) -> Change:
    dangling = any(
        connection.node_id not in data.nodes
        for node in data.nodes.values()
        for connection in node.connections
    )
    if not dangling:
        return skip("no dangling connections")
    return Change(graph.prune_dangling_connections(data))


@handles(_GRAPH_HANDLERS, ApplySearch)
def _apply_search(data: ObjectData, command: ApplySearch) -> Change:
    return Change(graph.apply_search(data, command.query))


@handles(_GRAPH_HANDLERS, ClearSearch)
def _clear_search(data: ObjectData, command: ClearSearch) -> Change:
    return Change(graph.clear_search(data))


@handles(_GRAPH_HANDLERS, RecordGeneration)
def _record_generation(data: ObjectData, command: RecordGeneration) -> Change:
    return Change(graph.record_generation(data, command.record), created_id=command.record.id)


@handles(_GRAPH_HANDLERS, UpdateGenerationRecord)
def _update_generation_record(data: ObjectData, command: UpdateGenerationRecord) -> Change:
    if not any(record.id == command.record_id for record in data.generation_history):
        return skip(f"generation record {command.record_id} not found")
    return Change(
        graph.update_generation_record(data, command.record_id, command.generated_node_ids)
    )


@handles(_GRAPH_HANDLERS, ImportObject)
def _import_object(data: ObjectData, command: ImportObject) -> Change:
    if command.mode == "merge":
        missing = _node_missing(data, command.parent_id)
        if missing:
            return missing
    return Change(import_object_data(data, command.document, command.mode, command.parent_id))


# ========================================
# Tree handlers
# ========================================


@handles(_TREE_HANDLERS, CreateFolder)
def _create_folder(tree, command: CreateFolder) -> Change:
    extra = {
        key: value
        for key, value in (("description", command.description), ("color", command.color))
        if value is not None
    }
    result, folder_id = tree_store.create_folder(
        tree, command.name, command.parent_id, command.order, command.folder_id, **extra
    )
    if folder_id is None:
        return skip(f"parent folder {command.parent_id} not found")
    return Change(result, created_id=folder_id)


def _folder_missing(tree, *folder_ids: str | None) -> Change | None:
    for folder_id in folder_ids:
        if folder_id is not None and folder_id not in tree.folders:
            return skip(f"folder {folder_id} not found")
    return None


def _item_missing(tree, ref: ItemRef) -> Change | None:
    if not tree_store.exists(tree, ref):
        return skip(f"{ref.kind} {ref.id} not found")
    return None


@handles(_TREE_HANDLERS, RenameFolder)
def _rename_folder(tree, command: RenameFolder) -> Change:
    return _folder_missing(tree, command.folder_id) or Change(
        tree_store.rename_folder(tree, command.folder_id, command.name)
    )


@handles(_TREE_HANDLERS, UpdateFolder)
def _update_folder(tree, command: UpdateFolder) -> Change:
    return _folder_missing(tree, command.folder_id) or Change(
        tree_store.update_folder(tree, command.folder_id, **command.fields)
    )


@handles(_TREE_HANDLERS, ToggleFolder)
def _toggle_folder(tree, command: ToggleFolder) -> Change:
    return _folder_missing(tree, command.folder_id) or Change(
        tree_store.toggle_folder(tree, command.folder_id)
    )


@handles(_TREE_HANDLERS, DeleteFolder)
def _delete_folder(tree, command: DeleteFolder) -> Change:
    return _folder_missing(tree, command.folder_id) or Change(
        tree_store.delete_folder(tree, command.folder_id, command.policy)
    )


@handles(_TREE_HANDLERS, ClearFolder)
def _clear_folder(tree, command: ClearFolder) -> Change:
    missing = _folder_missing(tree, command.folder_id)
    if missing:
        return missing
    if not any(item.folder_id == command.folder_id for item in tree.items.values()):
        return skip("folder has no items")
    return Change(tree_store.clear_folder(tree, command.folder_id))


@handles(_TREE_HANDLERS, MoveFolder)
def _move_folder(tree, command: MoveFolder) -> Change:
    return _folder_missing(tree, command.folder_id, command.target_parent_id) or Change(
        tree_store.move_folder(tree, command.folder_id, command.target_parent_id, command.new_order)
    )


@handles(_TREE_HANDLERS, MoveLeaf)
def _move_leaf(tree, command: MoveLeaf) -> Change:
    missing = _item_missing(tree, ItemRef(kind="leaf", id=command.item_id))
    return missing or _folder_missing(tree, command.target_folder_id) or Change(
        tree_store.move_leaf(tree, command.item_id, command.target_folder_id, command.new_order)
    )


@handles(_TREE_HANDLERS, ReorderSiblings)
def _reorder_siblings(tree, command: ReorderSiblings) -> Change:
    return _folder_missing(tree, command.parent_id) or Change(
        tree_store.reorder_siblings(tree, command.parent_id, command.ordered_ids)
    )


@handles(_TREE_HANDLERS, DropIntoFolder)
def _drop_into_folder(tree, command: DropIntoFolder) -> Change:
    return (
        _item_missing(tree, command.item)
        or _folder_missing(tree, command.folder_id)
        or Change(drop_into_folder(tree, command.item, command.folder_id))
    )


@handles(_TREE_HANDLERS, DropAtGap)
def _drop_at_gap(tree, command: DropAtGap) -> Change:
    if command.item == command.target:
        return skip("item dropped next to itself")
    return (
        _item_missing(tree, command.item)
        or _item_missing(tree, command.target)
        or Change(drop_at_gap(tree, command.item, command.target, command.drop_position))
    )


@handles(_TREE_HANDLERS, UpdateLeaf)
def _update_leaf(tree, command: UpdateLeaf) -> Change:
    return _item_missing(tree, ItemRef(kind="leaf", id=command.item_id)) or Change(
        tree_store.update_leaf(tree, command.item_id, **command.fields)
    )


@handles(_TREE_HANDLERS, DeleteLeaves)
def _delete_leaves(tree, command: DeleteLeaves) -> Change:
    if not any(item_id in tree.items for item_id in command.item_ids):
        return skip("no matching items")
    return Change(tree_store.delete_leaves(tree, command.item_ids))


# ========================================
# Page handlers
# ========================================


@handles(_PAGE_HANDLERS, AddPage)
def _add_page(pages, command: AddPage) -> Change:
    return Change(
        tree_store.add_leaf(pages, command.page, at_front=command.at_front),
        created_id=command.page.id,
    )


@handles(_PAGE_HANDLERS, CreateObjectPage)
def _create_object_page(pages, command: CreateObjectPage) -> Change:
    page = ObjectPage(
        id=command.page_id or tree_store.generate_id(),
        title=command.title,
        folder_id=command.folder_id,
        order=0.0,
        object_data=create_object_root(command.title, command.with_meta_relations),
    )
    return Change(tree_store.add_leaf(pages, page, at_front=True), created_id=page.id)


@handles(_PAGE_HANDLERS, RemovePage)
def _remove_page(pages, command: RemovePage) -> Change:
    if command.page_id not in pages.items:
        return skip(f"page {command.page_id} not found")
    return Change(lineage.remove_page(pages, command.page_id))


@handles(_PAGE_HANDLERS, RecordDerivation)
def _record_derivation(pages, command: RecordDerivation) -> Change:
    for page_id in (command.source_page_id, command.new_page_id):
        if page_id not in pages.items:
            return skip(f"page {page_id} not found")
    if lineage.is_derivation_recorded(
        pages, command.source_page_id, command.new_page_id, command.source, command.context
    ):
        return skip("derivation already recorded")
    result = lineage.record_derivation(
        pages,
        command.source_page_id,
        command.new_page_id,
        command.source,
        command.context,
        command.description,
    )
    return Change(result)


@handles(_PAGE_HANDLERS, CreateDerivedPage)
def _create_derived_page(pages, command: CreateDerivedPage) -> Change:
    result = lineage.create_derived_page(
        pages,
        command.source_page_id,
        command.page,
        command.source,
        command.context,
        command.description,
    )
    return Change(result, created_id=command.page.id)


@handles(_PAGE_HANDLERS, UpdateLineage)
def _update_lineage(pages, command: UpdateLineage) -> Change:
    if command.page_id not in pages.items:
        return skip(f"page {command.page_id} not found")
    return Change(lineage.update_lineage(pages, command.page_id, **command.fields))


@handles(_PAGE_HANDLERS, PruneStaleLineage)
def _prune_lineage(pages, command: PruneStaleLineage) -> Change:
    if not lineage.has_stale_lineage(pages):
        return skip("no stale lineage")
    return Change(lineage.prune_stale_lineage(pages))


# ========================================
# Dispatch
# ========================================


def _run(snapshot: WorkspaceSnapshot, command: Record) -> tuple[WorkspaceSnapshot, Change]:
    command_type = type(command)

    if command_type in _GRAPH_HANDLERS:
        page = snapshot.object_page(command.page_id)
        if page is None:
            return snapshot, skip(f"object page {command.page_id} not found")
        change = _GRAPH_HANDLERS[command_type](page.object_data, command)
        if change.state is None:
            return snapshot, change
        page = page.model_copy(update={"object_data": change.state})
        pages = snapshot.pages.model_copy(update={"items": {**snapshot.pages.items, page.id: page}})
        return snapshot.model_copy(update={"pages": pages}), change

    if command_type in _TREE_HANDLERS:
        tree = getattr(snapshot, command.tree)
        change = _TREE_HANDLERS[command_type](tree, command)
        if change.state is None:
            return snapshot, change
        return snapshot.model_copy(update={command.tree: change.state}), change

    if command_type is AddFavorite:
        favorites = tree_store.add_leaf(snapshot.favorites, command.item, at_front=command.at_front)
        return snapshot.model_copy(update={"favorites": favorites}), Change(
            favorites, created_id=command.item.id
        )

    change = _PAGE_HANDLERS[command_type](snapshot.pages, command)
    if change.state is None:
        return snapshot, change
    return snapshot.model_copy(update={"pages": change.state}), change


def dispatch(snapshot: WorkspaceSnapshot, command: Command) -> CommandResult:
    """Apply a command to a workspace snapshot.

    Args:
        snapshot: Current workspace snapshot
        command: Command to apply

    Returns:
        The result, carrying the new snapshot, or the unchanged snapshot with
        a reason (no-op) or an error (rejected move)

    Raises:
        PreconditionViolation: If the command is malformed for the current state
    """
    try:
        result, change = _run(snapshot, command)
    except CycleDetected as e:
        logger.warning(f"Command {command.kind} rejected: {e.message}")
        return CommandResult(snapshot=snapshot, applied=False, error=e, reason="cycle")

    if change.state is None:
        logger.debug(f"Command {command.kind} not applied: {change.reason}")
        return CommandResult(snapshot=snapshot, applied=False, reason=change.reason)
    return CommandResult(snapshot=result, applied=True, created_id=change.created_id)
