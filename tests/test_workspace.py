from pathlib import Path

from canopy.commands import ApplySearch, ExpandNode
from canopy.domain.workspace import WorkspaceSnapshot
from canopy.repositories import LocalWorkspaceRepository
from canopy.workspace import Workspace


def test_execute_replaces_snapshot_only_when_applied(workspace: Workspace) -> None:
    before = workspace.snapshot

    result = workspace.execute(ExpandNode(page_id="p1", node_id="a"))
    assert result.applied
    assert workspace.snapshot is result.snapshot
    assert "a" not in before.object_page("p1").object_data.expanded_nodes

    current = workspace.snapshot
    assert not workspace.execute(ExpandNode(page_id="p1", node_id="a")).applied
    assert workspace.snapshot is current


def test_object_data_and_context(workspace: Workspace) -> None:
    workspace.execute(ApplySearch(page_id="p1", query="fish"))

    assert workspace.object_data("p1").filtered_node_ids == ["a2"]
    assert workspace.object_data("p2") is None
    assert workspace.context("p1").siblings("a2")[0].name == "Birds"
    assert workspace.context("missing") is None


def test_serialize_round_trip(workspace: Workspace) -> None:
    data = workspace.serialize()

    assert data["pages"]["items"]["p1"]["objectData"]["rootNodeId"] == "root"
    assert Workspace.from_dict(data).snapshot == workspace.snapshot


def test_local_repository_save_and_load(workspace: Workspace, temp_dir: Path) -> None:
    repository = LocalWorkspaceRepository(temp_dir / "nested" / "workspace.json")

    assert repository.load() == WorkspaceSnapshot()

    repository.save(workspace.snapshot)

    assert repository.filepath.exists()
    assert repository.load() == workspace.snapshot
