from fastapi.testclient import TestClient

from canopy.api import create_app
from canopy.workspace import Workspace
from tests.fakes import FakeWorkspaceRepository


def test_health_check(test_client: TestClient) -> None:
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_command_endpoint_applies_command(test_client: TestClient, workspace: Workspace) -> None:
    response = test_client.post(
        "/api/commands",
        json={"kind": "add_node", "pageId": "p1", "parentId": "b", "node": {"id": "b1", "name": "Saw"}},
    )

    assert response.status_code == 200
    assert response.json() == {"applied": True, "createdId": "b1", "reason": None}
    assert workspace.object_data("p1").nodes["b"].children == ["b1"]


def test_command_endpoint_reports_noop(test_client: TestClient) -> None:
    response = test_client.post(
        "/api/commands", json={"kind": "delete_node", "pageId": "p1", "nodeId": "missing"}
    )

    assert response.status_code == 200
    assert response.json()["applied"] is False
    assert response.json()["reason"] == "node missing not found"


def test_command_endpoint_rejects_cycles(test_client: TestClient, workspace: Workspace) -> None:
    before = workspace.snapshot
    response = test_client.post(
        "/api/commands",
        json={"kind": "move_node", "pageId": "p1", "nodeId": "a", "newParentId": "a1"},
    )

    assert response.status_code == 409
    assert workspace.snapshot is before


def test_command_endpoint_rejects_malformed_commands(test_client: TestClient) -> None:
    response = test_client.post("/api/commands", json={"kind": "launch_rocket"})
    assert response.status_code == 422

    response = test_client.post(
        "/api/commands", json={"kind": "delete_node", "pageId": "p1", "nodeId": "root"}
    )
    assert response.status_code == 422


def test_get_object(test_client: TestClient) -> None:
    response = test_client.get("/api/pages/p1/object")

    assert response.status_code == 200
    assert response.json()["rootNodeId"] == "root"
    assert test_client.get("/api/pages/p2/object").status_code == 404


def test_get_node_context(test_client: TestClient) -> None:
    response = test_client.get("/api/pages/p1/nodes/a1/context")

    assert response.status_code == 200
    body = response.json()
    assert [node["name"] for node in body["ancestorChain"]] == ["Root", "Animals", "Birds"]
    assert [node["name"] for node in body["siblings"]] == ["Fish"]
    assert body["connections"] == []
    assert body["bundle"].startswith("# Full context\n")

    assert test_client.get("/api/pages/p1/nodes/missing/context").status_code == 404


def test_search(test_client: TestClient) -> None:
    response = test_client.get("/api/pages/p1/search", params={"q": "bird"})

    assert response.status_code == 200
    assert response.json() == {"query": "bird", "nodeIds": ["a1", "a1x"]}


def test_import_merges_document(test_client: TestClient) -> None:
    document = {
        "rootNodeId": "v",
        "nodes": {"v": {"id": "v", "name": "Vehicles", "type": "entity"}},
    }

    response = test_client.post(
        "/api/pages/p1/object/import",
        json={"document": document, "mode": "merge", "parentId": "b"},
    )

    assert response.status_code == 200
    assert response.json()["nodes"]["b"]["children"] == ["v"]


def test_import_rejects_invalid_document(test_client: TestClient) -> None:
    response = test_client.post("/api/pages/p1/object/import", json={"document": {"nodes": {}}})
    assert response.status_code == 422


def test_generate_children(test_client: TestClient, workspace: Workspace) -> None:
    response = test_client.post("/api/pages/p1/nodes/a/generate/children", json={})

    assert response.status_code == 200
    created = response.json()["createdIds"]
    assert [workspace.object_data("p1").nodes[node_id].name for node_id in created] == [
        "Mammals",
        "Reptiles",
    ]

    response = test_client.post("/api/pages/p1/nodes/missing/generate/children", json={})
    assert response.status_code == 404


def test_generate_children_without_llm(workspace: Workspace) -> None:
    client = TestClient(create_app(workspace=workspace))

    response = client.post("/api/pages/p1/nodes/a/generate/children", json={})
    assert response.status_code == 503


def test_save_workspace(
    test_client: TestClient, workspace: Workspace, fake_repository: FakeWorkspaceRepository
) -> None:
    response = test_client.post("/api/workspace/save")

    assert response.status_code == 200
    assert fake_repository.saved == [workspace.snapshot]


def test_command_endpoint_rejects_invalid_field_values(test_client: TestClient) -> None:
    response = test_client.post(
        "/api/commands",
        json={"kind": "update_node", "pageId": "p1", "nodeId": "a", "updates": {"name": None}},
    )
    assert response.status_code == 422

    response = test_client.post(
        "/api/commands",
        json={"kind": "update_leaf", "itemId": "p2", "fields": {"title": None}},
    )
    assert response.status_code == 422
