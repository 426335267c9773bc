import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from canopy.api import create_app
from canopy.domain.folder import Folder, FolderTree, LeafItem
from canopy.domain.graph import GraphNode, ObjectData
from canopy.domain.page import ObjectPage, PageTree, RegularPage
from canopy.domain.workspace import WorkspaceSnapshot
from canopy.generation import ObjectGenerator
from canopy.graph.store import add_node, create_object_data
from canopy.llms.schemas import ChildNames
from canopy.workspace import Workspace
from tests.fakes import FakeStructuredLLM, FakeWorkspaceRepository


def make_node(node_id: str, name: str | None = None, **fields) -> GraphNode:
    return GraphNode(id=node_id, name=name or node_id.capitalize(), **fields)


@pytest.fixture
def object_data() -> ObjectData:
    """Graph used across tests.

    root
    ├── a (Animals)
    │   ├── a1 (Birds)
    │   │   └── a1x (Crow)
    │   └── a2 (Fish)
    └── b (Tools)
    """
    data = create_object_data(make_node("root", "Root"))
    data = add_node(data, make_node("a", "Animals", description="Living creatures"), "root")
    data = add_node(data, make_node("b", "Tools", description="Things used for work"), "root")
    data = add_node(data, make_node("a1", "Birds", properties={"legs": 2}), "a")
    data = add_node(data, make_node("a2", "Fish"), "a")
    data = add_node(data, make_node("a1x", "Crow", description="A black bird"), "a1")
    return data


@pytest.fixture
def folder_tree() -> FolderTree:
    """Root folder R holding folder A (1000) and leaf B (2000)."""
    return FolderTree(
        folders={
            "R": Folder(id="R", name="R", order=1000.0),
            "A": Folder(id="A", name="A", parent_id="R", order=1000.0),
        },
        items={"B": LeafItem(id="B", title="B", folder_id="R", order=2000.0)},
    )


@pytest.fixture
def page_tree(object_data: ObjectData) -> PageTree:
    return PageTree(
        folders={"f1": Folder(id="f1", name="Research", order=1000.0)},
        items={
            "p1": ObjectPage(
                id="p1", title="Knowledge", folder_id="f1", order=1000.0, object_data=object_data
            ),
            "p2": RegularPage(id="p2", title="Chat about birds", folder_id="f1", order=2000.0),
            "p3": RegularPage(id="p3", title="Loose notes", order=2000.0),
        },
    )


@pytest.fixture
def workspace(page_tree: PageTree) -> Workspace:
    return Workspace(WorkspaceSnapshot(pages=page_tree))


@pytest.fixture
def fake_llm() -> FakeStructuredLLM:
    return FakeStructuredLLM(responses=[ChildNames(names=["Mammals", "  ", "Birds", "Reptiles"])])


@pytest.fixture
def generator(fake_llm: FakeStructuredLLM) -> ObjectGenerator:
    return ObjectGenerator(fake_llm, model_id="fake-model")


@pytest.fixture
def fake_repository() -> FakeWorkspaceRepository:
    return FakeWorkspaceRepository()


@pytest.fixture
def test_client(
    workspace: Workspace, generator: ObjectGenerator, fake_repository: FakeWorkspaceRepository
) -> TestClient:
    """Create test client with fake implementations."""
    app = create_app(workspace=workspace, generator=generator, repository=fake_repository)
    return TestClient(app)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    with tempfile.TemporaryDirectory() as directory:
        yield Path(directory)
