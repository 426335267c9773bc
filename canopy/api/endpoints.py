from fastapi import APIRouter, Body, HTTPException
from loguru import logger
from pydantic import ValidationError

from canopy.commands import ImportObject, parse_command
from canopy.domain.base import Record
from canopy.errors import GenerationFailed, InvalidDocument, PreconditionViolation
from canopy.generation import ObjectGenerator
from canopy.graph.search import search
from canopy.interchange import ImportMode
from canopy.repositories.base import WorkspaceRepository
from canopy.workspace import Workspace


class ImportRequest(Record):
    document: dict
    mode: ImportMode = "replace"
    parent_id: str | None = None


class GenerateRequest(Record):
    prompt: str | None = None


def _object_data_or_404(workspace: Workspace, page_id: str):
    data = workspace.object_data(page_id)
    if data is None:
        raise HTTPException(status_code=404, detail=f"Object page {page_id} not found")
    return data


def _create_command_endpoint(workspace: Workspace):
    """Create the command endpoint handler."""

    async def execute_command(payload: dict = Body(...)):
        try:
            command = parse_command(payload)
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

        try:
            result = workspace.execute(command)
        except PreconditionViolation as e:
            logger.warning(f"Rejected {command.kind}: {e}")
            raise HTTPException(status_code=422, detail=str(e)) from e

        if result.error is not None:
            raise HTTPException(status_code=409, detail=result.error.message)
        return {"applied": result.applied, "createdId": result.created_id, "reason": result.reason}

    return execute_command


def _create_object_endpoint(workspace: Workspace):
    async def get_object(page_id: str):
        return _object_data_or_404(workspace, page_id).to_dict()

    return get_object


def _create_context_endpoint(workspace: Workspace):
    """Create the node context endpoint handler."""

    async def get_node_context(page_id: str, node_id: str):
        _object_data_or_404(workspace, page_id)
        assembler = workspace.context(page_id)
        node_context = assembler.node_context(node_id)
        if node_context is None:
            raise HTTPException(status_code=404, detail=f"Node {node_id} not found")
        return {
            **node_context.to_dict(),
            "connections": [item.to_dict() for item in assembler.resolved_connections(node_id)],
            "bundle": assembler.full_context_bundle(node_id),
        }

    return get_node_context


def _create_search_endpoint(workspace: Workspace):
    async def search_nodes(page_id: str, q: str = ""):
        data = _object_data_or_404(workspace, page_id)
        return {"query": q, "nodeIds": search(data, q)}

    return search_nodes


def _create_import_endpoint(workspace: Workspace):
    """Create the object import endpoint handler."""

    async def import_object(page_id: str, request: ImportRequest):
        _object_data_or_404(workspace, page_id)
        command = ImportObject(
            page_id=page_id, document=request.document, mode=request.mode, parent_id=request.parent_id
        )
        try:
            result = workspace.execute(command)
        except InvalidDocument as e:
            logger.warning(f"Invalid object document for page {page_id}: {e}")
            raise HTTPException(status_code=422, detail=str(e)) from e
        if not result.applied:
            raise HTTPException(status_code=404, detail=result.reason)
        return workspace.object_data(page_id).to_dict()

    return import_object


def _create_generate_children_endpoint(workspace: Workspace, generator: ObjectGenerator | None):
    """Create the child generation endpoint handler."""

    async def generate_children(page_id: str, node_id: str, request: GenerateRequest):
        if generator is None:
            raise HTTPException(status_code=503, detail="No LLM configured")
        data = _object_data_or_404(workspace, page_id)
        if node_id not in data.nodes:
            raise HTTPException(status_code=404, detail=f"Node {node_id} not found")
        try:
            created = generator.generate_children(workspace, page_id, node_id, request.prompt)
        except GenerationFailed as e:
            raise HTTPException(status_code=502, detail=e.message) from e
        return {"createdIds": created}

    return generate_children


def _create_save_endpoint(workspace: Workspace, repository: WorkspaceRepository | None):
    async def save_workspace():
        if repository is None:
            raise HTTPException(status_code=503, detail="No repository configured")
        repository.save(workspace.snapshot)
        return {"status": "saved"}

    return save_workspace


def get_endpoints_router(
    *,
    workspace: Workspace,
    generator: ObjectGenerator | None = None,
    repository: WorkspaceRepository | None = None,
) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health_check():
        return {"status": "healthy"}

    router.post("/api/commands")(_create_command_endpoint(workspace))
    router.get("/api/pages/{page_id}/object")(_create_object_endpoint(workspace))
    router.get("/api/pages/{page_id}/nodes/{node_id}/context")(_create_context_endpoint(workspace))
    router.get("/api/pages/{page_id}/search")(_create_search_endpoint(workspace))
    router.post("/api/pages/{page_id}/object/import")(_create_import_endpoint(workspace))
    router.post("/api/pages/{page_id}/nodes/{node_id}/generate/children")(
        _create_generate_children_endpoint(workspace, generator)
    )
    router.post("/api/workspace/save")(_create_save_endpoint(workspace, repository))

    return router
