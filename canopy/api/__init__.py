from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from canopy.api.endpoints import get_endpoints_router
from canopy.generation import ObjectGenerator
from canopy.repositories.base import WorkspaceRepository
from canopy.workspace import Workspace


def create_app(
    *,
    workspace: Workspace,
    generator: ObjectGenerator | None = None,
    repository: WorkspaceRepository | None = None,
) -> FastAPI:
    """Create FastAPI app."""
    app = FastAPI()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        router=get_endpoints_router(workspace=workspace, generator=generator, repository=repository)
    )

    return app
