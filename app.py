import sys

import instructor
import uvicorn
from anthropic import Anthropic
from loguru import logger

from canopy.api import create_app
from canopy.config import settings
from canopy.generation import ObjectGenerator
from canopy.llms.instructor_llm import InstructorLLM
from canopy.repositories.local import LocalWorkspaceRepository
from canopy.workspace import Workspace

logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])

repository = LocalWorkspaceRepository(settings.workspace_path)
workspace = Workspace(repository.load())

generator = None
if settings.anthropic_api_key:
    logger.info(f"Initializing object generator with Instructor and {settings.llm_model}")
    # Create instructor client with Anthropic Claude
    anthropic_client = Anthropic(api_key=settings.anthropic_api_key)
    instructor_client = instructor.from_anthropic(
        anthropic_client, mode=instructor.Mode.ANTHROPIC_TOOLS
    )
    generator = ObjectGenerator(InstructorLLM(instructor_client))
else:
    logger.warning("No Anthropic API key set; AI generation endpoints are disabled")

app = create_app(workspace=workspace, generator=generator, repository=repository)

if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
