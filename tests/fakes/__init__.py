from tests.fakes.fake_llm import FakeStructuredLLM
from tests.fakes.fake_repository import FakeWorkspaceRepository

__all__ = ["FakeStructuredLLM", "FakeWorkspaceRepository"]
