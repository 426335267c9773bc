from typing import Protocol, Type, TypeVar

from pydantic import BaseModel

ResponseT = TypeVar("ResponseT", bound=BaseModel)


class StructuredLLM(Protocol):
    def generate(
        self, prompt: str, response_model: Type[ResponseT], model_id: str | None = None
    ) -> ResponseT:
        """Answer a prompt with an instance of `response_model`."""
        ...
