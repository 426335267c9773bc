from typing import Type

from instructor import Instructor

from canopy.config import settings
from canopy.llms.base import ResponseT


class InstructorLLM:
    def __init__(
        self,
        instructor: Instructor,
        model: str | None = None,
        max_tokens: int | None = None,
    ) -> None:
        self.instructor = instructor
        self.model = model or settings.llm_model
        self.max_tokens = max_tokens or settings.llm_max_tokens

    def generate(
        self, prompt: str, response_model: Type[ResponseT], model_id: str | None = None
    ) -> ResponseT:
        return self.instructor.chat.completions.create(
            model=model_id or self.model,
            max_tokens=self.max_tokens,
            messages=[{"role": "user", "content": prompt}],  # type: ignore
            response_model=response_model,
        )
