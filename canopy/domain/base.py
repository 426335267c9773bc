import time

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def now_ms() -> float:
    """Current time in milliseconds since epoch."""
    return time.time() * 1000


class Record(BaseModel):
    """Immutable record serialised with camelCase keys.

    Records are never mutated; updates go through `model_copy(update=...)`.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
