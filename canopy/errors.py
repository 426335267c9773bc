"""Error taxonomy for the workspace engine.

Missing ids are not errors: operations referencing them return the unchanged
snapshot. Dangling connection and lineage pointers are not errors either;
readers treat the referenced entity as absent.
"""


class DomainError(Exception):
    """Base class for domain conditions surfaced to callers."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CycleDetected(DomainError):
    """Raised when a reparent would make an item its own ancestor."""

    def __init__(self, item_id: str, target_parent_id: str | None):
        super().__init__(
            f"Moving {item_id} under {target_parent_id} would create a cycle",
            {"item_id": item_id, "target_parent_id": target_parent_id},
        )
        self.item_id = item_id
        self.target_parent_id = target_parent_id


class OrderKeyExhausted(DomainError):
    """Raised when no representable key exists between two neighbours."""

    def __init__(self, low: float, high: float):
        super().__init__(f"No distinct order key between {low!r} and {high!r}", {"low": low, "high": high})
        self.low = low
        self.high = high


class GenerationFailed(DomainError):
    """Raised when the AI collaborator fails during a generation request.

    `snapshot` holds the object data with the audit record already appended.
    """

    def __init__(self, message: str, snapshot, record_id: str | None = None):
        super().__init__(message, {"record_id": record_id})
        self.snapshot = snapshot
        self.record_id = record_id


class PreconditionViolation(ValueError):
    """Malformed input or programmer error, distinct from domain conditions."""


class InvalidDocument(PreconditionViolation):
    """An imported document does not have the expected shape."""
