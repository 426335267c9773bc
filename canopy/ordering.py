"""Fractional order keys for sibling sets."""

from typing import Hashable, Iterable, Sequence, TypeVar

from canopy.config import settings
from canopy.errors import OrderKeyExhausted, PreconditionViolation

K = TypeVar("K", bound=Hashable)


def between(low: float | None = None, high: float | None = None, step: float | None = None) -> float:
    """Return a key that sorts strictly between `low` and `high`.

    Args:
        low: Key of the left neighbour, or None when inserting at the start
        high: Key of the right neighbour, or None when inserting at the end
        step: Distance used when one or both neighbours are missing

    Returns:
        The midpoint of the two keys, or a key one step away from the only
        neighbour, or the step itself for an empty sibling set

    Raises:
        OrderKeyExhausted: If the midpoint is not representable as a distinct key
    """
    step = settings.order_step if step is None else step
    if low is None and high is None:
        return step
    if low is None:
        return high - step
    if high is None:
        return low + step
    if low >= high:
        raise PreconditionViolation(f"Order keys out of sequence: {low!r} >= {high!r}")

    mid = low + (high - low) / 2
    if not low < mid < high:
        raise OrderKeyExhausted(low, high)
    return mid


def key_after(keys: Iterable[float], step: float | None = None) -> float:
    """Key placed after the largest existing key."""
    keys = list(keys)
    return between(max(keys) if keys else None, None, step)


def key_before(keys: Iterable[float], step: float | None = None) -> float:
    """Key placed before the smallest existing key."""
    keys = list(keys)
    return between(None, min(keys) if keys else None, step)


def renumber(ids: Sequence[K], step: float | None = None) -> dict[K, float]:
    """Assign integer multiples of the step to ids, preserving their sequence."""
    step = settings.order_step if step is None else step
    return {item_id: step * (index + 1) for index, item_id in enumerate(ids)}


def has_distinct_keys(keys: Iterable[float]) -> bool:
    keys = list(keys)
    return len(keys) == len(set(keys))
