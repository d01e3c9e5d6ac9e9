from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from .errors import InvalidInput

T = TypeVar("T")


def page_bounds(offset: int, limit: int, size: int, max_limit: int | None = None) -> tuple[int, int]:
    """Clamp ``[offset, offset + limit)`` to a collection of ``size`` items.

    Out-of-range windows are not an error; they simply come back empty so a
    caller can keep issuing wide ranges until the collection is drained.
    """
    if offset < 0:
        raise InvalidInput("offset must be non-negative", {"offset": offset})
    if limit < 0:
        raise InvalidInput("limit must be non-negative", {"limit": limit})
    if max_limit is not None:
        limit = min(limit, max_limit)
    start = min(offset, size)
    stop = min(offset + limit, size)
    return start, stop


def page(items: Sequence[T], offset: int, limit: int, max_limit: int | None = None) -> list[T]:
    start, stop = page_bounds(offset, limit, len(items), max_limit)
    return list(items[start:stop])
