"""Stable top-K selection shared by the scorer, calculator and link detector."""

import heapq
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any, TypeVar

T = TypeVar("T")


def top_k(items: Iterable[T], k: int | None, *, key: Callable[[T], Any]) -> list[T]:
    """Return the first ``k`` items ordered by ``key`` ascending.

    ``key`` encodes the full ordering including tie-breaks, so callers
    negate whatever should sort descending. Equal keys keep input order.
    ``k=None`` sorts everything.
    """
    if k is None:
        return sorted(items, key=key)
    if k <= 0:
        return []
    return heapq.nsmallest(k, items, key=key)


def newest_first(value: datetime | None) -> float:
    """Sort key component placing later timestamps first and missing ones last."""
    if value is None:
        return float("inf")
    return -value.timestamp()
