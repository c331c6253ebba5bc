# src/siemship/exporter/batching.py
"""Split upload requests until they fit the ingestion API's limits.

A request is acceptable when its encoded wire size is at most
``max_request_size`` bytes AND it holds at most ``max_entry_count`` entries.
An oversized request is halved (left half gets the floor) and each half is
checked again, recursively. A single entry that is too large on its own can
never fit and is dropped with an error log.

Properties of the result:
- every emitted request satisfies both limits
- every input entry lands in exactly one emitted request, unless it was
  dropped as individually oversized
- entry order is preserved: concatenating the emitted requests' entries
  gives the input order minus dropped entries

Sizes are recomputed from a full encoding of each candidate request, so a
request of n entries is serialized O(log n) times along each split path.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, Self, TypeVar, runtime_checkable

import structlog

from siemship.contracts.entries import LogEntry

logger = structlog.get_logger(__name__)

R = TypeVar("R", bound="SplittableRequest")


@runtime_checkable
class SplittableRequest(Protocol):
    """A request envelope whose entries can be partitioned under one header."""

    @property
    def entries(self) -> tuple[LogEntry, ...]: ...

    def with_entries(self, entries: Sequence[LogEntry]) -> Self: ...

    def wire_size(self) -> int: ...


def enforce_maximums(
    request: R,
    *,
    max_request_size: int,
    max_entry_count: int,
) -> list[R]:
    """Split a request into requests that satisfy both limits.

    Args:
        request: Request to check
        max_request_size: Maximum encoded size in bytes
        max_entry_count: Maximum number of entries

    Returns:
        Requests in entry order; empty if the request held only a single
        oversized entry
    """
    size = request.wire_size()
    entry_count = len(request.entries)
    if size <= max_request_size and entry_count <= max_entry_count:
        return [request]

    if entry_count < 2:
        logger.error(
            "Single entry exceeds max request size. Dropping entry",
            size=size,
            max_request_size=max_request_size,
        )
        return []

    mid = entry_count // 2
    left = request.with_entries(request.entries[:mid])
    right = request.with_entries(request.entries[mid:])

    return [
        *enforce_maximums(left, max_request_size=max_request_size, max_entry_count=max_entry_count),
        *enforce_maximums(right, max_request_size=max_request_size, max_entry_count=max_entry_count),
    ]
