# src/siemship/contracts/entries.py
"""Resolved log entries and the per-log-type groups they are collected into."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Label:
    """Ingestion label attached to a batch."""

    key: str
    value: str


@dataclass(frozen=True, slots=True)
class LogEntry:
    """One shippable entry.

    Attributes:
        timestamp_ns: Event time (record time, or observed time when unset)
        collection_time_ns: Observed time of the source record
        data: Raw log payload bytes
        namespace: Namespace resolved for the source record
        labels: Ingestion labels resolved for the source record
    """

    timestamp_ns: int
    collection_time_ns: int
    data: bytes
    namespace: str = ""
    labels: tuple[Label, ...] = ()


@dataclass(slots=True)
class LogTypeGroup:
    """Entries sharing one resolved log type.

    Built incrementally while a payload is extracted. The namespace is the
    first non-empty namespace offered; labels keep insertion order and the
    first value seen for a key wins.
    """

    log_type: str
    namespace: str = ""
    labels: list[Label] = field(default_factory=list)
    entries: list[LogEntry] = field(default_factory=list)

    def add(self, entry: LogEntry, *, namespace: str, labels: Iterable[Label]) -> None:
        """Append an entry and merge its routing metadata into the group."""
        self.entries.append(entry)
        if not self.namespace and namespace:
            self.namespace = namespace
        self.merge_labels(labels)

    def merge_labels(self, labels: Iterable[Label]) -> None:
        seen = {label.key for label in self.labels}
        for label in labels:
            if label.key in seen:
                continue
            seen.add(label.key)
            self.labels.append(label)
