# src/siemship/exporter/envelopes.py
"""Upload request envelopes and their wire encodings.

Two shapes, one per transport:

- ``BatchCreateLogsRequest`` (gRPC): one batch header (start time, log
  type, source with collector id, customer id, namespace and labels) over
  an ordered list of entries.
- ``ImportLogsRequest`` (HTTPS): an inline source naming the forwarder,
  with every log carrying its own record's namespace and labels.

Each envelope converts to its protobuf message with ``to_proto()``. The
binary encoding (``to_wire()``) is what the gRPC channel sends, and its
size (``wire_size()``) is what the batch limits apply to for both shapes.
The HTTPS body is the proto3 JSON mapping of the same message
(``to_json()``).

Envelopes are immutable. Splitting a request means building new ones with
``with_entries()``; the header is shared, only the entries differ.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Any

from google.protobuf import json_format

from siemship.contracts.entries import Label, LogEntry
from siemship.exporter import protos


def _to_json(message: Any) -> bytes:
    document = json_format.MessageToDict(message)
    return json.dumps(document, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True, slots=True)
class BatchCreateLogsRequest:
    """gRPC ``BatchCreateLogs`` request for one log type."""

    log_type: str
    namespace: str
    labels: tuple[Label, ...]
    entries: tuple[LogEntry, ...]
    start_time_ns: int
    customer_id: uuid.UUID
    collector_id: uuid.UUID

    def with_entries(self, entries: Sequence[LogEntry]) -> BatchCreateLogsRequest:
        return replace(self, entries=tuple(entries))

    def to_proto(self) -> Any:
        source = protos.EventSource(
            customer_id=self.customer_id.bytes,
            collector_id=self.collector_id.bytes,
            namespace=self.namespace,
            labels=[protos.Label(key=label.key, value=label.value) for label in self.labels],
        )
        batch = protos.LogEntryBatch(
            start_time=protos.timestamp(self.start_time_ns),
            entries=[
                protos.LogEntry(
                    timestamp=protos.timestamp(entry.timestamp_ns),
                    collection_time=protos.timestamp(entry.collection_time_ns),
                    data=entry.data,
                )
                for entry in self.entries
            ],
            log_type=self.log_type,
            source=source,
        )
        return protos.BatchCreateLogsRequest(batch=batch)

    def to_wire(self) -> bytes:
        return self.to_proto().SerializeToString(deterministic=True)

    def to_json(self) -> bytes:
        return _to_json(self.to_proto())

    def wire_size(self) -> int:
        return self.to_proto().ByteSize()


@dataclass(frozen=True, slots=True)
class ImportLogsRequest:
    """HTTPS ``logs:import`` request for one log type.

    ``log_type`` is not part of the body; it selects the endpoint URL.
    ``namespace`` and ``labels`` describe the group as a whole and are not
    sent either: each log carries the values resolved for its own record.
    """

    forwarder: str
    log_type: str
    namespace: str
    labels: tuple[Label, ...]
    entries: tuple[LogEntry, ...]

    def with_entries(self, entries: Sequence[LogEntry]) -> ImportLogsRequest:
        return replace(self, entries=tuple(entries))

    def to_proto(self) -> Any:
        logs = []
        for entry in self.entries:
            log = protos.Log(
                data=entry.data,
                log_entry_time=protos.timestamp(entry.timestamp_ns),
                collection_time=protos.timestamp(entry.collection_time_ns),
                environment_namespace=entry.namespace,
            )
            for label in entry.labels:
                log.labels[label.key].value = label.value
            logs.append(log)

        inline_source = protos.LogsInlineSource(forwarder=self.forwarder, logs=logs)
        return protos.ImportLogsRequest(inline_source=inline_source)

    def to_wire(self) -> bytes:
        return self.to_proto().SerializeToString(deterministic=True)

    def to_json(self) -> bytes:
        return _to_json(self.to_proto())

    def wire_size(self) -> int:
        return self.to_proto().ByteSize()
