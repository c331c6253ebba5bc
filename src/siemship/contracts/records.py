# src/siemship/contracts/records.py
"""Input log records in the OTLP resource → scope → record hierarchy.

All containers are frozen; the pipeline reads records and never mutates
them. ``LogsPayload.records()`` flattens the hierarchy into
``RecordContext`` views that carry the enclosing scope and resource so
field expressions can reach ``resource.attributes`` and friends.

Values (bodies and attribute values) are plain Python: ``str``, ``bool``,
``int``, ``float``, ``bytes``, ``list``, ``dict`` or ``None`` for an empty
value.
"""

from __future__ import annotations

import base64
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class LogRecord:
    """One log event.

    Timestamps are nanoseconds since the Unix epoch; 0 means unset.
    """

    time_unix_nano: int = 0
    observed_time_unix_nano: int = 0
    body: Any = None
    attributes: Mapping[str, Any] = field(default_factory=dict)
    severity_text: str = ""


@dataclass(frozen=True, slots=True)
class ScopeLogs:
    """Records emitted by one instrumentation scope."""

    log_records: Sequence[LogRecord] = ()
    name: str = ""
    version: str = ""
    attributes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ResourceLogs:
    """Scopes emitted by one resource (host, process, service)."""

    scope_logs: Sequence[ScopeLogs] = ()
    attributes: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RecordContext:
    """A record together with its enclosing scope and resource."""

    record: LogRecord
    scope: ScopeLogs
    resource: ResourceLogs

    @property
    def attributes(self) -> Mapping[str, Any]:
        return self.record.attributes

    @property
    def body(self) -> Any:
        return self.record.body


@dataclass(frozen=True, slots=True)
class LogsPayload:
    """One batch of records handed to the exporter."""

    resource_logs: Sequence[ResourceLogs] = ()

    def records(self) -> Iterator[RecordContext]:
        """Yield every record in document order."""
        for resource in self.resource_logs:
            for scope in resource.scope_logs:
                for record in scope.log_records:
                    yield RecordContext(record=record, scope=scope, resource=resource)

    @property
    def record_count(self) -> int:
        return sum(len(scope.log_records) for resource in self.resource_logs for scope in resource.scope_logs)

    @classmethod
    def from_otlp_json(cls, document: Mapping[str, Any]) -> LogsPayload:
        """Decode an OTLP/JSON ExportLogsServiceRequest document.

        Args:
            document: Parsed JSON with a top-level ``resourceLogs`` list

        Returns:
            Decoded payload

        Raises:
            ValueError: If a value uses an unknown AnyValue variant or a
                timestamp is not an integer
        """
        resources: list[ResourceLogs] = []
        for resource_json in document.get("resourceLogs", []):
            resource_attrs = _decode_attributes(resource_json.get("resource", {}).get("attributes", []))
            scopes: list[ScopeLogs] = []
            for scope_json in resource_json.get("scopeLogs", []):
                scope_info = scope_json.get("scope", {})
                records = tuple(_decode_record(record_json) for record_json in scope_json.get("logRecords", []))
                scopes.append(
                    ScopeLogs(
                        log_records=records,
                        name=scope_info.get("name", ""),
                        version=scope_info.get("version", ""),
                        attributes=_decode_attributes(scope_info.get("attributes", [])),
                    )
                )
            resources.append(ResourceLogs(scope_logs=tuple(scopes), attributes=resource_attrs))
        return cls(resource_logs=tuple(resources))


def _decode_record(record_json: Mapping[str, Any]) -> LogRecord:
    return LogRecord(
        time_unix_nano=_decode_time(record_json.get("timeUnixNano")),
        observed_time_unix_nano=_decode_time(record_json.get("observedTimeUnixNano")),
        body=_decode_any_value(record_json.get("body")),
        attributes=_decode_attributes(record_json.get("attributes", [])),
        severity_text=record_json.get("severityText", ""),
    )


def _decode_time(value: str | int | None) -> int:
    # proto3 JSON renders fixed64 as a decimal string
    if value is None or value == "":
        return 0
    return int(value)


def _decode_attributes(key_values: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    return {kv["key"]: _decode_any_value(kv.get("value")) for kv in key_values}


def _decode_any_value(value: Mapping[str, Any] | None) -> Any:
    if not value:
        return None
    if "stringValue" in value:
        return value["stringValue"]
    if "boolValue" in value:
        return bool(value["boolValue"])
    if "intValue" in value:
        return int(value["intValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "bytesValue" in value:
        return base64.b64decode(value["bytesValue"])
    if "arrayValue" in value:
        return [_decode_any_value(item) for item in value["arrayValue"].get("values", [])]
    if "kvlistValue" in value:
        return _decode_attributes(value["kvlistValue"].get("values", []))
    raise ValueError(f"Unknown OTLP AnyValue variant: {sorted(value)}")
