"""Shared data types for the export pipeline.

Input records, resolved log entries and per-log-type groups live here so
that extraction, batching and transports agree on one vocabulary.
"""

from siemship.contracts.config import RuntimeExporterConfig
from siemship.contracts.entries import Label, LogEntry, LogTypeGroup
from siemship.contracts.records import (
    LogRecord,
    LogsPayload,
    RecordContext,
    ResourceLogs,
    ScopeLogs,
)

__all__ = [
    "Label",
    "LogEntry",
    "LogRecord",
    "LogTypeGroup",
    "LogsPayload",
    "RecordContext",
    "ResourceLogs",
    "RuntimeExporterConfig",
    "ScopeLogs",
]
