# src/siemship/exporter/extraction.py
"""Turn a payload of log records into per-log-type groups of entries.

For every record the extractor resolves four things:

1. the raw payload (``raw_log_field``, or a JSON envelope of the whole
   record when no field is configured)
2. the log type (explicit attribute > known-type mapping > default)
3. the namespace (explicit attribute > default)
4. the ingestion labels (prefixed attributes > configured labels)

and hands the resulting entry to a RecordGrouper keyed by log type.

A record that fails any of these steps is logged and skipped; one bad
record never fails the payload. Records whose payload resolves to an
empty string are skipped silently.
"""

from __future__ import annotations

import json
from dataclasses import dataclass

import structlog

from siemship.contracts.config import RuntimeExporterConfig
from siemship.contracts.entries import Label, LogEntry, LogTypeGroup
from siemship.contracts.records import LogsPayload, RecordContext
from siemship.core.canonical import as_string, canonical_json
from siemship.exporter.field_path import (
    CHRONICLE_LOG_TYPE_FIELD,
    CHRONICLE_NAMESPACE_FIELD,
    LOG_TYPE_FIELD,
    FieldPathEvaluationError,
    FieldPathSyntaxError,
    UnsupportedBodyError,
    resolve_field,
)

logger = structlog.get_logger(__name__)

INGESTION_LABEL_PREFIX = "chronicle_ingestion_label"

# attributes["log_type"] values mapped to ingestion log types when
# override_log_type is enabled
KNOWN_LOG_TYPES: dict[str, str] = {
    "windows_event.security": "WINEVTLOG",
    "windows_event.application": "WINEVTLOG",
    "windows_event.system": "WINEVTLOG",
    "sql_server": "MICROSOFT_SQL",
}

_RECORD_ERRORS = (FieldPathSyntaxError, FieldPathEvaluationError, ValueError)


@dataclass(frozen=True, slots=True)
class ResolvedRecord:
    """Routing metadata and entry resolved from one record."""

    log_type: str
    namespace: str
    labels: tuple[Label, ...]
    entry: LogEntry


class RecordGrouper:
    """Accumulate entries into one LogTypeGroup per distinct log type.

    Groups come back in first-seen order. A group exists only once an entry
    has been added to it, so an empty payload yields no groups.
    """

    def __init__(self) -> None:
        self._groups: dict[str, LogTypeGroup] = {}

    def add(self, resolved: ResolvedRecord) -> None:
        group = self._groups.get(resolved.log_type)
        if group is None:
            group = LogTypeGroup(log_type=resolved.log_type)
            self._groups[resolved.log_type] = group
        group.add(resolved.entry, namespace=resolved.namespace, labels=resolved.labels)

    def groups(self) -> dict[str, LogTypeGroup]:
        return dict(self._groups)


def _parse_label_object(text: str) -> dict[str, str] | None:
    """Parse a label attribute value holding a JSON object of strings.

    Returns None when the value is not such an object. JSON ``null`` parses
    to an empty mapping.
    """
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    if parsed is None:
        return {}
    if not isinstance(parsed, dict) or not all(isinstance(v, str) for v in parsed.values()):
        return None
    return parsed


class RecordExtractor:
    """Resolve records into log entries and group them by log type.

    Example:
        extractor = RecordExtractor(RuntimeExporterConfig.from_settings(settings))
        groups = extractor.extract(payload)
        for log_type, group in groups.items():
            ...
    """

    def __init__(self, config: RuntimeExporterConfig) -> None:
        self._config = config

    def extract(self, payload: LogsPayload) -> dict[str, LogTypeGroup]:
        """Extract every record of the payload.

        Returns:
            Mapping of log type to its group, in first-seen order
        """
        grouper = RecordGrouper()
        for context in payload.records():
            try:
                resolved = self.resolve(context)
            except _RECORD_ERRORS as e:
                logger.error(
                    "Error processing log record",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue
            if resolved is None:
                continue
            grouper.add(resolved)
        return grouper.groups()

    def resolve(self, context: RecordContext) -> ResolvedRecord | None:
        """Resolve one record, or None when its payload is empty.

        Raises:
            FieldPathSyntaxError: If raw_log_field is malformed
            FieldPathEvaluationError: If raw_log_field cannot be evaluated
            ValueError: If a map value cannot be canonicalized
        """
        raw_log = self.raw_log(context)
        if raw_log == "":
            return None

        record = context.record
        timestamp = record.time_unix_nano or record.observed_time_unix_nano
        namespace = self.namespace(context)
        labels = tuple(self.ingestion_labels(context))
        entry = LogEntry(
            timestamp_ns=timestamp,
            collection_time_ns=record.observed_time_unix_nano,
            data=raw_log.encode("utf-8"),
            namespace=namespace,
            labels=labels,
        )
        return ResolvedRecord(
            log_type=self.log_type(context),
            namespace=namespace,
            labels=labels,
            entry=entry,
        )

    def raw_log(self, context: RecordContext) -> str:
        """Raw payload text for a record."""
        if self._config.raw_log_field == "":
            return self._record_envelope(context)
        try:
            return resolve_field(self._config.raw_log_field, context)
        except UnsupportedBodyError as e:
            logger.debug("Body is not a string or map; shipping the full record", error=str(e))
            return self._record_envelope(context)

    def _record_envelope(self, context: RecordContext) -> str:
        return canonical_json(
            {
                "body": context.record.body,
                "attributes": dict(context.record.attributes),
                "resource_attributes": dict(context.resource.attributes),
            }
        )

    def log_type(self, context: RecordContext) -> str:
        """Resolve the log type.

        Precedence: explicit ``chronicle_log_type`` attribute, then the
        known-type mapping of ``log_type`` (when override is enabled), then
        the configured default.
        """
        explicit = resolve_field(CHRONICLE_LOG_TYPE_FIELD, context)
        if explicit != "":
            return explicit

        if self._config.override_log_type:
            declared = resolve_field(LOG_TYPE_FIELD, context)
            if declared in KNOWN_LOG_TYPES:
                return KNOWN_LOG_TYPES[declared]

        return self._config.log_type

    def namespace(self, context: RecordContext) -> str:
        explicit = resolve_field(CHRONICLE_NAMESPACE_FIELD, context)
        if explicit != "":
            return explicit
        return self._config.namespace

    def ingestion_labels(self, context: RecordContext) -> list[Label]:
        """Labels declared by the record's prefixed attributes.

        A value holding a JSON object of strings expands to one label per
        key. Any other value becomes a single label named by the key suffix
        with brackets and quotes trimmed, e.g.
        ``chronicle_ingestion_label["env"]`` → ``env``.
        Records declaring no labels get the configured ones.
        """
        labels: list[Label] = []
        for key, value in context.record.attributes.items():
            if not key.startswith(INGESTION_LABEL_PREFIX):
                continue
            text = as_string(value)
            expanded = _parse_label_object(text)
            if expanded is not None:
                labels.extend(Label(key=k, value=v) for k, v in expanded.items())
                continue
            label_key = key[len(INGESTION_LABEL_PREFIX) :].strip('[]"')
            labels.append(Label(key=label_key, value=text))

        if labels:
            return labels
        return list(self._config.ingestion_labels)
