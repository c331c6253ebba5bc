# src/siemship/exporter/marshal.py
"""Build size-bounded upload requests from a payload of log records.

A marshaler runs the first half of the pipeline: RecordExtractor groups the
records by log type, each group becomes one request envelope, and
``enforce_maximums`` splits every envelope until it fits the configured
limits. The second half, sending, belongs to the uploaders.

Groups are never repacked together: two log types always travel in
separate requests, and each group is split on its own.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from typing import TypeAlias

from siemship.contracts.config import RuntimeExporterConfig
from siemship.contracts.entries import LogTypeGroup
from siemship.contracts.records import LogsPayload
from siemship.exporter.batching import enforce_maximums
from siemship.exporter.envelopes import BatchCreateLogsRequest, ImportLogsRequest
from siemship.exporter.errors import ExporterConfigError
from siemship.exporter.extraction import RecordExtractor

# Collector id reported for entries shipped by this exporter.
COLLECTOR_ID = uuid.UUID("aaaa1111-aaaa-1111-aaaa-1111aaaa1111")

FORWARDER_FORMAT = "projects/{project}/locations/{location}/instances/{customer_id}/forwarders/{forwarder}"

UploadRequest: TypeAlias = BatchCreateLogsRequest | ImportLogsRequest


def _parse_customer_id(marshaler_name: str, customer_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(customer_id)
    except ValueError as e:
        raise ExporterConfigError(marshaler_name, f"parse customer ID {customer_id!r}: {e}") from e


class _Marshaler:
    """Shared construction: config, extractor, customer id and start time."""

    _name: str = ""

    def __init__(
        self,
        config: RuntimeExporterConfig,
        *,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        """Validate config and fix the batch start time.

        Args:
            config: Runtime exporter configuration
            clock: Nanosecond wall clock, read once here

        Raises:
            ExporterConfigError: If customer_id is not a UUID
        """
        self._config = config
        self._customer_id = _parse_customer_id(self._name, config.customer_id)
        self._extractor = RecordExtractor(config)
        self._start_time_ns = clock()

    @property
    def config(self) -> RuntimeExporterConfig:
        return self._config

    @property
    def start_time_ns(self) -> int:
        """When this marshaler was created; shared by every request it builds."""
        return self._start_time_ns

    def _enforce(self, request: UploadRequest) -> list[UploadRequest]:
        return enforce_maximums(
            request,
            max_request_size=self._config.max_request_size,
            max_entry_count=self._config.max_entry_count,
        )


class GrpcMarshaler(_Marshaler):
    """Marshal payloads into BatchCreateLogs requests."""

    _name = "gRPC"

    def build_request(self, group: LogTypeGroup) -> BatchCreateLogsRequest:
        return BatchCreateLogsRequest(
            log_type=group.log_type,
            namespace=group.namespace,
            labels=tuple(group.labels),
            entries=tuple(group.entries),
            start_time_ns=self._start_time_ns,
            customer_id=self._customer_id,
            collector_id=COLLECTOR_ID,
        )

    def marshal_logs(self, payload: LogsPayload) -> list[BatchCreateLogsRequest]:
        """Build requests for every log type in the payload, in first-seen order."""
        requests: list[BatchCreateLogsRequest] = []
        for group in self._extractor.extract(payload).values():
            requests.extend(self._enforce(self.build_request(group)))  # type: ignore[arg-type]
        return requests

    def marshal_requests(self, payload: LogsPayload) -> list[UploadRequest]:
        return list(self.marshal_logs(payload))


class HttpMarshaler(_Marshaler):
    """Marshal payloads into logs:import requests, indexed by log type."""

    _name = "https"

    def __init__(
        self,
        config: RuntimeExporterConfig,
        *,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        super().__init__(config, clock=clock)
        self._forwarder = FORWARDER_FORMAT.format(
            project=config.project,
            location=config.location,
            customer_id=self._customer_id,
            forwarder=config.forwarder,
        )

    @property
    def forwarder(self) -> str:
        """Fully qualified forwarder resource name."""
        return self._forwarder

    def build_request(self, group: LogTypeGroup) -> ImportLogsRequest:
        return ImportLogsRequest(
            forwarder=self._forwarder,
            log_type=group.log_type,
            namespace=group.namespace,
            labels=tuple(group.labels),
            entries=tuple(group.entries),
        )

    def marshal_logs(self, payload: LogsPayload) -> dict[str, list[ImportLogsRequest]]:
        """Build requests per log type; each log type posts to its own endpoint."""
        requests: dict[str, list[ImportLogsRequest]] = {}
        for log_type, group in self._extractor.extract(payload).items():
            split = self._enforce(self.build_request(group))
            if split:
                requests[log_type] = split  # type: ignore[assignment]
        return requests

    def marshal_requests(self, payload: LogsPayload) -> list[UploadRequest]:
        return [request for batch in self.marshal_logs(payload).values() for request in batch]
