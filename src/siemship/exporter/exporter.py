# src/siemship/exporter/exporter.py
"""LogsExporter: marshal a payload and upload its requests in order.

One call to ``consume_logs`` handles one payload, synchronously:

    payload → marshaler (extract, group, build, split) → [requests]
            → uploader.upload(request) for each, in order

The first upload failure aborts the remaining requests of that payload and
propagates to the caller, whose retry layer decides what to do based on
``is_permanent()``. Requests already accepted stay accepted; a retry of the
whole payload resends them.
"""

from __future__ import annotations

from typing import Protocol

import structlog

from siemship.contracts.records import LogsPayload
from siemship.exporter.marshal import UploadRequest
from siemship.exporter.protocols import UploaderProtocol
from siemship.exporter.stats import UploadStats

logger = structlog.get_logger(__name__)


class MarshalerProtocol(Protocol):
    def marshal_requests(self, payload: LogsPayload) -> list[UploadRequest]: ...


class LogsExporter:
    """Ship payloads of log records through one marshaler and one uploader."""

    def __init__(
        self,
        marshaler: MarshalerProtocol,
        uploader: UploaderProtocol,
        *,
        stats: UploadStats | None = None,
        timeout: float | None = None,
    ) -> None:
        """Wire the pipeline halves together.

        Args:
            marshaler: Builds size-bounded requests from a payload
            uploader: Configured transport
            stats: Counters to bump after each accepted request
            timeout: Default per-request timeout in seconds
        """
        self._marshaler = marshaler
        self._uploader = uploader
        self._stats = stats
        self._timeout = timeout

    @property
    def uploader(self) -> UploaderProtocol:
        return self._uploader

    @property
    def stats(self) -> UploadStats | None:
        return self._stats

    def marshal(self, payload: LogsPayload) -> list[UploadRequest]:
        """Build the requests for a payload without sending anything."""
        return self._marshaler.marshal_requests(payload)

    def consume_logs(self, payload: LogsPayload, *, timeout: float | None = None) -> None:
        """Upload every request built from the payload, in order.

        Args:
            payload: Records to ship
            timeout: Per-request timeout; defaults to the exporter's

        Raises:
            TransientUploadError: First request that failed transiently
            PermanentUploadError: First request that was rejected
        """
        requests = self.marshal(payload)
        effective_timeout = self._timeout if timeout is None else timeout

        for index, request in enumerate(requests):
            try:
                self._uploader.upload(request, timeout=effective_timeout)
            except Exception:
                logger.error(
                    "Upload failed; abandoning remaining requests",
                    transport=self._uploader.name,
                    request_index=index,
                    remaining=len(requests) - index - 1,
                )
                raise
            if self._stats is not None:
                self._stats.record_sent(entries=len(request.entries), wire_bytes=request.wire_size())

        logger.debug(
            "Payload uploaded",
            transport=self._uploader.name,
            requests=len(requests),
            entries=sum(len(request.entries) for request in requests),
        )

    def shutdown(self) -> None:
        self._uploader.close()
