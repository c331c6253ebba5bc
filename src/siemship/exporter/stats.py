# src/siemship/exporter/stats.py
"""Upload counters shared between an exporter and its owner.

UploadStats is created by the caller and injected into LogsExporter, so
one set of counters can span several exporters or threads. Counters only
move after the ingestion API has accepted a request.
"""

from __future__ import annotations

import threading
import time
from typing import Any


class UploadStats:
    """Thread-safe counters of accepted uploads.

    Example:
        stats = UploadStats()
        exporter = create_exporter(settings, channel, stats=stats)
        exporter.consume_logs(payload)
        stats.snapshot()["entries_sent"]
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requests_sent = 0
        self._entries_sent = 0
        self._bytes_sent = 0
        self._last_success_ns: int | None = None

    def record_sent(self, *, entries: int, wire_bytes: int) -> None:
        """Count one accepted request."""
        with self._lock:
            self._requests_sent += 1
            self._entries_sent += entries
            self._bytes_sent += wire_bytes
            self._last_success_ns = time.time_ns()

    def snapshot(self) -> dict[str, Any]:
        """Return a consistent copy of the counters."""
        with self._lock:
            return {
                "requests_sent": self._requests_sent,
                "entries_sent": self._entries_sent,
                "bytes_sent": self._bytes_sent,
                "last_success_ns": self._last_success_ns,
            }

    def snapshot_and_reset(self) -> dict[str, Any]:
        """Return the counters and zero them, atomically.

        Used by periodic reporters that publish deltas.
        """
        with self._lock:
            result = {
                "requests_sent": self._requests_sent,
                "entries_sent": self._entries_sent,
                "bytes_sent": self._bytes_sent,
                "last_success_ns": self._last_success_ns,
            }
            self._requests_sent = 0
            self._entries_sent = 0
            self._bytes_sent = 0
            return result
