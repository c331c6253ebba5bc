# tests/unit/exporter/test_exporter.py
"""Tests for LogsExporter sequential upload and fail-fast behaviour."""

from __future__ import annotations

from typing import Any, ClassVar

import pytest

from siemship.exporter.errors import PermanentUploadError, TransientUploadError
from siemship.exporter.exporter import LogsExporter
from siemship.exporter.marshal import GrpcMarshaler
from siemship.exporter.stats import UploadStats
from tests.fixtures.factories import START_TIME_NS, make_config, make_payload, make_record


class FakeUploader:
    """Uploader that records calls and fails on chosen call indexes."""

    _name = "fake"
    marshaler_class: ClassVar[type] = GrpcMarshaler

    def __init__(self, failures: dict[int, Exception] | None = None) -> None:
        self.failures = failures or {}
        self.calls: list[tuple[Any, float | None]] = []
        self.closed = 0

    @property
    def name(self) -> str:
        return self._name

    def configure(self, config: Any, connection: Any) -> None:
        pass

    def upload(self, request: Any, *, timeout: float | None = None) -> None:
        index = len(self.calls)
        self.calls.append((request, timeout))
        if index in self.failures:
            raise self.failures[index]

    def close(self) -> None:
        self.closed += 1


def _exporter(uploader: FakeUploader, **kwargs: Any) -> LogsExporter:
    marshaler = GrpcMarshaler(make_config(max_entry_count=2), clock=lambda: START_TIME_NS)
    return LogsExporter(marshaler, uploader, **kwargs)


def _payload(count: int = 6):
    return make_payload([make_record(body=f"message {i}") for i in range(count)])


class TestConsumeLogs:
    """Tests for uploading a payload."""

    def test_uploads_every_request_in_order(self) -> None:
        uploader = FakeUploader()
        exporter = _exporter(uploader)

        exporter.consume_logs(_payload(6))

        bodies = [entry.data for request, _ in uploader.calls for entry in request.entries]
        assert bodies == [f"message {i}".encode() for i in range(6)]
        assert len(uploader.calls) == 4

    def test_empty_payload_uploads_nothing(self) -> None:
        uploader = FakeUploader()
        _exporter(uploader).consume_logs(make_payload([]))
        assert uploader.calls == []

    def test_first_failure_abandons_remaining(self) -> None:
        uploader = FakeUploader(failures={1: TransientUploadError("unavailable", status="UNAVAILABLE")})

        with pytest.raises(TransientUploadError):
            _exporter(uploader).consume_logs(_payload(6))

        assert len(uploader.calls) == 2

    def test_permanent_failure_propagates_unchanged(self) -> None:
        error = PermanentUploadError("rejected", status=400)
        uploader = FakeUploader(failures={0: error})

        with pytest.raises(PermanentUploadError) as exc_info:
            _exporter(uploader).consume_logs(_payload(2))

        assert exc_info.value is error

    def test_failure_logged(self, captured_logs: list[dict[str, Any]]) -> None:
        uploader = FakeUploader(failures={0: TransientUploadError("timeout")})

        with pytest.raises(TransientUploadError):
            _exporter(uploader).consume_logs(_payload(6))

        events = [log for log in captured_logs if log["event"] == "Upload failed; abandoning remaining requests"]
        assert len(events) == 1
        assert events[0]["request_index"] == 0
        assert events[0]["remaining"] == 3


class TestTimeout:
    """Tests for per-request timeout propagation."""

    def test_exporter_default_timeout(self) -> None:
        uploader = FakeUploader()
        _exporter(uploader, timeout=5.0).consume_logs(_payload(1))
        assert uploader.calls[0][1] == 5.0

    def test_call_timeout_overrides_default(self) -> None:
        uploader = FakeUploader()
        _exporter(uploader, timeout=5.0).consume_logs(_payload(1), timeout=0.5)
        assert uploader.calls[0][1] == 0.5

    def test_no_timeout(self) -> None:
        uploader = FakeUploader()
        _exporter(uploader).consume_logs(_payload(1))
        assert uploader.calls[0][1] is None


class TestStats:
    """Tests for counters bumped after accepted uploads."""

    def test_counts_accepted_requests(self) -> None:
        stats = UploadStats()
        uploader = FakeUploader()

        _exporter(uploader, stats=stats).consume_logs(_payload(5))

        snapshot = stats.snapshot()
        assert snapshot["requests_sent"] == 3
        assert snapshot["entries_sent"] == 5
        assert snapshot["bytes_sent"] == sum(request.wire_size() for request, _ in uploader.calls)
        assert snapshot["last_success_ns"] is not None

    def test_failed_request_not_counted(self) -> None:
        stats = UploadStats()
        uploader = FakeUploader(failures={1: TransientUploadError("unavailable")})

        with pytest.raises(TransientUploadError):
            _exporter(uploader, stats=stats).consume_logs(_payload(6))

        snapshot = stats.snapshot()
        assert snapshot["requests_sent"] == 1
        assert snapshot["entries_sent"] == 1


class TestMarshalAndShutdown:
    def test_marshal_does_not_upload(self) -> None:
        uploader = FakeUploader()
        requests = _exporter(uploader).marshal(_payload(3))
        assert [len(r.entries) for r in requests] == [1, 2]
        assert uploader.calls == []

    def test_shutdown_closes_uploader(self) -> None:
        uploader = FakeUploader()
        _exporter(uploader).shutdown()
        assert uploader.closed == 1
