# src/siemship/exporter/transports/grpc_transport.py
"""gRPC uploader for BatchCreateLogs requests.

The caller owns the channel, including its TLS and per-call OAuth
credentials; this module only invokes the unary method and classifies the
resulting status.

Requests go over the wire as the binary protobuf encoding of the
envelope; the response body is not inspected.
"""

from __future__ import annotations

from typing import Any

import grpc
import structlog

from siemship.contracts.config import RuntimeExporterConfig
from siemship.exporter.envelopes import BatchCreateLogsRequest
from siemship.exporter.errors import (
    ExporterConfigError,
    PermanentUploadError,
    TransientUploadError,
    UploadError,
)
from siemship.exporter.marshal import GrpcMarshaler

logger = structlog.get_logger(__name__)

BATCH_CREATE_LOGS_METHOD = "/malachite.ingestion.v2.IngestionService/BatchCreateLogs"

# Status codes worth retrying. Everything else is a rejection.
TRANSIENT_STATUS_CODES: frozenset[grpc.StatusCode] = frozenset(
    {
        grpc.StatusCode.CANCELLED,
        grpc.StatusCode.UNAVAILABLE,
        grpc.StatusCode.DEADLINE_EXCEEDED,
        grpc.StatusCode.RESOURCE_EXHAUSTED,
        grpc.StatusCode.ABORTED,
    }
)


def _serialize_request(request: BatchCreateLogsRequest) -> bytes:
    return request.to_wire()


def _deserialize_response(data: bytes) -> bytes:
    return data


def classify_rpc_error(error: grpc.RpcError) -> UploadError:
    """Map a failed call to a transient or permanent upload error.

    Errors raised by a unary call also implement grpc.Call; an RpcError
    without a ``code()`` is treated as UNKNOWN.
    """
    code_getter = getattr(error, "code", None)
    code = code_getter() if callable(code_getter) else grpc.StatusCode.UNKNOWN
    details_getter = getattr(error, "details", None)
    details = details_getter() if callable(details_getter) else str(error)

    message = f"upload logs to ingestion API: {code.name}: {details}"
    if code in TRANSIENT_STATUS_CODES:
        return TransientUploadError(message, status=code.name)
    return PermanentUploadError(message, status=code.name)


class GrpcUploader:
    """Upload BatchCreateLogs requests over a gRPC channel.

    Configuration:
        compression: "gzip" enables per-call gzip compression

    Thread safety:
        Upload calls are independent; the uploader holds no per-call state.
    """

    _name = "gRPC"
    marshaler_class = GrpcMarshaler

    def __init__(self) -> None:
        """Initialize unconfigured uploader."""
        self._call: Any = None
        self._compression: grpc.Compression | None = None

    @property
    def name(self) -> str:
        return self._name

    def configure(self, config: RuntimeExporterConfig, connection: Any) -> None:
        """Bind to a gRPC channel.

        Args:
            config: Runtime exporter configuration
            connection: Authorised grpc.Channel to the ingestion endpoint

        Raises:
            ExporterConfigError: If connection is not a grpc.Channel
        """
        if not isinstance(connection, grpc.Channel):
            raise ExporterConfigError(
                self._name,
                f"gRPC transport requires a grpc.Channel, got {type(connection).__name__}",
            )
        self._call = connection.unary_unary(
            BATCH_CREATE_LOGS_METHOD,
            request_serializer=_serialize_request,
            response_deserializer=_deserialize_response,
        )
        self._compression = grpc.Compression.Gzip if config.compression == "gzip" else None

    def upload(self, request: Any, *, timeout: float | None = None) -> None:
        """Send one BatchCreateLogs request.

        Raises:
            TransientUploadError: For CANCELLED, UNAVAILABLE, DEADLINE_EXCEEDED,
                RESOURCE_EXHAUSTED and ABORTED
            PermanentUploadError: For every other status
            RuntimeError: If configure() was not called
        """
        if self._call is None:
            raise RuntimeError("GrpcUploader.upload() called before configure()")
        try:
            self._call(request, timeout=timeout, compression=self._compression)
        except grpc.RpcError as e:
            error = classify_rpc_error(e)
            logger.warning(
                "BatchCreateLogs call failed",
                status=error.status,
                retryable=error.retryable,
                entries=len(request.entries),
            )
            raise error from e

    def close(self) -> None:
        # The channel belongs to the caller.
        self._call = None
