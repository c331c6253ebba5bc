# src/siemship/exporter/errors.py
"""Exporter exceptions.

Two families:

- ``ExporterConfigError``: raised while building an exporter (bad customer
  id, unknown protocol, malformed raw-log field). Never raised once records
  are flowing.
- ``UploadError``: raised by an uploader when a request does not reach the
  ingestion API. The ``retryable`` attribute tells the caller's retry layer
  whether sending the same request again can succeed.
"""

from __future__ import annotations


class ExporterConfigError(Exception):
    """Raised when an exporter cannot be configured or constructed.

    Attributes:
        exporter_name: Name of the exporter or transport that failed
        message: Human-readable error description
    """

    def __init__(self, exporter_name: str, message: str) -> None:
        self.exporter_name = exporter_name
        self.message = message
        super().__init__(f"Exporter '{exporter_name}' failed: {message}")


class UploadError(Exception):
    """Base class for upload failures.

    The transport error that caused the failure is chained as ``__cause__``.

    Attributes:
        retryable: Whether sending the same request again may succeed
        status: Transport status (HTTP status code or gRPC status name) if known
    """

    def __init__(self, message: str, *, retryable: bool, status: int | str | None = None) -> None:
        super().__init__(message)
        self.retryable = retryable
        self.status = status


class TransientUploadError(UploadError):
    """Upload failed in a way a retry may fix (overload, timeout, cancellation)."""

    def __init__(self, message: str, *, status: int | str | None = None) -> None:
        super().__init__(message, retryable=True, status=status)


class PermanentUploadError(UploadError):
    """Upload was rejected; retrying the same request will not succeed."""

    def __init__(self, message: str, *, status: int | str | None = None) -> None:
        super().__init__(message, retryable=False, status=status)


def is_permanent(error: BaseException) -> bool:
    """Check whether an error must not be retried.

    Upload errors answer through their ``retryable`` flag and configuration
    errors are always permanent. Any other exception escaping an upload is
    an unclassified failure and is treated as transient.
    """
    if isinstance(error, ExporterConfigError):
        return True
    if isinstance(error, UploadError):
        return not error.retryable
    return False
