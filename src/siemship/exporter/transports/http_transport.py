# src/siemship/exporter/transports/http_transport.py
"""HTTPS uploader for logs:import requests.

Each log type posts to its own endpoint::

    https://{location}-{endpoint}/v1alpha/projects/{project}/locations/{location}
        /instances/{customer_id}/logTypes/{log_type}/logs:import

The caller owns the httpx.Client, including its auth. Only HTTP 200 counts
as accepted.
"""

from __future__ import annotations

import gzip
from typing import Any

import httpx
import structlog

from siemship.contracts.config import RuntimeExporterConfig
from siemship.exporter.envelopes import ImportLogsRequest
from siemship.exporter.errors import (
    ExporterConfigError,
    PermanentUploadError,
    TransientUploadError,
)
from siemship.exporter.marshal import HttpMarshaler

logger = structlog.get_logger(__name__)

IMPORT_URL_FORMAT = (
    "https://{location}-{endpoint}/v1alpha/projects/{project}/locations/{location}"
    "/instances/{customer_id}/logTypes/{log_type}/logs:import"
)

# Server-side overload; everything else non-200 is a rejection.
TRANSIENT_HTTP_STATUSES: frozenset[int] = frozenset({500, 503})


class HttpUploader:
    """Upload logs:import requests with an httpx client.

    Configuration:
        endpoint, location, project, customer_id: build the import URL
        compression: "gzip" compresses the body and sets Content-Encoding

    Thread safety:
        Safe to share as long as the httpx.Client is.
    """

    _name = "https"
    marshaler_class = HttpMarshaler

    def __init__(self) -> None:
        """Initialize unconfigured uploader."""
        self._client: httpx.Client | None = None
        self._config: RuntimeExporterConfig | None = None

    @property
    def name(self) -> str:
        return self._name

    def configure(self, config: RuntimeExporterConfig, connection: Any) -> None:
        """Bind to an httpx client.

        Raises:
            ExporterConfigError: If connection is not an httpx.Client or the
                import URL cannot be addressed
        """
        if not isinstance(connection, httpx.Client):
            raise ExporterConfigError(
                self._name,
                f"https transport requires an httpx.Client, got {type(connection).__name__}",
            )
        missing = [name for name in ("location", "project", "customer_id") if not getattr(config, name)]
        if missing:
            raise ExporterConfigError(self._name, f"missing {', '.join(missing)}")
        self._client = connection
        self._config = config

    def endpoint_for(self, log_type: str) -> str:
        """Import URL for one log type."""
        if self._config is None:
            raise RuntimeError("HttpUploader.endpoint_for() called before configure()")
        return IMPORT_URL_FORMAT.format(
            location=self._config.location,
            endpoint=self._config.endpoint,
            project=self._config.project,
            customer_id=self._config.customer_id,
            log_type=log_type,
        )

    def upload(self, request: ImportLogsRequest, *, timeout: float | None = None) -> None:
        """POST one request to its log type's import endpoint.

        Raises:
            TransientUploadError: On 500, 503, or a transport failure before
                any response (connection refused, timeout)
            PermanentUploadError: On every other non-200 status
            RuntimeError: If configure() was not called
        """
        if self._client is None or self._config is None:
            raise RuntimeError("HttpUploader.upload() called before configure()")

        url = self.endpoint_for(request.log_type)
        body = request.to_json()
        headers = {"Content-Type": "application/json"}
        if self._config.compression == "gzip":
            body = gzip.compress(body)
            headers["Content-Encoding"] = "gzip"

        request_kwargs: dict[str, Any] = {"content": body, "headers": headers}
        if timeout is not None:
            request_kwargs["timeout"] = timeout

        try:
            response = self._client.post(url, **request_kwargs)
        except httpx.TransportError as e:
            raise TransientUploadError(f"send request to {url}: {e}") from e

        if response.status_code == 200:
            return

        logger.warning(
            "Received non-OK response",
            status_code=response.status_code,
            body=response.text,
            log_type=request.log_type,
        )
        message = f"upload logs to ingestion API: HTTP {response.status_code}"
        if response.status_code in TRANSIENT_HTTP_STATUSES:
            raise TransientUploadError(message, status=response.status_code)
        raise PermanentUploadError(message, status=response.status_code)

    def close(self) -> None:
        # The client belongs to the caller.
        self._client = None
