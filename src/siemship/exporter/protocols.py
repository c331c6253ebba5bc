# src/siemship/exporter/protocols.py
"""Protocol definitions for uploaders.

Uploaders ship marshaled requests to the ingestion API over one transport
(gRPC or HTTPS) and classify failures as transient or permanent.
"""

from typing import TYPE_CHECKING, Any, ClassVar, Protocol, runtime_checkable

if TYPE_CHECKING:
    from siemship.contracts.config import RuntimeExporterConfig
    from siemship.exporter.marshal import UploadRequest


@runtime_checkable
class UploaderProtocol(Protocol):
    """Protocol for uploaders.

    Lifecycle:
        1. Discovery: siemship_get_transports hook returns uploader classes
        2. Instantiation: create_exporter() instantiates the class whose
           name matches settings.protocol
        3. Configuration: configure() called with runtime config and the
           caller's already-authorised connection
        4. Operation: upload() called once per request, sequentially
        5. Shutdown: close() called by the exporter's owner

    Error handling:
        - configure() MUST raise ExporterConfigError on invalid config or
          a connection of the wrong kind
        - upload() MUST raise TransientUploadError or PermanentUploadError
          when the request was not accepted
        - close() MUST be idempotent and MUST NOT close the caller's
          connection
    """

    # Marshaler class producing the request shape this transport sends
    marshaler_class: ClassVar[type]

    @property
    def name(self) -> str:
        """Transport name matched against settings.protocol."""
        ...

    def configure(self, config: "RuntimeExporterConfig", connection: Any) -> None:
        """Bind the uploader to a connection.

        Args:
            config: Runtime exporter configuration
            connection: grpc.Channel for gRPC, httpx.Client for HTTPS

        Raises:
            ExporterConfigError: If the connection or config is unusable
        """
        ...

    def upload(self, request: "UploadRequest", *, timeout: float | None = None) -> None:
        """Send one request.

        Raises:
            TransientUploadError: If a retry may succeed
            PermanentUploadError: If the request was rejected
        """
        ...

    def close(self) -> None:
        """Release uploader resources. Safe to call more than once."""
        ...
