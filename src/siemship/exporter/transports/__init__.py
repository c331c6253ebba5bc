# src/siemship/exporter/transports/__init__.py
"""Built-in upload transports.

Available transports:
- GrpcUploader ("gRPC"): BatchCreateLogs over a grpc.Channel
- HttpUploader ("https"): logs:import over an httpx.Client

Plugin registration:
    Transports are registered via the siemship_get_transports hook.
    The BuiltinTransportsPlugin in this module registers both.
"""

from siemship.exporter.hookspecs import hookimpl
from siemship.exporter.transports.grpc_transport import GrpcUploader
from siemship.exporter.transports.http_transport import HttpUploader


class BuiltinTransportsPlugin:
    """Plugin that registers built-in transports."""

    @hookimpl
    def siemship_get_transports(self) -> list[type]:
        """Return built-in uploader classes."""
        return [GrpcUploader, HttpUploader]


__all__ = [
    "BuiltinTransportsPlugin",
    "GrpcUploader",
    "HttpUploader",
]
