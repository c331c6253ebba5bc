# src/siemship/exporter/hookspecs.py
"""pluggy hook specifications for upload transports.

Transports implement these hooks to register themselves with the exporter
factory, which picks the one named by ``settings.protocol``.

Usage (implementing a transport plugin):
    from siemship.exporter.hookspecs import hookimpl

    class MyTransportPlugin:
        @hookimpl
        def siemship_get_transports(self):
            return [MyUploader]
"""

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from siemship.exporter.protocols import UploaderProtocol

PROJECT_NAME = "siemship"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)

hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class SiemshipTransportSpec:
    """Hook specifications for transport plugins."""

    @hookspec
    def siemship_get_transports(self) -> list[type["UploaderProtocol"]]:  # type: ignore[empty-body]
        """Return uploader classes.

        Returns:
            List of uploader classes (not instances) that implement
            UploaderProtocol
        """
