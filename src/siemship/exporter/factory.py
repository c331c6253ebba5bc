# src/siemship/exporter/factory.py
"""Factory functions for creating a LogsExporter from configuration.

Glue between ExporterSettings and a ready-to-use LogsExporter:
1. Discovering uploader classes via transport pluggy hooks
2. Selecting the uploader named by settings.protocol
3. Building its marshaler and binding the uploader to the caller's connection

Usage:
    from siemship.core.config import load_settings
    from siemship.exporter.factory import create_exporter

    settings = load_settings(Path("settings.yaml"))
    exporter = create_exporter(settings, channel)
    exporter.consume_logs(payload)
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pluggy
import structlog

from siemship.contracts.config import RuntimeExporterConfig
from siemship.core.config import ExporterSettings
from siemship.exporter.errors import ExporterConfigError
from siemship.exporter.exporter import LogsExporter
from siemship.exporter.hookspecs import PROJECT_NAME, SiemshipTransportSpec
from siemship.exporter.protocols import UploaderProtocol
from siemship.exporter.stats import UploadStats
from siemship.exporter.transports import BuiltinTransportsPlugin

logger = structlog.get_logger(__name__)


def _resolve_transport_name(uploader_class: type[UploaderProtocol]) -> str:
    """Resolve a transport name from class metadata.

    Raises:
        ExporterConfigError: If the class does not declare a usable _name
    """
    class_name = uploader_class.__name__
    name_hint = uploader_class.__dict__.get("_name")
    if type(name_hint) is str and name_hint != "":
        return name_hint
    raise ExporterConfigError(
        class_name,
        f"Uploader class attribute _name must be a non-empty string, got {name_hint!r}",
    )


def _discover_transport_registry(
    transport_plugins: Iterable[Any] = (),
) -> dict[str, type[UploaderProtocol]]:
    """Discover transports via pluggy hooks.

    Registers the built-in transports plus any plugin objects provided by
    the caller, then calls ``siemship_get_transports`` to build the
    name->class registry.

    Raises:
        ExporterConfigError: If a plugin fails to register, returns
            something other than a list of classes, or a transport name is
            registered twice
    """
    plugin_manager = pluggy.PluginManager(PROJECT_NAME)
    plugin_manager.add_hookspecs(SiemshipTransportSpec)

    for plugin in [BuiltinTransportsPlugin(), *list(transport_plugins)]:
        try:
            plugin_manager.register(plugin)
            plugin_manager.check_pending()
        except (pluggy.PluginValidationError, ValueError) as e:
            if isinstance(e, pluggy.PluginValidationError):
                plugin_manager.unregister(plugin=plugin)
            raise ExporterConfigError(
                "transport_plugins",
                f"Invalid transport plugin {type(plugin).__name__}: {e}",
            ) from e

    registry: dict[str, type[UploaderProtocol]] = {}
    for hook_impl in plugin_manager.hook.siemship_get_transports.get_hookimpls():
        plugin_name = type(hook_impl.plugin).__name__
        try:
            uploader_classes = hook_impl.plugin.siemship_get_transports()
        except Exception as e:
            raise ExporterConfigError(
                "transport_plugins",
                f"Transport plugin {plugin_name} failed in siemship_get_transports: {e}",
            ) from e

        if not isinstance(uploader_classes, list | tuple):
            raise ExporterConfigError(
                "transport_plugins",
                f"siemship_get_transports in plugin {plugin_name} returned "
                f"{type(uploader_classes).__name__}; expected a list of uploader classes",
            )

        for uploader_class in uploader_classes:
            transport_name = _resolve_transport_name(uploader_class)
            if transport_name in registry:
                existing = registry[transport_name].__name__
                raise ExporterConfigError(
                    transport_name,
                    f"Duplicate transport name '{transport_name}' discovered: {existing} and {uploader_class.__name__}",
                )
            registry[transport_name] = uploader_class

    return registry


def _select_transport(
    config: RuntimeExporterConfig,
    transport_plugins: Iterable[Any],
) -> type[UploaderProtocol]:
    registry = _discover_transport_registry(transport_plugins)
    if config.protocol not in registry:
        available = sorted(registry.keys())
        raise ExporterConfigError(
            config.protocol,
            f"Unknown protocol '{config.protocol}'. Available transports: {available}",
        )
    return registry[config.protocol]


def create_exporter(
    settings: ExporterSettings,
    connection: Any,
    *,
    stats: UploadStats | None = None,
    transport_plugins: Iterable[Any] = (),
) -> LogsExporter:
    """Create a LogsExporter for the configured protocol.

    Args:
        settings: Validated exporter settings
        connection: Authorised transport handle: grpc.Channel for "gRPC",
            httpx.Client for "https"
        stats: Upload counters; created here when None and
            collect_agent_metrics is enabled
        transport_plugins: Extra plugin objects providing
            ``siemship_get_transports`` hooks

    Returns:
        Exporter ready for consume_logs()

    Raises:
        ExporterConfigError: If the protocol has no transport, the customer
            id is not a UUID, or the connection is of the wrong kind
    """
    config = RuntimeExporterConfig.from_settings(settings)
    uploader = _select_transport(config, transport_plugins)()
    marshaler = uploader.marshaler_class(config)
    uploader.configure(config, connection)

    if stats is None and config.collect_agent_metrics:
        stats = UploadStats()

    logger.debug(
        "Exporter created",
        protocol=config.protocol,
        max_request_size=config.max_request_size,
        max_entry_count=config.max_entry_count,
    )
    return LogsExporter(marshaler, uploader, stats=stats, timeout=config.timeout_seconds)


def create_marshaler(
    settings: ExporterSettings,
    *,
    transport_plugins: Iterable[Any] = (),
) -> Any:
    """Create only the marshaler for the configured protocol.

    Used for dry runs that build requests without a connection.

    Raises:
        ExporterConfigError: If the protocol has no transport or the
            customer id is not a UUID
    """
    config = RuntimeExporterConfig.from_settings(settings)
    return _select_transport(config, transport_plugins).marshaler_class(config)
