# src/siemship/contracts/config.py
"""Runtime configuration consumed by the marshalers and uploaders.

ExporterSettings (core/config.py) is the user-facing schema with a pair of
limits per protocol. RuntimeExporterConfig is the flattened view the
pipeline actually runs with: limits already chosen for the selected
protocol, labels frozen into a tuple.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from siemship.contracts.entries import Label

if TYPE_CHECKING:
    from siemship.core.config import ExporterSettings


@dataclass(frozen=True, slots=True)
class RuntimeExporterConfig:
    """Runtime configuration for one exporter instance.

    Field Origins (all from ExporterSettings):
        - max_request_size / max_entry_count: the batch limits of the
          selected protocol
        - ingestion_labels: settings.ingestion_labels as Label tuples, in
          configuration order
        - everything else: direct mapping
    """

    protocol: str
    customer_id: str
    log_type: str = ""
    namespace: str = ""
    raw_log_field: str = ""
    override_log_type: bool = True
    ingestion_labels: tuple[Label, ...] = ()
    max_request_size: int = 1048576
    max_entry_count: int = 1000
    compression: str = "none"
    endpoint: str = ""
    location: str = ""
    project: str = ""
    forwarder: str = ""
    collect_agent_metrics: bool = True
    timeout_seconds: float = 5.0

    def __post_init__(self) -> None:
        if self.max_request_size <= 0:
            raise ValueError("max_request_size must be positive")
        if self.max_entry_count <= 0:
            raise ValueError("max_entry_count must be positive")

    @classmethod
    def from_settings(cls, settings: ExporterSettings) -> RuntimeExporterConfig:
        """Factory from ExporterSettings config model.

        Args:
            settings: Validated Pydantic settings model

        Returns:
            RuntimeExporterConfig with mapped values
        """
        return cls(
            protocol=settings.protocol,
            customer_id=settings.customer_id,
            log_type=settings.log_type,
            namespace=settings.namespace,
            raw_log_field=settings.raw_log_field,
            override_log_type=settings.override_log_type,
            ingestion_labels=tuple(Label(key=k, value=v) for k, v in settings.ingestion_labels.items()),
            max_request_size=settings.batch_request_size_limit,
            max_entry_count=settings.batch_log_count_limit,
            compression=settings.compression,
            endpoint=settings.endpoint,
            location=settings.location,
            project=settings.project,
            forwarder=settings.forwarder,
            collect_agent_metrics=settings.collect_agent_metrics,
            timeout_seconds=settings.timeout_seconds,
        )
