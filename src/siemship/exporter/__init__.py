# src/siemship/exporter/__init__.py
"""Log export pipeline: extraction, batching, marshaling and upload.

Usage:
    from siemship.exporter import create_exporter

    exporter = create_exporter(settings, connection)
    exporter.consume_logs(payload)
"""

from siemship.exporter.errors import (
    ExporterConfigError,
    PermanentUploadError,
    TransientUploadError,
    UploadError,
    is_permanent,
)
from siemship.exporter.exporter import LogsExporter
from siemship.exporter.factory import create_exporter
from siemship.exporter.stats import UploadStats

__all__ = [
    "ExporterConfigError",
    "LogsExporter",
    "PermanentUploadError",
    "TransientUploadError",
    "UploadError",
    "UploadStats",
    "create_exporter",
    "is_permanent",
]
