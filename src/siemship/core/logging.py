# src/siemship/core/logging.py
"""Structured logging for siemship.

structlog events and the stdlib records of grpc and httpx share one
stderr handler, rendered as JSON or for the console.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# Transport libraries log every connection and request at DEBUG.
_TRANSPORT_LOGGERS: tuple[str, ...] = ("grpc", "httpx", "httpcore")


def configure_logging(*, json_output: bool = False, level: str = "INFO") -> None:
    """Route structlog and stdlib logging to stderr at the given level."""
    log_level = getattr(logging, level.upper())

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    final_processors: list[Any] = [ProcessorFormatter.remove_processors_meta]
    if json_output:
        final_processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        final_processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=[*shared_processors, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Tests reconfigure logging; cached loggers would go stale.
        cache_logger_on_first_use=False,
    )

    # stderr keeps `siemship plan --format json` output clean.
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        ProcessorFormatter(
            processors=final_processors,
            foreign_pre_chain=shared_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
