"""Structured logging configuration.

The integration layer logs through ``structlog`` so every line carries the
provider and operation as key/value context instead of formatted strings.

Typical usage
- Call ``configure_logging(log_level, log_format)`` once at startup (the CLI
  does it from ``AppSettings``)
- Acquire loggers via ``get_logger(__name__)``
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory, add_logger_name


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    service_name: str = "nonprofit-integrations",
) -> None:
    """Configure stdlib logging and structlog.

    Parameters
    - log_level: ``DEBUG``, ``INFO``, ``WARNING``, ``ERROR`` (case-insensitive)
    - log_format: ``json`` for aggregation; ``console`` for local use
    - service_name: bound to every line
    """

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_logger_name,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""

    return structlog.get_logger(name)
