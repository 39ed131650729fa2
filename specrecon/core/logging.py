"""Logging setup for the CLI.

Services log through ``structlog.get_logger``; the ingestion parsers use
plain ``logging`` loggers. Both go to stderr so command output on stdout
stays readable, plus ``logs/specrecon.log`` when that directory exists.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import structlog

LOG_FILE = Path("logs/specrecon.log")

SHARED_PROCESSORS: list[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


def _renderer(log_format: str) -> Any:
    if log_format.lower() == "json":
        # Item and supplier names are Cyrillic
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def configure_logging(level: str = "INFO", log_format: str = "text") -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: Root log level name, e.g. ``DEBUG``
        log_format: ``json`` for one JSON object per line, anything else
            for the console renderer
    """
    structlog.configure(
        processors=[*SHARED_PROCESSORS, _renderer(log_format)],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if LOG_FILE.parent.is_dir():
        handlers.append(logging.FileHandler(LOG_FILE, encoding="utf-8"))

    logging.basicConfig(format="%(message)s", handlers=handlers, level=level.upper())
