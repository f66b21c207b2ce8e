"""
Structured logging for aurora-spine.

Configures structlog once per process and hands out bound loggers. Every
Data API call, migration unit and reset step logs a dotted event name
(``data_api.begin``, ``migration.unit_started``, ``reset.database_dropped``)
with key/value context, rendered as JSON when stdout is not a TTY (Lambda,
CI) and as a coloured console otherwise.

Features:
    - **configure_logging():** Processor chain + renderer selection
    - **get_logger():** structlog bound logger
    - **LogContext:** Scoped contextvars binding (database, transaction_id, ...)

Tags:
    logging, structlog, observability, aurora-spine

Doc-Types:
    - API Reference
    - Configuration Documentation
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "aurora-spine"


class LateBoundStream:
    """Writes to ``sys.<name>`` as it is at write time.

    Loggers are cached on first use; resolving the stream per write keeps
    them valid when ``sys.stdout`` or ``sys.stderr`` is swapped afterwards
    (click's test runner, pytest capture).
    """

    def __init__(self, name: str) -> None:
        self.name = name

    @property
    def target(self) -> TextIO:
        return getattr(sys, self.name)

    def write(self, text: str) -> int:
        return self.target.write(text)

    def flush(self) -> None:
        self.target.flush()

    def isatty(self) -> bool:
        return self.target.isatty()

    def __repr__(self) -> str:
        return f"LateBoundStream({self.name!r})"


STDOUT = LateBoundStream("stdout")
STDERR = LateBoundStream("stderr")


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "aurora-spine",
    add_timestamp: bool = True,
    stream: TextIO | LateBoundStream | None = None,
) -> None:
    """Configure structured logging for the process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
        stream: Output stream (default :data:`STDOUT`; the CLI passes :data:`STDERR`)

    Example:
        # Lambda (JSON lines for CloudWatch)
        configure_logging(level="INFO", json_format=True)

        # Local CLI (auto-detect: coloured console if tty)
        configure_logging(level="DEBUG")
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    stream = stream or STDOUT
    if json_format is None:
        json_format = not stream.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]
    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer(default=str)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )

    # botocore logs through the standard library
    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``).

    The name is carried as the ``logger_name`` key; print loggers have no
    name of their own.
    """
    if name is None:
        return structlog.get_logger()
    return structlog.get_logger(name, logger_name=name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(database="app", migration="00001_init"):
            logger.info("migration.unit_started")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "STDERR",
    "STDOUT",
    "LateBoundStream",
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "LogContext",
]
