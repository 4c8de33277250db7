"""Structured logging configuration using structlog.

Console output in development, one JSON object per line elsewhere. Lifecycle
operations bind the escrow transaction id and the action being attempted, so
every entry emitted while an escrow is mutated can be traced back to it.

Usage:
    from property_escrow.logging_config import setup_logging, get_logger
    setup_logging(log_level="DEBUG", json_logs=False)
    logger = get_logger(__name__)
    logger.info("escrow.created", transaction_id="abc-123", currency="STX")
"""

from __future__ import annotations

import enum
import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal
from typing import IO

import structlog

# Loggers that chatter below WARNING during normal escrow traffic
_QUIET_LOGGERS = ("statemachine",)


def _stringify_domain_values(
    _logger: object, _method: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Render Decimal amounts, ids and enum members as plain strings."""
    for key, value in event_dict.items():
        if isinstance(value, enum.Enum):
            event_dict[key] = value.value
        elif isinstance(value, Decimal | uuid.UUID):
            event_dict[key] = str(value)
    return event_dict


def _processor_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _stringify_domain_values,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(json_logs: bool, stream: IO[str]) -> structlog.types.Processor:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=stream.isatty())


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    stream: IO[str] | None = None,
) -> None:
    """Route structlog through the stdlib root logger.

    Args:
        log_level: Standard Python log level string (DEBUG, INFO, WARNING, etc.)
        json_logs: If True, output JSON. If False, console output, colored
            only when ``stream`` is a terminal.
        stream: Where log lines go. Defaults to stdout.
    """
    stream = stream or sys.stdout

    structlog.configure(
        processors=[
            *_processor_chain(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_logs, stream),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Optional logger name, usually the calling module's ``__name__``.
    """
    return structlog.get_logger(name)


@contextmanager
def bind_transaction_context(transaction_id: object, action: str) -> Iterator[None]:
    """Bind ``transaction_id`` and ``action`` to every log entry in the block."""
    with structlog.contextvars.bound_contextvars(
        transaction_id=str(transaction_id), action=action
    ):
        yield
