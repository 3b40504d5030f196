"""Structured logging for the surebet engine, built on structlog.

JSON lines outside dev mode, colored console in dev (MODE=dev). Events are
snake_case (``ticket_confirmed``, ``leg_settled``); money values may be
passed as Decimal and are rendered as exact strings, never floats.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from decimal import Decimal
from typing import Any

import structlog

# Credentials and partner identity (account holders) never reach the logs
_SENSITIVE_KEYS = re.compile(
    r"(password|token|secret|api[-_]?key|authorization|partner[-_]?name|cpf|document)",
    re.IGNORECASE,
)
_MASK = "***REDACTED***"


def _mask_sensitive(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Replace values of sensitive-looking keys."""
    for key in list(event_dict.keys()):
        if _SENSITIVE_KEYS.search(key):
            event_dict[key] = _MASK
    return event_dict


def _render_decimals(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Decimal → str, one level into lists/tuples/dicts."""

    def render(value: Any) -> Any:
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, (list, tuple)):
            return [str(v) if isinstance(v, Decimal) else v for v in value]
        if isinstance(value, dict):
            return {k: str(v) if isinstance(v, Decimal) else v for k, v in value.items()}
        return value

    return {key: render(value) for key, value in event_dict.items()}


def setup_logging(log_level: str = "INFO", json_output: bool | None = None) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        json_output: Force JSON output. If None, JSON unless MODE=dev.
    """
    if json_output is None:
        json_output = os.getenv("MODE", "prod") != "dev"

    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        _mask_sensitive,
        _render_decimals,
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # stderr keeps CLI table output on stdout clean
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def get_logger(module: str) -> structlog.stdlib.BoundLogger:
    """Logger bound to ``module`` (e.g. ``"surebet_engine"``)."""
    return structlog.get_logger(module=module)
