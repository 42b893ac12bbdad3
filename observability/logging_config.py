"""Structured logging configuration."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs JSON-structured log records."""

    def format(self, record: logging.LogRecord) -> str:
        log_dict: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra_fields"):
            log_dict.update(record.extra_fields)

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict, default=str)


class StructuredLogger(logging.LoggerAdapter):
    """Logger adapter that supports structured fields."""

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> tuple[str, MutableMapping[str, Any]]:
        extra = dict(self.extra or {})
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = {"extra_fields": extra}
        return msg, kwargs


_configured = False
_handler: logging.Handler | None = None


def configure_logging(
    level: int | str = logging.INFO,
    structured: bool = True,
    *,
    force: bool = False,
) -> None:
    """Configure root logging for the engine.

    Subsequent calls are no-ops unless ``force`` is set, in which case the
    handler installed by the previous call is replaced.
    """
    global _configured, _handler
    if _configured and not force:
        return

    root_logger = logging.getLogger()
    if _handler is not None:
        root_logger.removeHandler(_handler)

    root_logger.setLevel(level.upper() if isinstance(level, str) else level)

    handler = logging.StreamHandler(sys.stderr)
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.addHandler(handler)
    _handler = handler
    _configured = True


def get_logger(name: str, **extra: Any) -> StructuredLogger:
    """Get a structured logger with optional default extra fields."""
    configure_logging()
    base_logger = logging.getLogger(name)
    return StructuredLogger(base_logger, extra)
