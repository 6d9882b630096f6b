"""Structured logging configuration.

Uses standard library logging with a JSON formatter. Modules attach context
through ``extra={...}``. Workflow correlation keys (``workflow_id``, ``step``,
``provider_id``) are lifted to the top level of each JSON line so one run can be
followed with a single filter; any other context lands under ``"extra"``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

# Attributes every LogRecord carries, plus the two the Formatter adds itself.
_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}

CORRELATION_KEYS: tuple[str, ...] = ("workflow_id", "step", "provider_id")

_NOISY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore", "openai", "anthropic", "urllib3")

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _context(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with workflow correlation keys at the top."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        context = _context(record)
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update((key, context.pop(key)) for key in CORRELATION_KEYS if key in context)
        if context:
            entry["extra"] = context

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        elif record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(
    level: str, *, json_output: bool = True, stream: TextIO | None = None
) -> None:
    """Configure root logging, JSON lines by default."""

    root = logging.getLogger()

    # Remove any existing handlers to avoid duplicate logs when re-configuring.
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root.addHandler(handler)
    root.setLevel(level.upper())

    # Keep SDK and HTTP client loggers reasonably quiet unless explicitly configured.
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(root.level, logging.WARNING))
