"""
JSON logging for the identity core and its notification worker.

Every record becomes one JSON object on stdout. Structured fields are passed
through ``extra=`` (``event``, ``user_id``, ``ticket_id`` ...); only the keys
listed in :data:`EXTRA_KEYS` are copied, so callers cannot leak arbitrary
attributes such as secrets into the output.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import IO, Any
from uuid import uuid4

from flask import Flask, g, has_request_context, request

#: Incoming headers accepted as correlation id, in order of preference.
CORRELATION_HEADERS = ("X-Request-ID", "X-Correlation-ID")

#: Extras copied into the JSON payload when present on a record.
EXTRA_KEYS = (
    "event",
    "user_id",
    "ticket_id",
    "job_id",
    "attempt",
    "mode",
    "queue",
    "reason",
    "setting",
    "value",
)


class JSONFormatter(logging.Formatter):
    """
    Render log records as JSON objects.

    :param extra_keys: Record attributes copied when present.
    """

    def __init__(self, extra_keys: Iterable[str] = EXTRA_KEYS) -> None:
        super().__init__()
        self.extra_keys = tuple(extra_keys)

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        # worker threads log outside any request
        if record.threadName and record.threadName != "MainThread":
            payload["thread"] = record.threadName
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        payload.update({key: getattr(record, key) for key in self.extra_keys if hasattr(record, key)})
        return json.dumps(payload, default=str)


class ContextFilter(logging.Filter):
    """Stamp ``request_id`` on every record (``None`` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def ensure_request_id() -> str:
    """
    Return the correlation id of the current request.

    Inside a request the id is taken from :data:`CORRELATION_HEADERS` or
    generated, then cached on ``g``. Outside a request a fresh id is
    returned on every call.
    """
    if not has_request_context():
        return str(uuid4())
    cached = g.get("request_id")
    if cached:
        return cached
    incoming = next((request.headers[h] for h in CORRELATION_HEADERS if request.headers.get(h)), None)
    g.request_id = incoming or str(uuid4())
    return g.request_id


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(level: str | int = "INFO", *, stream: IO[str] | None = None) -> None:
    """
    Replace the root handlers with a single JSON handler.

    :param level: Level name or number; unknown names fall back to ``INFO``.
    :param stream: Output stream (defaults to stdout).
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(ContextFilter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))


def init_app(app: Flask) -> None:
    """Attach the context filter to the app logger."""
    app.logger.addFilter(ContextFilter())


__all__ = ["EXTRA_KEYS", "JSONFormatter", "configure_logging", "ensure_request_id", "init_app"]
