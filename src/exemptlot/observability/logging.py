"""Logging for assessment runs.

Each API request or CLI invocation runs inside a correlation_scope. A filter
on the root handler stamps the scope's id onto every record, so the runner's
step lines ("overlay resolved", "run superseded", ...) can be grouped back
into one request whichever formatter is active:

    JSON  {"level": "INFO", "message": "...", "correlation_id": "req-42", "site_id": "ALB-001"}
    text  2026-10-19 09:30:01 INFO exemptlot.pipeline.runner [req-42] ... site_id=ALB-001
"""

import json
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone

# Keys callers pass via extra= that are rendered on every line that carries them
EXTRA_FIELDS = ("site_id", "run_id", "verdict", "step", "duration_ms")

NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "uvicorn.access")

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Current correlation id, '' outside a scope."""
    return correlation_id.get()


@contextmanager
def correlation_scope(cid: str | None = None) -> Iterator[str]:
    """Bind a correlation id (a new uuid4 if none given) for the enclosed block."""
    cid = cid or str(uuid.uuid4())
    token = correlation_id.set(cid)
    try:
        yield cid
    finally:
        correlation_id.reset(token)


class CorrelationFilter(logging.Filter):
    """Copy the active correlation id onto the record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get()
        return True


def _extras(record: logging.LogRecord) -> dict:
    extras = {}
    for key in EXTRA_FIELDS:
        val = getattr(record, key, None)
        if val is not None:
            extras[key] = val
    return extras


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        cid = getattr(record, "correlation_id", "") or correlation_id.get()
        if cid:
            entry["correlation_id"] = cid
        entry.update(_extras(record))
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for local runs, extras appended as key=value."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        cid = getattr(record, "correlation_id", "")
        if cid:
            head, _, tail = line.partition(f"{record.name} ")
            line = f"{head}{record.name} [{cid}] {tail}"
        extras = _extras(record)
        if extras:
            line += " " + " ".join(f"{k}={v}" for k, v in extras.items())
        return line


def setup_logging(json_format: bool = True, level: str = "INFO") -> None:
    """Replace the root handlers with one stream handler.

    Args:
        json_format: JSON lines when True, TextFormatter otherwise.
        level: Level name, case-insensitive; unknown names fall back to INFO.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler()
    handler.addFilter(CorrelationFilter())
    handler.setFormatter(JSONFormatter() if json_format else TextFormatter())
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
