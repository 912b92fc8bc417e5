"""Structured logging utilities."""

from __future__ import annotations

import logging
import os
import sys
import time
import uuid
from typing import Any, Dict, Optional

import orjson

_TRACE_KEY = "trace_id"
_RESERVED = set(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}

_events = logging.getLogger("optionscout.events")


class JsonFormatter(logging.Formatter):
    """Render log records as JSON, folding ``extra`` fields into the payload."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED or key.startswith("_"):
                continue
            payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode()


def setup_logging(level: Optional[str] = None) -> None:
    """Install a JSON formatter on the root logger using ``LOG_LEVEL``."""

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, level_name, logging.INFO))
    root.addHandler(handler)


def new_trace_id() -> str:
    return uuid.uuid4().hex


def with_trace(extra: Optional[Dict[str, Any]] = None, *, trace_id: Optional[str] = None) -> Dict[str, Any]:
    """Attach a trace identifier to structured log metadata."""

    payload: Dict[str, Any] = {_TRACE_KEY: trace_id or new_trace_id()}
    if extra:
        payload.update(extra)
    return payload


def jlog(event: str, /, **kv: Any) -> None:
    """Emit a compact JSON debug event with a consistent schema."""

    if not _events.isEnabledFor(logging.DEBUG):
        return
    payload: Dict[str, Any] = {
        "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "event": event,
    }
    payload.update(kv)
    _events.debug(orjson.dumps(payload, default=str).decode())


__all__ = ["JsonFormatter", "jlog", "new_trace_id", "setup_logging", "with_trace"]
