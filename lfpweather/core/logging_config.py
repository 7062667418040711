"""JSON log lines for the API process.

Every record becomes one JSON object: a fixed envelope (time, level, logger,
event, service identity) followed by the record's ``extra`` fields, with
sensitive keys redacted at any depth.
"""

from __future__ import annotations

import json
import logging
import os
import socket
import traceback
from datetime import datetime, timezone
from typing import Any, Iterable

REDACTED = "[REDACTED]"

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


def _normalize(key: str) -> str:
    # "X-API-Key" and "api_key" compare equal
    return key.lower().replace("-", "_")


class SensitiveDataFilter:
    """Redact values whose key contains one of ``patterns``."""

    def __init__(self, patterns: Iterable[str]):
        self.patterns = [_normalize(p) for p in patterns]

    def is_sensitive(self, key: str) -> bool:
        nk = _normalize(key)
        return any(p in nk for p in self.patterns)

    def filter(self, data: dict) -> dict:
        return {
            k: REDACTED if self.is_sensitive(str(k)) else self._scrub(v)
            for k, v in data.items()
        }

    def _scrub(self, value: Any) -> Any:
        if isinstance(value, dict):
            return self.filter(value)
        if isinstance(value, (list, tuple)):
            return [self._scrub(v) for v in value]
        return value


class CustomJsonFormatter(logging.Formatter):
    def __init__(self, service: str, environment: str, redaction_patterns: Iterable[str]):
        super().__init__()
        self.service_name = service
        self.environment = environment
        self.hostname = socket.gethostname()
        self.pid = os.getpid()
        self.sensitive_filter = SensitiveDataFilter(redaction_patterns)

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        envelope = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            "service": self.service_name,
            "environment": self.environment,
            "hostname": self.hostname,
            "pid": self.pid,
        }
        extra = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}
        envelope.update(self.sensitive_filter.filter(extra))
        if record.exc_info:
            envelope["exception"] = self.format_exception(record.exc_info)
        return json.dumps(envelope, default=str)

    @staticmethod
    def format_exception(exc_info) -> dict:
        et, ev, tb = exc_info
        return {
            "type": et.__name__,
            "message": str(ev),
            "stack": traceback.format_tb(tb),
        }


def configure_logging(
    service: str,
    environment: str,
    level: str,
    redaction_patterns: Iterable[str],
) -> logging.Logger:
    handler = logging.StreamHandler()
    handler.setFormatter(CustomJsonFormatter(service, environment, redaction_patterns))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # uvicorn installs its own handlers; send its records through the root instead
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv = logging.getLogger(name)
        uv.handlers = []
        uv.propagate = True

    return root
