"""Structured logging with request and evaluation-date context.

Every record emitted while a request or a recomputation is in flight is
tagged with that context, so a single momentum run can be followed through
the JSON logs with ``evaluation_date`` alone.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterator, Optional

from .config import settings


LOGGER_PREFIX = "momentum"

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
evaluation_date_var: ContextVar[Optional[str]] = ContextVar("evaluation_date", default=None)


@contextmanager
def bind_evaluation_date(evaluation_date: date) -> Iterator[None]:
    """Tag every log record emitted inside the block with ``evaluation_date``."""
    token = evaluation_date_var.set(evaluation_date.isoformat())
    try:
        yield
    finally:
        evaluation_date_var.reset(token)


def _context_fields() -> Dict[str, str]:
    fields = {}
    request_id = request_id_var.get()
    if request_id:
        fields["request_id"] = request_id
    evaluation_date = evaluation_date_var.get()
    if evaluation_date:
        fields["evaluation_date"] = evaluation_date
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context_fields(),
        }
        payload.update(getattr(record, "extra_fields", None) or {})

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if settings.debug:
            payload["location"] = f"{record.pathname}:{record.lineno}"

        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for local runs."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        context = _context_fields()
        tags = ""
        if "evaluation_date" in context:
            tags += f"[{context['evaluation_date']}] "
        if "request_id" in context:
            tags += f"[{context['request_id'][:8]}] "

        line = f"{stamp} {record.levelname:8} {tags}{record.name}: {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class CredentialFilter(logging.Filter):
    """Mask database passwords and keys before they reach a handler."""

    _DSN_PASSWORD = re.compile(r"(postgres(?:ql)?(?:\+asyncpg)?://[^:/\s]+:)[^@\s]+@")
    _KEY_VALUE = re.compile(r"((?:password|secret|token|api_key)\s*[=:]\s*)[^\s,}\]]+", re.IGNORECASE)

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            masked = self._DSN_PASSWORD.sub(r"\1***@", record.msg)
            record.msg = self._KEY_VALUE.sub(r"\1[REDACTED]", masked)
        return True


def setup_logging() -> None:
    """Install a single stdout handler on the root logger."""
    level = getattr(logging, settings.log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(StructuredFormatter() if settings.log_format == "json" else TextFormatter())
    handler.addFilter(CredentialFilter())

    root = logging.getLogger()
    root.setLevel(level)
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)

    for noisy in ("uvicorn.access", "yfinance", "peewee", "apscheduler.executors", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``momentum.`` namespace."""
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")
