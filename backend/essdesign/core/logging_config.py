"""Structured logging configuration for the ESS Design backend.

JSON lines in production, plain text in development. The request id set by
the request context middleware is attached to every record emitted while
that request is being served, in both formats.
"""

import contextvars
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Optional


# Set by request_context middleware.
request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")

_TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"
_TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Chatty per-call loggers: httpx logs every storage and email request.
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore")

_LOG_RECORD_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"request_id"}


class _RequestIdFilter(logging.Filter):
    """Copy the current request id onto the record ("-" outside requests)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("") or "-"
        return True


class _JsonFormatter(logging.Formatter):
    """One JSON object per record; ``extra`` fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        rid = request_id_var.get("")
        if rid:
            payload["request_id"] = rid

        payload.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _LOG_RECORD_FIELDS and key not in payload
        )

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


# -- Secret redaction -------------------------------------------------------

_REDACTED = "***REDACTED***"

# (pattern, keep group 1) pairs. Supabase service keys are JWTs.
_SECRET_PATTERNS = [
    (re.compile(r"\beyJ[a-zA-Z0-9_\-]{10,}\.[a-zA-Z0-9_\-]{10,}\.[a-zA-Z0-9_\-]{10,}"), False),
    (re.compile(r"\bre_[a-zA-Z0-9_]{16,}"), False),
    (re.compile(r"(?i)(bearer\s+)[a-zA-Z0-9._\-]{20,}"), True),
    (re.compile(r"(?i)((?:api_key|apikey|secret|password|token|signature)[=:]\s*)[^\s,'\"&]{8,}"), True),
]


def redact(text: str) -> str:
    """Replace credentials in *text* with a fixed marker."""
    for pattern, keep_prefix in _SECRET_PATTERNS:
        replacement = (r"\g<1>" + _REDACTED) if keep_prefix else _REDACTED
        text = pattern.sub(replacement, text)
    return text


class _SecretFilter(logging.Filter):
    """Redact credentials from the formatted message and exception text."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            record.msg = record.getMessage()
            record.args = None
        record.msg = redact(str(record.msg))
        if record.exc_text:
            record.exc_text = redact(record.exc_text)
        return True


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to INFO.
        log_format: ``"json"`` (default) or ``"text"``.
    """
    level = (log_level or "INFO").upper()
    fmt = (log_format or "json").lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_RequestIdFilter())
    handler.addFilter(_SecretFilter())
    if fmt == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=_TEXT_FORMAT, datefmt=_TEXT_DATEFMT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging configured", extra={"level": level, "format": fmt})
