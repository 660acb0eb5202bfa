"""
Logging setup for the API process.

Production emits one JSON object per line; development uses a readable
single-line format. Both carry the request id of the HTTP request being
served and pass through the same redaction filter.
"""

import json
import logging
import re
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Optional

# Set by the request middleware for the lifetime of one request
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_REDACTIONS = (
    (re.compile(r"(Authorization:\s*Bearer\s+)\S+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r'(api[_-]?key["\s:=]+)[^\s&"\']+', re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r'(password["\s:=]+)[^\s&"\']+', re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r'(secret["\s:=]+)[^\s&"\']+', re.IGNORECASE), r"\1[REDACTED]"),
    # Invitation links and token lookups
    (re.compile(r"([?&]token=)[^\s&\"']+", re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"(/invitations/token/)[^\s/?\"']+", re.IGNORECASE), r"\1[REDACTED]"),
    # Resend API keys
    (re.compile(r"re_[a-zA-Z0-9_]{20,}"), "[REDACTED_API_KEY]"),
)

# Extras copied into JSON output when a call site passes them
STRUCTURED_FIELDS = (
    "request_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "user_id",
    "project_id",
    "access_id",
    "required_permission",
    "access_granted",
)

HUMAN_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s"


def redact(value: str) -> str:
    for pattern, replacement in _REDACTIONS:
        value = pattern.sub(replacement, value)
    return value


def _redact_arg(value):
    return redact(value) if isinstance(value, str) else value


class SensitiveDataFilter(logging.Filter):
    """Scrubs bearer tokens, API keys, passwords and invitation tokens."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(_redact_arg(a) for a in record.args)
        elif isinstance(record.args, dict):
            record.args = {k: _redact_arg(v) for k, v in record.args.items()}
        return True


class RequestContextFilter(logging.Filter):
    """Stamps each record with the current request id, or ``-`` outside a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(
            (key, getattr(record, key)) for key in STRUCTURED_FIELDS if hasattr(record, key)
        )
        return json.dumps(entry, default=str)


def setup_logging(json_output: bool = False, level: str = "INFO") -> None:
    """
    Replace the root handlers with a single stdout handler.

    Args:
        json_output: Emit JSON lines (production) instead of the readable format.
        level: Root log level name.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(HUMAN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    # Handler-level filters also cover records propagated from child loggers
    handler.addFilter(RequestContextFilter())
    handler.addFilter(SensitiveDataFilter())
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
