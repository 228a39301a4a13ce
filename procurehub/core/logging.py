"""
JSON logging for the API and workers.

Secrets are scrubbed twice: inline ``key=value`` pairs in messages, and whole
values under sensitive keys in structured details (audit payloads carry vendor
bank details and login bodies).
"""
import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Optional

from procurehub.core.config import settings

REDACTED = "***REDACTED***"

_INLINE_SECRET = re.compile(
    r'(password|secret|token|api_key|apikey|authorization|credential|account_number|ifsc)'
    r'[\"\']?\s*[:=]\s*[\"\']?[^\s,;\"\'}{]+',
    re.IGNORECASE,
)

_SECRET_KEY = re.compile(
    r'^(\w*password|\w*secret\w*|\w*token|api_?key|authorization|credentials?'
    r'|bank_details|account_number|ifsc)$',
    re.IGNORECASE,
)

# Extras copied from LogRecord attributes into the JSON entry
_CONTEXT_FIELDS = ("user_id", "vendor_id", "action", "entity_type", "entity_id", "ip_address")

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "passlib", "rq.worker")


def _scrub_value(obj):
    """Recursively redact values stored under sensitive keys."""
    if isinstance(obj, dict):
        return {
            k: REDACTED if isinstance(k, str) and _SECRET_KEY.match(k) else _scrub_value(v)
            for k, v in obj.items()
        }
    if isinstance(obj, (list, tuple)):
        return [_scrub_value(i) for i in obj]
    return obj


def _scrub_message(message: str) -> str:
    return _INLINE_SECRET.sub(rf'\1={REDACTED}', message)


class StructuredFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _scrub_message(record.getMessage()),
        }
        if record.levelno >= logging.ERROR:
            entry["location"] = f"{record.module}:{record.lineno}"

        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.exc_info:
            entry["exception"] = _scrub_message(self.formatException(record.exc_info))

        return json.dumps(entry, default=str)


def setup_logging(level: Optional[int] = None):
    """Install the JSON handler on the root logger once per process."""
    root = logging.getLogger()
    if root.handlers:
        return

    if level is None:
        level = logging.DEBUG if settings.DEBUG else logging.INFO
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class AuditLogger:
    """Mirrors audit rows to the ``audit`` logger."""

    def __init__(self, name: str = "audit"):
        self.logger = get_logger(name)

    def log(
        self,
        action: str,
        user_id: Optional[int] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        details: Optional[dict] = None,
        ip_address: Optional[str] = None,
    ):
        message = f"AUDIT: {action}"
        if entity_type and entity_id is not None:
            message += f" on {entity_type}:{entity_id}"
        if details:
            message += f" - {json.dumps(_scrub_value(details), default=str)}"

        self.logger.info(message, extra={
            "user_id": user_id,
            "action": action,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "ip_address": ip_address,
        })


audit_logger = AuditLogger()
