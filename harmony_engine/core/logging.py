"""
Structured logging for the progress engine.

Every record on the `harmony` logger carries two correlation fields pulled
from context variables:
- request_id, bound per HTTP request by RequestIdMiddleware
- user_id, bound by `bound_user` while one user's progress is recomputed,
  so warnings from the calendar, streak and pain code name the user without
  threading it through every pure function

Production emits one JSON object per line; development emits a compact
human line with the structured fields appended as key=value pairs.
"""

import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Iterator, Optional

LOGGER_NAME = "harmony"

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_ctx_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

_CONTEXT_FIELDS = ("request_id", "user_id")
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}
_TRUNCATE_AT = 500


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    rid = request_id_ctx_var.get()
    return rid if rid is not None else default


def get_user_id(default: Optional[str] = None) -> Optional[str]:
    uid = user_id_ctx_var.get()
    return uid if uid is not None else default


@contextmanager
def bound_user(user_id: Optional[str]) -> Iterator[None]:
    """Tag every log record emitted inside the block with `user_id`."""
    token = user_id_ctx_var.set(user_id)
    try:
        yield
    finally:
        user_id_ctx_var.reset(token)


def _format_timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace('+00:00', 'Z')


def _structured_fields(record: logging.LogRecord) -> Dict[str, object]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and key not in _CONTEXT_FIELDS and value is not None
    }


class LogContextFilter(logging.Filter):
    """Fill request_id and user_id from context when the caller did not."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        if getattr(record, "user_id", None) is None:
            record.user_id = get_user_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _format_timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
            "user_id": getattr(record, "user_id", None),
        }
        payload.update(_structured_fields(record))
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        tags = "".join(
            f" [{short}={value}]"
            for short, value in (
                ("rid", getattr(record, "request_id", None)),
                ("user", getattr(record, "user_id", None)),
            )
            if value
        )
        fields = " ".join(f"{k}={v}" for k, v in _structured_fields(record).items())
        line = f"{_format_timestamp(record)} {record.levelname} [{LOGGER_NAME}]{tags} {record.getMessage()}"
        return f"{line} {fields}" if fields else line


def configure_logging(env: str = "development") -> None:
    """Configure structured logging based on environment."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    formatter: logging.Formatter
    if env.lower() == "production":
        formatter = JsonFormatter()
    else:
        formatter = PrettyFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(LogContextFilter())

    logger.handlers = [handler]
    logger.propagate = True

    # uvicorn keeps its own handlers
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.error").propagate = False


def _safe_truncate(value, limit: int = _TRUNCATE_AT):
    if isinstance(value, (int, float, bool)) or value is None:
        return value
    try:
        text = str(value)
    except Exception:
        return "<unserializable>"
    if len(text) <= limit:
        return text
    return text[:limit] + "...<truncated>"


def log_event(
    level: str,
    msg: str,
    *,
    user_id: Optional[str] = None,
    local_date: Optional[str] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
    request_id: Optional[str] = None,
):
    """
    Emit one structured record on the `harmony` logger.

    `msg` is a dotted event name (`progress.recomputed`,
    `milestone.rule_failed`, ...). Context fields not given explicitly fall
    back to the bound request and user. Values in `extra` are stringified
    and truncated unless they are plain numbers.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        configure_logging(os.getenv("ENV", "development"))

    payload = {
        "request_id": request_id or get_request_id(),
        "user_id": user_id or get_user_id(),
    }
    if local_date:
        payload["local_date"] = local_date
    if event_type:
        payload["event_type"] = event_type
    if error_code:
        payload["error_code"] = error_code
    if extra:
        for k, v in extra.items():
            if k in _RESERVED_ATTRS:
                k = f"field_{k}"
            payload[k] = _safe_truncate(v)

    log_fn = getattr(logger, level, logger.info)
    log_fn(msg, extra=payload)
