# JSON log lines for the API plus the per-request access log. Request
# lines carry latency, route template, organization, user and request_id.

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from time import monotonic
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

# Never written to a log line, whatever a caller passes in extra.
_REDACTED_FIELDS = frozenset({"api_key", "password", "token", "access_token", "plaintext", "link"})

_ALWAYS_FIELDS = {
    "request_id",
    "organization_id",
    "user_id",
    "route",
    "method",
    "status_code",
    "duration_ms",
    "error_code",
}


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line; extra fields are flattened into it."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=True, default=str)


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _RESERVED_ATTRS or key.startswith("_"):
            continue
        if key in _REDACTED_FIELDS:
            fields[key] = "[redacted]"
        elif value is not None or key in _ALWAYS_FIELDS:
            fields[key] = value
    return fields


def get_structured_logger(name: str, level: str | None = None) -> logging.Logger:
    """
    Logger writing JSON lines to stderr. Idempotent: repeated calls reuse
    the handler installed by the first one.
    """
    structured = logging.getLogger(name)
    if not any(isinstance(h.formatter, JsonLogFormatter) for h in structured.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JsonLogFormatter())
        structured.addHandler(handler)
        structured.propagate = False
    structured.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    return structured


logger = get_structured_logger("api_logger")


def _route_template(request: Request) -> str:
    # Matched route template ("/api/team/members/{user_id}"), so ids do
    # not explode log cardinality.
    return getattr(request.scope.get("route"), "path", None) or request.url.path


def _log_request(request: Request, started: float, status_code: int, error_code: str | None) -> dict[str, Any]:
    actor = getattr(request.state, "actor", None)
    return {
        "request_id": getattr(request.state, "request_id", None),
        "organization_id": getattr(actor, "organization_id", None),
        "user_id": getattr(actor, "id", None),
        "route": _route_template(request),
        "path": request.url.path,
        "method": request.method,
        "status_code": status_code,
        "duration_ms": round((monotonic() - started) * 1000.0, 2),
        "error_code": error_code,
    }


class APILoggingMiddleware(BaseHTTPMiddleware):
    """One request.completed (or request.failed) line per request."""

    async def dispatch(self, request: Request, call_next):
        started = monotonic()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("request.failed", extra=_log_request(request, started, 500, "unhandled_exception"))
            raise
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "request.completed",
            extra=_log_request(request, started, response.status_code, response.headers.get("X-Error-Code")),
        )
        return response
