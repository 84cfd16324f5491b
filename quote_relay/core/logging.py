"""JSON-lines logging with a per-request id.

One line per record on stdout: level, message, logger, UTC time with
milliseconds, the request id of the request being served ("-" outside one),
plus whichever structured fields the caller passed via ``extra=``.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Structured fields callers may pass via `extra=`
_EXTRA_FIELDS = ("stage", "elapsed_ms", "record_id", "error", "status_code")


class RequestContextFilter(logging.Filter):
    """Stamps each record with the current request id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get() or "-"
        return True


def _timestamp(created: float) -> str:
    stamp = datetime.fromtimestamp(created, tz=timezone.utc)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonLineFormatter(logging.Formatter):
    def _payload(self, record: logging.LogRecord) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "time": _timestamp(record.created),
            "level": record.levelname,
            "logger": record.name,
            "request_id": getattr(record, "request_id", "-"),
            "message": record.getMessage(),
        }
        payload.update(
            (name, getattr(record, name))
            for name in _EXTRA_FIELDS
            if getattr(record, name, None) is not None
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return payload

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(self._payload(record), ensure_ascii=False, default=str)


def init_logging(debug: bool = False, stream: Optional[TextIO] = None) -> None:
    """Route every logger through one JSON-lines handler on the root."""
    level = logging.DEBUG if debug else logging.INFO
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(JsonLineFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)


async def request_context_middleware(request, call_next):  # type: ignore
    # The downstream app (background tasks included) runs with a copy of this
    # context, so deferred persistence logs keep the request id.
    rid = request.headers.get("x-request-id") or uuid.uuid4().hex
    token = request_id_ctx.set(rid)
    logger = logging.getLogger("quote_relay.request")
    started = time.monotonic()
    logger.debug("request start %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        response.headers["x-request-id"] = rid
        logger.info(
            "request end %s %s",
            request.method,
            request.url.path,
            extra={
                "status_code": response.status_code,
                "elapsed_ms": round((time.monotonic() - started) * 1000, 1),
            },
        )
        return response
    finally:
        request_id_ctx.reset(token)
