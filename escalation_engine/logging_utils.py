"""Structured logging and request-scoped ASGI middleware.

Every log line can carry the id of the HTTP request that produced it; the id
is taken from an incoming ``X-Request-ID`` header or generated, and echoed on
the response.
"""

import json
import logging
import os
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

REQUEST_ID_HEADER = b"x-request-id"
request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# LogRecord attributes copied into the JSON payload when a caller passes them via ``extra``
EXTRA_FIELDS = (
    "path",
    "method",
    "status_code",
    "latency_ms",
    "operation",
    "post_id",
    "user_id",
    "likelihood",
    "level",
)

_TRUTHY = {"1", "true", "yes", "on"}


def get_request_id() -> Optional[str]:
    return request_id_ctx_var.get()


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line; ``level`` in ``extra`` is the escalation level, not the log level."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "severity": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "time": int(record.created * 1000),
        }
        request_id = get_request_id()
        if request_id:
            payload["request_id"] = request_id
        payload.update({key: getattr(record, key) for key in EXTRA_FIELDS if hasattr(record, key)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: Optional[str] = None, structured: Optional[bool] = None) -> None:
    """Install a single stdout handler on the root logger.

    Falls back to the ``LOG_LEVEL`` and ``STRUCTURED_LOGS`` environment
    variables when arguments are omitted.
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    if structured is None:
        structured = os.getenv("STRUCTURED_LOGS", "true").lower() in _TRUTHY

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        JsonLogFormatter() if structured
        else logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    # request completion is logged by RequestIDMiddleware
    logging.getLogger("uvicorn.access").handlers = []


def _header(scope, name: bytes) -> Optional[str]:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return None


class RequestIDMiddleware:
    def __init__(self, app):
        self.app = app
        self.logger = logging.getLogger("escalation_engine.request")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        request_id = _header(scope, REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = request_id_ctx_var.set(request_id)
        started = time.perf_counter()

        async def send_with_id(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", []).append((REQUEST_ID_HEADER, request_id.encode("latin-1")))
                self.logger.info(
                    "%s %s -> %s",
                    scope.get("method"),
                    scope.get("path"),
                    message.get("status"),
                    extra={
                        "path": scope.get("path"),
                        "method": scope.get("method"),
                        "status_code": message.get("status"),
                        "latency_ms": round((time.perf_counter() - started) * 1000, 1),
                    },
                )
            await send(message)

        try:
            await self.app(scope, receive, send_with_id)
        finally:
            request_id_ctx_var.reset(token)


class MaxBodySizeMiddleware:
    """Reject request bodies larger than ``max_bytes`` with a 413.

    A declared ``Content-Length`` over the limit is refused before reading;
    otherwise the body is buffered up to the limit and replayed downstream.
    """

    TOO_LARGE = json.dumps({"detail": "Request body too large", "code": "HTTP_413"}).encode()

    def __init__(self, app, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def _reject(self, send):
        await send({
            "type": "http.response.start",
            "status": 413,
            "headers": [(b"content-type", b"application/json")],
        })
        await send({"type": "http.response.body", "body": self.TOO_LARGE})

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = _header(scope, b"content-length")
        if declared and declared.isdigit() and int(declared) > self.max_bytes:
            await self._reject(send)
            return

        body = bytearray()
        while True:
            message = await receive()
            if message["type"] != "http.request":
                # client went away before the body completed
                async def passthrough(message=message):
                    return message

                await self.app(scope, passthrough, send)
                return
            body.extend(message.get("body", b""))
            if len(body) > self.max_bytes:
                await self._reject(send)
                return
            if not message.get("more_body", False):
                break

        buffered = {"type": "http.request", "body": bytes(body), "more_body": False}

        async def replay():
            return buffered

        await self.app(scope, replay, send)
