"""
Access log for the bookstore API.

One line per request, tagged with a request id that is echoed back in the
``X-Request-ID`` header. Health checks from the load balancer are not
logged. Credentials in request bodies never reach the log.
"""

import time
import uuid
import json
import logging
from typing import Optional, Callable, Set, Any
from dataclasses import dataclass, field
from contextvars import ContextVar

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

logger = logging.getLogger("bookstore.api.access")

REDACTED = "[REDACTED]"

# First path segment -> area of the store, used to group log lines
AREAS = {
    "auth": "auth",
    "genre": "catalog",
    "books": "catalog",
    "transactions": "orders",
}


@dataclass
class LoggingConfig:
    """Access log settings."""

    enabled: bool = True

    # Bodies are only logged in debug mode
    log_request_body: bool = False
    max_body_log_size: int = 4096

    excluded_paths: Set[str] = field(default_factory=lambda: {"/health", "/health-check"})

    # Register and login bodies carry passwords
    redacted_fields: Set[str] = field(default_factory=lambda: {"password", "hashed_password", "token"})

    slow_request_threshold: float = 1.0

    request_id_header: str = "X-Request-ID"


class StructuredLogFormatter(logging.Formatter):
    """JSON lines for non-development environments."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = request_id_var.get()
        if request_id:
            entry["request_id"] = request_id
        for attr in ("area", "request", "status_code", "duration_ms"):
            if hasattr(record, attr):
                entry[attr] = getattr(record, attr)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _redact(data: Any, fields: Set[str]) -> Any:
    if isinstance(data, dict):
        return {k: REDACTED if k.lower() in fields else _redact(v, fields) for k, v in data.items()}
    if isinstance(data, list):
        return [_redact(item, fields) for item in data]
    return data


def area_for(path: str) -> str:
    segment = path.strip("/").split("/", 1)[0]
    return AREAS.get(segment, "system")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assigns request ids and writes the access log."""

    def __init__(self, app: FastAPI, config: Optional[LoggingConfig] = None):
        super().__init__(app)
        self.config = config or LoggingConfig()

    def _level_for(self, status_code: int, duration: float) -> int:
        if status_code >= 500:
            return logging.ERROR
        if status_code >= 400 or duration > self.config.slow_request_threshold:
            return logging.WARNING
        return logging.INFO

    async def body_for_log(self, request: Request) -> Optional[str]:
        body = await request.body()
        if not body:
            return None
        if len(body) > self.config.max_body_log_size:
            return f"<{len(body)} bytes>"
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return "<non-json body>"
        return json.dumps(_redact(parsed, self.config.redacted_fields))

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.config.request_id_header) or uuid.uuid4().hex[:12]
        request_id_var.set(request_id)

        path = request.url.path
        if not self.config.enabled or path in self.config.excluded_paths:
            response = await call_next(request)
            response.headers[self.config.request_id_header] = request_id
            return response

        details = {"method": request.method, "path": path}
        if request.url.query:
            details["query"] = request.url.query
        if self.config.log_request_body and request.method in ("POST", "PATCH"):
            body = await self.body_for_log(request)
            if body:
                details["body"] = body

        started = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - started
        response.headers[self.config.request_id_header] = request_id

        duration_ms = round(duration * 1000, 2)
        message = f"{request.method} {path} -> {response.status_code} ({duration_ms}ms)"
        if duration > self.config.slow_request_threshold:
            message = f"[SLOW] {message}"

        logger.log(
            self._level_for(response.status_code, duration),
            message,
            extra={
                "area": area_for(path),
                "request": details,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response


def setup_logging(
    app: FastAPI,
    config: Optional[LoggingConfig] = None,
    structured: bool = True,
) -> None:
    """
    Install the access log middleware.

    Args:
        app: FastAPI application instance.
        config: Access log settings.
        structured: Emit JSON lines from the ``bookstore`` logger tree.
    """
    if structured:
        root = logging.getLogger("bookstore")
        if not any(isinstance(h.formatter, StructuredLogFormatter) for h in root.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(StructuredLogFormatter())
            root.addHandler(handler)
        root.setLevel(logging.INFO)

    app.add_middleware(RequestLoggingMiddleware, config=config or LoggingConfig())
