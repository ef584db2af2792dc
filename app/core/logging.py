"""
Logging configuration for Malmungchi Backend

structlog on top of stdlib logging. Every event carries the request ID and,
once the identity middleware has run, the caller's user ID. Credential-like
fields are masked before rendering.
"""

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Optional

import structlog
from pythonjsonlogger import jsonlogger

from app.core.config import settings

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str] = ContextVar("user_id", default="")

REQUEST_ID_HEADER = b"x-request-id"
REDACTED = "***"
SENSITIVE_KEYS = frozenset({"password", "password_hash", "token", "access_token", "authorization"})

_HANDLER_NAME = "malmungchi"


def add_request_context(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Attach request and user IDs from the current context"""
    request_id = request_id_var.get()
    if request_id:
        event_dict.setdefault("request_id", request_id)
    user_id = user_id_var.get()
    if user_id:
        event_dict.setdefault("user_id", user_id)
    return event_dict


def redact_secrets(logger: Any, method_name: str, event_dict: dict) -> dict:
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def setup_logging() -> None:
    """Configure structured logging; safe to call more than once"""

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.is_production:
        formatter = jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for existing in [h for h in root_logger.handlers if h.get_name() == _HANDLER_NAME]:
        root_logger.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_request_context,
            redact_secrets,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(ensure_ascii=False)
            if settings.is_production
            else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_user(user_id: Optional[str]) -> None:
    user_id_var.set(user_id or "")


def _incoming_request_id(scope) -> Optional[str]:
    for key, value in scope.get("headers", []):
        if key.lower() == REQUEST_ID_HEADER:
            candidate = value.decode("latin-1").strip()
            # Client-supplied IDs are only trusted when short and printable
            if 0 < len(candidate) <= 64 and candidate.isprintable():
                return candidate
    return None


class RequestIDMiddleware:
    """Reuse the caller's X-Request-ID or mint one, and echo it back"""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = _incoming_request_id(scope) or str(uuid.uuid4())
        request_id_var.set(request_id)
        bind_user(None)

        async def send_with_request_id(message):
            if message["type"] == "http.response.start":
                headers = [
                    (k, v) for k, v in message.get("headers", []) if k.lower() != REQUEST_ID_HEADER
                ]
                headers.append((REQUEST_ID_HEADER, request_id.encode()))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_request_id)


class RequestLoggingMiddleware:
    """One start and one end event per HTTP request"""

    def __init__(self, app, skip_paths=("/",)):
        self.app = app
        self.skip_paths = frozenset(skip_paths)
        self.logger = get_logger("app.request")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope.get("path") in self.skip_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        status_code = None
        client = scope.get("client") or (None, None)
        method, path = scope.get("method"), scope.get("path")

        self.logger.debug("request.start", method=method, path=path, client_host=client[0])

        async def send_with_status(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status")
            await send(message)

        try:
            await self.app(scope, receive, send_with_status)
        except Exception as exc:
            self.logger.exception("request.error", method=method, path=path, error=str(exc))
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            status_code = status_code or 500
            log = self.logger.warning if status_code >= 500 else self.logger.info
            log(
                "request.end",
                method=method,
                path=path,
                status_code=status_code,
                duration_ms=round(duration_ms, 2),
                client_host=client[0],
            )


class LatencyLogger:
    """
    Time a block and log how long it took.

    Calls slower than slow_ms are logged at warning level, which is where
    provider slowdowns show up first.
    """

    def __init__(self, operation: str, logger: structlog.stdlib.BoundLogger, slow_ms: float = 10_000):
        self.operation = operation
        self.logger = logger
        self.slow_ms = slow_ms
        self.start_time = None
        self.latency_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.latency_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
        log = self.logger.warning if self.latency_ms > self.slow_ms else self.logger.info
        log(
            f"{self.operation}.completed",
            operation=self.operation,
            latency_ms=self.latency_ms,
            success=exc_type is None,
        )
