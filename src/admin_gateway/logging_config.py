import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from admin_gateway.config import settings

logger = logging.getLogger("admin_gateway")

REQUEST_ID_HEADER = "X-Request-ID"

# Probes and the welcome page are too chatty to log per request.
QUIET_PATHS = frozenset({"/", "/health"})

# ``extra=`` keys the gateway attaches to records; copied into JSON output.
STRUCTURED_FIELDS = ("security_event", "http", "pf_payment_id", "outcome")

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return _request_id.get()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags the request (and its response) with a correlation id."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = _request_id.set(request_id)
        try:
            response = await call_next(request)
        finally:
            _request_id.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for the production log shipper."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": "admin_gateway",
            "environment": settings.ENVIRONMENT.value,
        }
        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            entry["request_id"] = request_id
        for key in STRUCTURED_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(app: FastAPI) -> None:
    """Plain text locally, JSON in production. Also installs the request-id middleware."""
    log_level = getattr(logging, settings.LOGGING_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if settings.is_production():
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s")
        )
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # supabase and the mail relay log every HTTP round trip through httpx.
    for noisy in ("uvicorn.access", "httpx", "httpcore", "hpack"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    app.add_middleware(RequestIdMiddleware)
    logger.info(
        f"Logging configured for {settings.ENVIRONMENT.value} at {settings.LOGGING_LEVEL}"
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request; 4xx at WARNING and 5xx at ERROR."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"{request.method} {request.url.path} raised")
            raise

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(
            level,
            f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms} ms)",
            extra={
                "http": {
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                    "client_host": request.client.host if request.client else None,
                }
            },
        )
        return response
