"""HTTP middleware: CORS plus request correlation and access logging."""

import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from kanvaro.core.config import settings

logger = logging.getLogger("kanvaro.access")

REQUEST_ID_HEADER = "X-Request-Id"

# Streams stay open for minutes; timing them is meaningless.
UNTIMED_PREFIXES = ("/api/notifications/stream",)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Tags each request with a correlation id and writes one access line."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = correlation_id
        path = request.url.path
        started = time.perf_counter()

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = correlation_id

        if path.startswith(UNTIMED_PREFIXES):
            logger.info("[%s] %s %s stream opened", correlation_id[:8], request.method, path)
            return response

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Response-Time-Ms"] = f"{elapsed_ms:.2f}"
        log = logger.warning if response.status_code >= 500 else logger.info
        log("[%s] %s %s -> %d in %.1fms", correlation_id[:8], request.method, path,
            response.status_code, elapsed_ms)
        return response


def setup_middleware(app: FastAPI) -> None:
    # Added last runs first, so access logging wraps CORS handling.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(AccessLogMiddleware)
