"""HTTP middleware: request tracing and response hardening."""

import logging
import time
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from akwanda.config import settings

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID and log its outcome and duration.

    Settlement retries are logged with their ``Idempotency-Key`` so a
    replayed payment can be traced back to the first attempt.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        response = await call_next(request)

        elapsed = time.perf_counter() - started
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        idempotency_key = request.headers.get("Idempotency-Key")
        logger.log(
            level,
            "%s %s -> %s in %.3fs [%s]%s",
            request.method,
            request.url.path,
            response.status_code,
            elapsed,
            request_id,
            f" idempotency_key={idempotency_key}" if idempotency_key else "",
        )
        if elapsed > SLOW_REQUEST_SECONDS:
            logger.warning("Slow request %s %s: %.3fs", request.method, request.url.path, elapsed)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add hardening headers; API responses carry account data and are never cached."""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "no-referrer",
    }

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        response = await call_next(request)
        response.headers.update(self.HEADERS)
        if request.url.path.startswith(settings.api_prefix):
            response.headers["Cache-Control"] = "no-store"
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response
