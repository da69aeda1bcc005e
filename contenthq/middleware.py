"""
Custom middleware for security headers and request logging.
"""
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .logging_config import api_logger, redact_tokens


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        # Approval URLs carry the token; keep it out of Referer headers
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"

        # Approval decisions must never be served from a shared cache
        if request.url.path.startswith("/api/approvals/"):
            response.headers["Cache-Control"] = "no-store"

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log requests with approval tokens redacted."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        path = redact_tokens(request.url.path)
        level = "info" if response.status_code < 400 else "warning" if response.status_code < 500 else "error"
        getattr(api_logger, level)(
            f"{request.method} {path} -> {response.status_code}",
            method=request.method,
            path=path,
            status_code=response.status_code,
            duration_ms=round(process_time * 1000, 2),
        )

        response.headers["X-Process-Time"] = str(process_time)
        return response
