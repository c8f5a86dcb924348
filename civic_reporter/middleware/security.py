"""
Security middleware for FastAPI application.

Implements the HTTP-level controls that sit in front of the API:
- Security headers (OWASP recommended)
- Request size limits
- Rate limiting, stricter for issue submission
- Request logging (sanitized)

Staff authentication is a route dependency (see civic_reporter.api.deps),
so public citizen endpoints and staff endpoints can share a prefix.
"""

import time
import logging
from typing import Dict, Callable
from collections import defaultdict
from datetime import datetime, timedelta

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.datastructures import Headers

from civic_reporter.config import settings

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses.

    Implements OWASP recommended security headers:
    - X-Content-Type-Options: Prevent MIME type sniffing
    - X-Frame-Options: Prevent clickjacking
    - Strict-Transport-Security: Force HTTPS connections (production only)
    - Content-Security-Policy: Control resource loading
    - Referrer-Policy: Control referrer information
    - Permissions-Policy: Control browser features
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"

        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )

        # Issue photos and map tiles come from https origins
        csp_directives = [
            "default-src 'self'",
            "script-src 'self'",
            "style-src 'self' 'unsafe-inline'",
            "img-src 'self' data: https:",
            "font-src 'self' data:",
            "connect-src 'self'",
            "frame-ancestors 'none'",
            "base-uri 'self'",
            "form-action 'self'",
        ]
        response.headers["Content-Security-Policy"] = "; ".join(csp_directives)

        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Geolocation stays enabled for same-origin issue reporting
        permissions_policy = [
            "geolocation=(self)",
            "microphone=()",
            "camera=()",
            "payment=()",
            "usb=()",
        ]
        response.headers["Permissions-Policy"] = ", ".join(permissions_policy)

        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Limit request body size.

    Default limit: 1MB (configurable via MAX_REQUEST_SIZE)
    """

    def __init__(self, app, max_size: int = 1024 * 1024):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Check Content-Length and reject oversized or malformed bodies."""
        content_length = request.headers.get("content-length")

        if content_length:
            try:
                size = int(content_length)
            except ValueError:
                return JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={"detail": "Invalid Content-Length header"}
                )

            if size > self.max_size:
                logger.warning(
                    f"Request size {size} exceeds limit {self.max_size} "
                    f"from {request.client.host if request.client else 'unknown'}"
                )
                return JSONResponse(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    content={
                        "detail": f"Request body too large. Maximum size: {self.max_size} bytes"
                    }
                )

        return await call_next(request)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting middleware using in-memory storage.

    Sliding one-minute window per client IP. Issue submission
    (POST /api/issues) has its own, stricter budget; every other API
    request counts against the general budget.

    Note: Limits are per process. Run behind a shared store for
    multi-worker deployments.
    """

    SUBMISSION = "submission"
    GENERAL = "general"

    EXEMPT_PATHS = {"/health", "/", "/docs", "/openapi.json", "/redoc"}

    def __init__(
        self,
        app,
        submission_requests_per_minute: int = 10,
        general_requests_per_minute: int = 100,
    ):
        """
        Initialize rate limiter.

        Args:
            app: FastAPI application
            submission_requests_per_minute: Limit for new issue submissions
            general_requests_per_minute: Limit for all other API requests
        """
        super().__init__(app)
        self.limits = {
            self.SUBMISSION: submission_requests_per_minute,
            self.GENERAL: general_requests_per_minute,
        }

        # {ip: [(timestamp, bucket), ...]}
        self.request_history: Dict[str, list] = defaultdict(list)

    def _clean_old_requests(self, ip: str, window_seconds: int = 60):
        """Remove requests older than the time window."""
        cutoff = datetime.now() - timedelta(seconds=window_seconds)
        self.request_history[ip] = [
            (ts, bucket)
            for ts, bucket in self.request_history[ip]
            if ts > cutoff
        ]

    def _bucket(self, request: Request) -> str:
        path = request.url.path.rstrip("/")
        if request.method == "POST" and path == "/api/issues":
            return self.SUBMISSION
        return self.GENERAL

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Apply rate limiting based on request bucket."""
        client_ip = request.client.host if request.client else "unknown"

        if request.url.path in self.EXEMPT_PATHS:
            return await call_next(request)

        bucket = self._bucket(request)
        limit = self.limits[bucket]

        self._clean_old_requests(client_ip)

        recent_requests = [
            ts for ts, b in self.request_history[client_ip] if b == bucket
        ]

        if len(recent_requests) >= limit:
            logger.warning(
                f"Rate limit exceeded for {client_ip} on "
                f"{bucket} bucket: {request.method} {request.url.path}"
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": f"Rate limit exceeded. Maximum {limit} requests per minute."
                },
                headers={
                    "Retry-After": "60",
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                }
            )

        self.request_history[client_ip].append((datetime.now(), bucket))

        response = await call_next(request)
        remaining = limit - len(recent_requests) - 1
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, remaining))

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log all requests with sanitization of sensitive data.

    Logs:
    - Request method, path, client IP
    - Response status and duration
    - Does NOT log: staff passwords, tokens, API keys
    """

    SENSITIVE_HEADERS = {
        "authorization",
        "x-staff-password",
        "x-api-key",
        "cookie",
    }

    SKIPPED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def _sanitize_headers(self, headers: Headers) -> Dict[str, str]:
        """Sanitize sensitive headers for logging."""
        sanitized = {}
        for key, value in headers.items():
            if key.lower() in self.SENSITIVE_HEADERS:
                sanitized[key] = "***REDACTED***"
            else:
                sanitized[key] = value
        return sanitized

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Log request and response with timing."""
        start_time = time.time()

        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path

        if path in self.SKIPPED_PATHS:
            return await call_next(request)

        logger.info(f"Request: {method} {path} from {client_ip}")
        logger.debug(f"Headers: {self._sanitize_headers(request.headers)}")

        try:
            response = await call_next(request)
            duration_ms = (time.time() - start_time) * 1000

            logger.info(
                f"Response: {method} {path} -> {response.status_code} "
                f"({duration_ms:.2f}ms)"
            )

            response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

            return response

        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Error: {method} {path} -> {type(e).__name__}: {str(e)} "
                f"({duration_ms:.2f}ms)"
            )
            raise


def get_request_size_limit() -> int:
    """Maximum request size in bytes, from settings."""
    return settings.MAX_REQUEST_SIZE


def get_rate_limits() -> Dict[str, int]:
    """
    Get rate limits from settings.

    Returns:
        Dictionary with submission_limit and general_limit
    """
    return {
        "submission_limit": settings.SUBMISSION_RATE_LIMIT,
        "general_limit": settings.GENERAL_RATE_LIMIT,
    }
