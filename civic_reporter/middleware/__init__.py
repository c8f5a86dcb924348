"""
Middleware module for FastAPI application.

Exports all middleware classes for easy import.
"""

from civic_reporter.middleware.security import (
    SecurityHeadersMiddleware,
    RequestSizeLimitMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    get_request_size_limit,
    get_rate_limits,
)

__all__ = [
    "SecurityHeadersMiddleware",
    "RequestSizeLimitMiddleware",
    "RateLimitMiddleware",
    "RequestLoggingMiddleware",
    "get_request_size_limit",
    "get_rate_limits",
]
