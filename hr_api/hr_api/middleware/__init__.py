"""Middleware components for the LASZ HR API."""

from __future__ import annotations

from hr_api.middleware.json_formatter import JSONFormatter
from hr_api.middleware.logging import RequestLoggingMiddleware
from hr_api.middleware.login_rate_limiter import LoginRateLimiter

__all__ = [
    "JSONFormatter",
    "LoginRateLimiter",
    "RequestLoggingMiddleware",
]
