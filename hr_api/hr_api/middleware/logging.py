"""Access logging and request correlation for the LASZ HR API.

Every HTTP request gets a correlation id: the caller's ``X-Correlation-ID``
when it sends one, otherwise a fresh UUID-4.  The id is echoed on the
response and held in a context variable for the lifetime of the request,
so a webhook's reconciliation log lines and its access record can be
joined.  :class:`CorrelationIdFilter` copies it onto every log record.
"""

from __future__ import annotations

import contextvars
import logging
import time
import uuid
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

access_logger = logging.getLogger("hr_api.access")

CORRELATION_HEADER = "X-Correlation-ID"

# Session cookies, bearer tokens, Stripe signatures and the internal token.
_MASKED_HEADERS = frozenset({"authorization", "cookie", "stripe-signature", "x-internal-token"})

_correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Return the current request's correlation id, or ``""`` outside one."""
    return _correlation_id_var.get()


def _loggable_headers(request: Request) -> dict[str, str]:
    return {name: ("***" if name.lower() in _MASKED_HEADERS else value) for name, value in request.headers.items()}


def _access_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class CorrelationIdFilter(logging.Filter):
    """Stamp ``correlation_id`` onto records emitted during a request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "correlation_id", None):
            record.correlation_id = _correlation_id_var.get() or None  # type: ignore[attr-defined]
        return True


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Emit one ``hr_api.access`` record per request.

    The record's ``request`` extra holds method, path, query, status,
    duration, client address, correlation id and the masked headers.
    4xx responses log at WARNING and 5xx (or an escaped exception) at ERROR.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        token = _correlation_id_var.set(correlation_id)
        request.state.correlation_id = correlation_id

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[CORRELATION_HEADER] = correlation_id
            return response
        finally:
            entry: dict[str, Any] = {
                "method": request.method,
                "path": request.url.path,
                "query": request.url.query or None,
                "status_code": status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "client": request.client.host if request.client else None,
                "correlation_id": correlation_id,
                "headers": _loggable_headers(request),
            }
            access_logger.log(
                _access_level(status_code),
                "%s %s -> %d",
                request.method,
                request.url.path,
                status_code,
                extra={"request": entry},
            )
            _correlation_id_var.reset(token)
