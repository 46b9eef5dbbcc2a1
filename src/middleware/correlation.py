# src/middleware/correlation.py
"""
Correlation ID Middleware
Ensures every request/response carries a traceable correlation ID, and every
log record emitted while handling it is tagged with that ID.
"""

import uuid
import logging
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Context variable for correlation ID (thread-safe for async)
correlation_id_var: ContextVar[str] = ContextVar('correlation_id', default='no-corr-id')


def get_correlation_id() -> str:
    """Get current correlation ID from context"""
    return correlation_id_var.get()


def generate_correlation_id() -> str:
    """Generate a new correlation ID"""
    return f"corr-{uuid.uuid4().hex[:12]}"


class CorrelationIdFilter(logging.Filter):
    """Logging filter to inject correlation ID into log records"""

    def filter(self, record):
        record.correlation_id = get_correlation_id()
        return True


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware that ensures every request has a correlation ID.

    The incoming X-Correlation-ID header is reused when present so an upstream
    gateway can stitch its own logs to ours.
    """

    HEADER_NAME = "X-Correlation-ID"

    async def dispatch(self, request: Request, call_next) -> Response:
        corr_id = request.headers.get(self.HEADER_NAME)
        if not corr_id:
            corr_id = generate_correlation_id()

        token = correlation_id_var.set(corr_id)

        try:
            response = await call_next(request)
            response.headers[self.HEADER_NAME] = corr_id
            return response
        finally:
            correlation_id_var.reset(token)
