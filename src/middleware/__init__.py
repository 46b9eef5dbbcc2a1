# src/middleware/__init__.py
"""DesignDesk Middleware Package"""

from .correlation import CorrelationIdMiddleware, CorrelationIdFilter, get_correlation_id, correlation_id_var

__all__ = ["CorrelationIdMiddleware", "CorrelationIdFilter", "get_correlation_id", "correlation_id_var"]
