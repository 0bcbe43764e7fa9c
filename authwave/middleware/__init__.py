"""Middleware modules for production-ready features"""
from authwave.middleware.monitoring import (
    MonitoringMiddleware,
    record_auth_failure,
    record_cascade,
    record_security_event,
    record_session_created,
)
from authwave.middleware.rate_limit import limiter

__all__ = [
    "MonitoringMiddleware",
    "record_auth_failure",
    "record_cascade",
    "record_security_event",
    "record_session_created",
    "limiter",
]
