"""Monitoring and observability middleware"""
import time
from typing import Callable
from fastapi import Request, Response
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from authwave.utils.logger import logger


# ===== Prometheus Metrics =====

# Request metrics
http_requests_total = Counter(
    "authwave_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "authwave_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"]
)

http_errors_total = Counter(
    "authwave_http_errors_total",
    "Total HTTP errors",
    ["method", "endpoint", "status"]
)

# Domain metrics
sessions_created_total = Counter(
    "authwave_sessions_created_total",
    "Total sessions created",
    ["kind"]  # admin, user
)

authentication_failures_total = Counter(
    "authwave_authentication_failures_total",
    "Total authentication failures",
    ["kind", "reason"]
)

security_events_total = Counter(
    "authwave_security_events_total",
    "Total security log events appended",
    ["event_code"]
)

cascade_deletions_total = Counter(
    "authwave_cascade_deletions_total",
    "Project cascade deletions",
    ["outcome"]  # success, failure
)


class MonitoringMiddleware(BaseHTTPMiddleware):
    """Middleware for monitoring and metrics collection"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and collect metrics"""
        start_time = time.time()

        method = request.method
        endpoint = request.url.path

        # Add request ID for tracing
        request_id = request.headers.get("x-request-id", f"req_{int(time.time() * 1000)}")
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            status = response.status_code

            duration = time.time() - start_time
            http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status=status
            ).inc()

            http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint
            ).observe(duration)

            if duration > 1.0:
                logger.warning(
                    f"Slow request detected: {method} {endpoint}",
                    extra={
                        "request_id": request_id,
                        "action": "slow_request",
                    }
                )

            if status >= 400:
                http_errors_total.labels(
                    method=method,
                    endpoint=endpoint,
                    status=status
                ).inc()

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{duration:.3f}s"

            return response

        except Exception:
            http_errors_total.labels(
                method=method,
                endpoint=endpoint,
                status=500
            ).inc()

            logger.error(
                f"Request failed: {method} {endpoint}",
                extra={"request_id": request_id},
                exc_info=True
            )
            raise


def record_session_created(kind: str):
    """Record a newly created session"""
    sessions_created_total.labels(kind=kind).inc()


def record_auth_failure(kind: str, reason: str):
    """Record authentication failure"""
    authentication_failures_total.labels(kind=kind, reason=reason).inc()


def record_security_event(event_code: str):
    """Record an appended security log event"""
    security_events_total.labels(event_code=event_code).inc()


def record_cascade(outcome: str):
    """Record the outcome of one project cascade"""
    cascade_deletions_total.labels(outcome=outcome).inc()
