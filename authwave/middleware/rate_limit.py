"""Rate limiting middleware for API protection"""
import hashlib

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from authwave.config import settings


def get_identifier(request: Request) -> str:
    """
    Get identifier for rate limiting

    Priority:
    1. Project key (end-user traffic of one tenant)
    2. IP address (admin console and unauthenticated requests)
    """
    project_key = request.headers.get("x-project-key")
    if project_key:
        digest = hashlib.sha256(project_key.encode()).hexdigest()[:16]
        return f"project:{digest}:{get_remote_address(request)}"

    return get_remote_address(request)


# Create limiter instance
limiter = Limiter(
    key_func=get_identifier,
    default_limits=settings.RATE_LIMIT_DEFAULT,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)
