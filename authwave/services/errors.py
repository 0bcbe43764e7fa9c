"""Error kinds raised by the core services.

Every error carries a stable ``kind``, the HTTP ``status_code`` it maps to and a
human-readable ``message``. ``details`` holds structured context such as a list
of validation errors; it never contains stack traces.
"""
from typing import Any, Optional


class ApiError(Exception):
    """Base class for errors surfaced to callers."""

    status_code: int = 500
    kind: str = "SERVER_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message, "details": self.details}


class InvalidFormat(ApiError):
    """Malformed or missing input."""
    status_code = 400
    kind = "INVALID_FORMAT"


class ValidationError(ApiError):
    """Well-formed input that is semantically invalid (e.g. a reversed date range)."""
    status_code = 400
    kind = "VALIDATION_ERROR"


class AlreadyExists(ApiError):
    status_code = 400
    kind = "ALREADY_EXISTS"


class TokenInvalid(ApiError):
    status_code = 401
    kind = "TOKEN_INVALID"


class TokenExpired(ApiError):
    status_code = 401
    kind = "TOKEN_EXPIRED"


class RefreshTokenInvalid(ApiError):
    status_code = 401
    kind = "REFRESH_TOKEN_INVALID"


class RefreshTokenExpired(ApiError):
    status_code = 401
    kind = "REFRESH_TOKEN_EXPIRED"


class IncorrectPassword(ApiError):
    status_code = 401
    kind = "INCORRECT_PASSWORD"


class InvalidApiKey(ApiError):
    """Project key missing, forged, or rotated out."""
    status_code = 401
    kind = "INVALID_API_KEY"


class PermissionDenied(ApiError):
    status_code = 403
    kind = "ADMIN_PERMISSION_REQUIRED"


class LoginMethodDisabled(ApiError):
    status_code = 403
    kind = "LOGIN_METHOD_DISABLED"


class NotFound(ApiError):
    status_code = 404
    kind = "NOT_FOUND"


class ApiLimitExceeded(ApiError):
    """A project's user or session cap was reached."""
    status_code = 429
    kind = "API_LIMIT_EXCEEDED"


class DatabaseError(ApiError):
    """Storage unavailable or a write failed. Never retried by the core."""
    status_code = 500
    kind = "DATABASE_ERROR"


class CascadeIncomplete(ApiError):
    """A bulk cascade finished with per-item failures (listed in ``details``)."""
    status_code = 500
    kind = "CASCADE_INCOMPLETE"


__all__ = [
    "ApiError",
    "InvalidFormat",
    "ValidationError",
    "AlreadyExists",
    "TokenInvalid",
    "TokenExpired",
    "RefreshTokenInvalid",
    "RefreshTokenExpired",
    "IncorrectPassword",
    "InvalidApiKey",
    "PermissionDenied",
    "LoginMethodDisabled",
    "NotFound",
    "ApiLimitExceeded",
    "DatabaseError",
    "CascadeIncomplete",
]
