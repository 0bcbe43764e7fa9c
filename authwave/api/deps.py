"""API dependencies for authentication and project resolution.

Credentials
-----------
- ``Authorization: Bearer <token>`` carries an access token (or, on the refresh
  endpoints, a refresh token).
- ``X-Project-Key: <key>`` selects the project for project-scoped requests.

Admin endpoints that operate on a project need both: the admin's access token
and the key of a project that admin owns.
"""
from typing import NamedTuple, Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from authwave.database import get_db
from authwave.models.admin import Admin
from authwave.models.project import Project
from authwave.models.session import SESSION_KIND_ADMIN, SESSION_KIND_USER, Session as SessionRecord
from authwave.models.user import User
from authwave.services import accounts, projects, sessions
from authwave.services.errors import (
    InvalidApiKey,
    NotFound,
    PermissionDenied,
    RefreshTokenInvalid,
    TokenInvalid,
)

_bearer_scheme = HTTPBearer(auto_error=False)


class AdminContext(NamedTuple):
    """Authenticated admin, populated by :func:`require_admin`."""
    admin: Admin
    session: SessionRecord


class UserContext(NamedTuple):
    """Authenticated project user, populated by :func:`require_user`."""
    user: User
    session: SessionRecord


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _authenticated_session(
    credentials: Optional[HTTPAuthorizationCredentials],
    db: Session,
) -> SessionRecord:
    if not credentials:
        raise TokenInvalid("Authentication required. Provide Authorization: Bearer <token>.")
    return sessions.authenticate(db, credentials.credentials)


# ---------------------------------------------------------------------------
# Admins
# ---------------------------------------------------------------------------

def require_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> AdminContext:
    """Require an admin access token bound to a live admin session."""
    session = _authenticated_session(credentials, db)
    if session.kind != SESSION_KIND_ADMIN:
        raise PermissionDenied("Admin token required")

    try:
        admin = accounts.get_admin(db, session.admin_id)
    except NotFound:
        raise TokenInvalid("Admin account no longer exists")
    return AdminContext(admin=admin, session=session)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

def require_project(
    x_project_key: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Project:
    """Resolve the project named by the ``X-Project-Key`` header."""
    if not x_project_key:
        raise InvalidApiKey("Project key required. Provide the X-Project-Key header.")
    return projects.resolve_project_key(db, x_project_key)


def require_owned_project(
    ctx: AdminContext = Depends(require_admin),
    project: Project = Depends(require_project),
) -> Project:
    """Require an admin token together with the key of a project the admin owns."""
    if project.owner_id != ctx.admin.admin_id:
        raise PermissionDenied("Only the owner of a project can manage it")
    return project


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def require_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    db: Session = Depends(get_db),
) -> UserContext:
    """Require a user access token bound to a live user session."""
    session = _authenticated_session(credentials, db)
    if session.kind != SESSION_KIND_USER:
        raise TokenInvalid("User token required")

    try:
        user = accounts.get_user(db, session.project_id, session.user_id)
    except NotFound:
        raise TokenInvalid("User account no longer exists")
    return UserContext(user=user, session=session)


def require_refresh_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> str:
    """Return the refresh token presented as the bearer credential."""
    if not credentials:
        raise RefreshTokenInvalid("Refresh token required. Provide Authorization: Bearer <refresh token>.")
    return credentials.credentials
