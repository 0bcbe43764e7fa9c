"""Security log endpoints"""
from datetime import datetime
from typing import NamedTuple, Optional

from fastapi import APIRouter, Depends, Header, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from authwave.api.deps import (
    UserContext,
    require_admin,
    require_owned_project,
    require_project,
    require_user,
)
from authwave.config import settings
from authwave.database import get_db
from authwave.models.project import Project
from authwave.models.session import SESSION_KIND_ADMIN
from authwave.schemas.security_log import SecurityLogPage, SecurityLogResponse
from authwave.services import security_log, sessions
from authwave.services.errors import TokenInvalid
from authwave.services.security_log import LogPage

router = APIRouter(prefix="/logs", tags=["logs"])

_bearer_scheme = HTTPBearer(auto_error=False)


class LogScope(NamedTuple):
    project_id: str
    user_id: Optional[str]   # None = admin caller, user id comes from the query


def require_log_scope(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    x_project_key: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> LogScope:
    """Accept either an admin token with a project key, or a user token.

    Users can only read their own events; admins read any user of a project they own.
    """
    if not credentials:
        raise TokenInvalid("Authentication required. Provide Authorization: Bearer <token>.")

    session = sessions.authenticate(db, credentials.credentials)
    if session.kind == SESSION_KIND_ADMIN:
        ctx = require_admin(credentials, db)
        project = require_owned_project(ctx, require_project(x_project_key, db))
        return LogScope(project_id=project.project_id, user_id=None)

    user_ctx = require_user(credentials, db)
    return LogScope(project_id=user_ctx.user.project_id, user_id=user_ctx.user.user_id)


def _page(result: LogPage) -> SecurityLogPage:
    return SecurityLogPage(
        logs=[SecurityLogResponse.model_validate(item) for item in result.items],
        page=result.page,
        page_size=result.page_size,
        total=result.total,
    )


@router.get("/user", response_model=SecurityLogPage)
def logs_by_user(
    user_id: Optional[str] = Query(None, description="User to query (admin callers only)"),
    page: int = Query(1, description="1-indexed page number"),
    page_size: int = Query(settings.LOG_QUERY_DEFAULT_PAGE_SIZE, description="Events per page"),
    start_date: Optional[datetime] = Query(None, description="Earliest event time (ISO 8601)"),
    end_date: Optional[datetime] = Query(None, description="Latest event time (ISO 8601)"),
    db: Session = Depends(get_db),
    scope: LogScope = Depends(require_log_scope),
):
    """
    Security events of one user, newest first

    - Admin (with X-Project-Key): pass ``user_id``.
    - User: always their own events (``user_id`` ignored).
    """
    target = scope.user_id or user_id
    result = security_log.query_by_user(
        db, scope.project_id, target, page=page, page_size=page_size,
        start_date=start_date, end_date=end_date,
    )
    return _page(result)


@router.get("/event", response_model=SecurityLogPage)
def logs_by_event(
    event_code: str = Query(..., description="Event code, e.g. LOGIN"),
    page: int = Query(1, description="1-indexed page number"),
    page_size: int = Query(settings.LOG_QUERY_DEFAULT_PAGE_SIZE, description="Events per page"),
    start_date: Optional[datetime] = Query(None, description="Earliest event time (ISO 8601)"),
    end_date: Optional[datetime] = Query(None, description="Latest event time (ISO 8601)"),
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    """Project-wide events of one kind (Admin + X-Project-Key)"""
    result = security_log.query_by_event(
        db, project.project_id, event_code, page=page, page_size=page_size,
        start_date=start_date, end_date=end_date,
    )
    return _page(result)


@router.get("/user/event", response_model=SecurityLogPage)
def logs_by_user_and_event(
    event_code: str = Query(..., description="Event code, e.g. LOGIN"),
    page: int = Query(1, description="1-indexed page number"),
    page_size: int = Query(settings.LOG_QUERY_DEFAULT_PAGE_SIZE, description="Events per page"),
    start_date: Optional[datetime] = Query(None, description="Earliest event time (ISO 8601)"),
    end_date: Optional[datetime] = Query(None, description="Latest event time (ISO 8601)"),
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(require_user),
):
    """The calling user's own events of one kind"""
    result = security_log.query_by_user_and_event(
        db, ctx.user.project_id, ctx.user.user_id, event_code, page=page, page_size=page_size,
        start_date=start_date, end_date=end_date,
    )
    return _page(result)
