"""End-user account and session endpoints (project-scoped)"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.orm import Session

from authwave.api.deps import UserContext, require_project, require_refresh_token, require_user
from authwave.config import settings
from authwave.database import get_db
from authwave.middleware.rate_limit import limiter
from authwave.models.project import Project
from authwave.models.security_log import EventCode
from authwave.models.session import SESSION_KIND_USER
from authwave.schemas.session import (
    AccessTokenResponse,
    RevokedResponse,
    SessionResponse,
    TokenPairResponse,
    access_token,
    token_pair,
)
from authwave.schemas.user import UserCreate, UserLogin, UserResponse
from authwave.services import accounts, lifecycle, sessions

router = APIRouter(prefix="/user", tags=["users"])


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------

@router.post("/account", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def signup(
    data: UserCreate,
    db: Session = Depends(get_db),
    project: Project = Depends(require_project),
):
    """Create a user in the project named by X-Project-Key"""
    return accounts.create_user(db, project, data.email, data.password)


@router.get("/account", response_model=UserResponse)
def get_account(ctx: UserContext = Depends(require_user)):
    return ctx.user


@router.delete("/account", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(db: Session = Depends(get_db), ctx: UserContext = Depends(require_user)):
    """Delete the calling user and all of their sessions"""
    lifecycle.delete_user(db, ctx.user.project_id, ctx.user.user_id)
    return None


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@router.post("/session", response_model=TokenPairResponse)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
def login(
    request: Request,
    data: UserLogin,
    user_agent: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    project: Project = Depends(require_project),
):
    """
    Log in with email and password.

    Fails with API_LIMIT_EXCEEDED when the user already holds the project's
    maximum number of live sessions.
    """
    user = accounts.authenticate_user(db, project, data.email, data.password)
    issued = sessions.create_session(
        db, SESSION_KIND_USER, user.user_id, project=project, user_agent=user_agent
    )
    return token_pair(issued)


@router.post("/access-token/refresh", response_model=AccessTokenResponse)
def refresh_access_token(
    refresh_token: str = Depends(require_refresh_token),
    db: Session = Depends(get_db),
    project: Project = Depends(require_project),
):
    issued = sessions.refresh(db, refresh_token, kind=SESSION_KIND_USER, project_id=project.project_id)
    return access_token(issued)


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
def logout(db: Session = Depends(get_db), ctx: UserContext = Depends(require_user)):
    """End the session the access token belongs to"""
    sessions.revoke_session(db, ctx.session.session_id, event_code=EventCode.LOGOUT)
    return None


@router.delete("/session/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_session(
    session_id: str,
    db: Session = Depends(get_db),
    ctx: UserContext = Depends(require_user),
):
    """End one of the caller's own sessions, e.g. on another device"""
    sessions.revoke_session(db, session_id, user_id=ctx.user.user_id)
    return None


@router.get("/sessions", response_model=List[SessionResponse])
def list_sessions(db: Session = Depends(get_db), ctx: UserContext = Depends(require_user)):
    return sessions.list_user_sessions(db, ctx.user.user_id)


@router.delete("/sessions", response_model=RevokedResponse)
def logout_all(db: Session = Depends(get_db), ctx: UserContext = Depends(require_user)):
    revoked = sessions.revoke_all_sessions(db, SESSION_KIND_USER, ctx.user.user_id)
    return RevokedResponse(revoked=revoked)
