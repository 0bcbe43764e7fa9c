"""Admin account, admin session and admin console endpoints"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query, Request, status
from sqlalchemy.orm import Session

from authwave.api.deps import AdminContext, require_admin, require_owned_project, require_refresh_token
from authwave.config import settings
from authwave.database import get_db
from authwave.middleware.rate_limit import limiter
from authwave.models.project import Project
from authwave.models.session import SESSION_KIND_ADMIN, SESSION_KIND_USER
from authwave.schemas.admin import AdminCreate, AdminLogin, AdminResponse, AdminUpdate
from authwave.schemas.project import ProjectResponse
from authwave.schemas.session import (
    AccessTokenResponse,
    RevokedResponse,
    SessionResponse,
    TokenPairResponse,
    access_token,
    token_pair,
)
from authwave.schemas.user import (
    ConsoleUserCreate,
    UserDetailResponse,
    UserListResponse,
    UserResponse,
    UserVerify,
)
from authwave.services import accounts, lifecycle, projects, sessions

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------

@router.post("/account", response_model=AdminResponse, status_code=status.HTTP_201_CREATED)
def create_account(data: AdminCreate, db: Session = Depends(get_db)):
    """Register a new admin account"""
    return accounts.create_admin(db, data.name, data.email, data.password)


@router.get("/account", response_model=AdminResponse)
def get_account(ctx: AdminContext = Depends(require_admin)):
    return ctx.admin


@router.patch("/account", response_model=AdminResponse)
def update_account(
    data: AdminUpdate,
    db: Session = Depends(get_db),
    ctx: AdminContext = Depends(require_admin),
):
    return accounts.update_admin(
        db, ctx.admin.admin_id, name=data.name, email=data.email, password=data.password
    )


@router.delete("/account", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(db: Session = Depends(get_db), ctx: AdminContext = Depends(require_admin)):
    """
    Delete the admin account (Admin only)

    Removes the admin session and record, then cascades every owned project.
    Projects that fail to delete are reported; their owner no longer exists, so
    the orphaned-project sweep removes them on the next startup.
    """
    report = lifecycle.delete_admin(db, ctx.admin.admin_id)
    report.raise_for_failures(
        f"Admin account deleted, but {len(report.failures)} project(s) could not be; "
        "they will be removed by the orphaned-project sweep"
    )
    return None


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

@router.post("/session", response_model=TokenPairResponse)
@limiter.limit(settings.RATE_LIMIT_LOGIN)
def login(
    request: Request,
    data: AdminLogin,
    user_agent: Optional[str] = Header(None),
    db: Session = Depends(get_db),
):
    """
    Log in as an admin.

    Admins hold a single session: logging in again replaces the previous token
    pair, so tokens handed out earlier stop working.
    """
    admin = accounts.authenticate_admin(db, data.email, data.password)
    issued = sessions.create_session(db, SESSION_KIND_ADMIN, admin.admin_id, user_agent=user_agent)
    return token_pair(issued)


@router.post("/access-token/refresh", response_model=AccessTokenResponse)
def refresh_access_token(
    refresh_token: str = Depends(require_refresh_token),
    db: Session = Depends(get_db),
):
    issued = sessions.refresh(db, refresh_token, kind=SESSION_KIND_ADMIN)
    return access_token(issued)


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
def logout(db: Session = Depends(get_db), ctx: AdminContext = Depends(require_admin)):
    sessions.revoke_session(db, ctx.session.session_id)
    return None


@router.get("/dashboard", response_model=List[ProjectResponse])
def dashboard(db: Session = Depends(get_db), ctx: AdminContext = Depends(require_admin)):
    """Projects owned by the admin, newest first"""
    return projects.list_projects(db, ctx.admin.admin_id)


# ---------------------------------------------------------------------------
# Console: users of a project (Admin + X-Project-Key)
# ---------------------------------------------------------------------------

@router.get("/users", response_model=UserListResponse)
def list_users(
    page: int = Query(1, description="1-indexed page number"),
    page_size: int = Query(settings.LOG_QUERY_DEFAULT_PAGE_SIZE, description="Users per page"),
    start_date: Optional[datetime] = Query(None, description="Created at or after (ISO 8601)"),
    end_date: Optional[datetime] = Query(None, description="Created at or before (ISO 8601)"),
    search: Optional[str] = Query(None, description="Substring of the user's email"),
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    users, total = accounts.list_users(
        db,
        project.project_id,
        page=page,
        page_size=page_size,
        start_date=start_date,
        end_date=end_date,
        search=search,
    )
    return UserListResponse(
        users=[UserResponse.model_validate(user) for user in users],
        page=page,
        page_size=min(page_size, settings.LOG_QUERY_MAX_PAGE_SIZE),
        total=total,
    )


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    data: ConsoleUserCreate,
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    return accounts.create_user(db, project, data.email, data.password, verified=data.verified)


@router.put("/users/verify", response_model=UserResponse)
def verify_user(
    data: UserVerify,
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    """Mark a user verified, identified by user_id or email"""
    return accounts.verify_user(db, project.project_id, user_id=data.user_id, email=data.email)


@router.get("/users/{user_id}", response_model=UserDetailResponse)
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    user = accounts.get_user(db, project.project_id, user_id)
    detail = UserDetailResponse.model_validate(user)
    detail.sessions = [
        SessionResponse.model_validate(session)
        for session in sessions.list_user_sessions(db, user_id)
    ]
    return detail


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    lifecycle.delete_user(db, project.project_id, user_id)
    return None


@router.get("/users/{user_id}/sessions", response_model=List[SessionResponse])
def list_user_sessions(
    user_id: str,
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    accounts.get_user(db, project.project_id, user_id)
    return sessions.list_user_sessions(db, user_id)


@router.delete("/users/{user_id}/sessions", response_model=RevokedResponse)
def clear_user_sessions(
    user_id: str,
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    user = accounts.get_user(db, project.project_id, user_id)
    revoked = sessions.revoke_all_sessions(db, SESSION_KIND_USER, user.user_id)
    return RevokedResponse(revoked=revoked)


@router.delete("/user-sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def revoke_user_session(
    session_id: str,
    db: Session = Depends(get_db),
    project: Project = Depends(require_owned_project),
):
    """Revoke one session of a user of the project"""
    sessions.revoke_session(db, session_id, project_id=project.project_id)
    return None
