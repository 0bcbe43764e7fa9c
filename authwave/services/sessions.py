"""Session manager.

A session moves through ``absent -> active -> (access expired) -> refreshed ->
... -> revoked | refresh expired``. The stored token strings and expiries are the
source of truth: a token that verifies cryptographically but no longer matches
its session row is rejected.

Admin sessions are single-slot (a new login overwrites the previous row). User
sessions are multi-slot, capped by the project's ``security.user_session_limit``;
a login beyond the cap is rejected and existing sessions are never evicted.
"""
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from authwave.config import settings
from authwave.database import commit_or_raise
from authwave.middleware.monitoring import record_auth_failure, record_session_created
from authwave.models.project import Project
from authwave.models.security_log import EventCode
from authwave.models.session import SESSION_KIND_ADMIN, SESSION_KIND_USER, Session as SessionRecord
from authwave.models.user import User
from authwave.services import projects, security_log
from authwave.services.errors import (
    ApiLimitExceeded,
    InvalidFormat,
    NotFound,
    RefreshTokenExpired,
    RefreshTokenInvalid,
    TokenExpired,
    TokenInvalid,
)
from authwave.utils.jwt_utils import decode_unverified, issue_token, token_expiry, verify_token
from authwave.utils.logger import logger
from authwave.utils.timeutils import utcnow


@dataclass
class IssuedSession:
    access_token: str
    refresh_token: str
    session: SessionRecord


def generate_session_id() -> str:
    return f"{settings.SESSION_ID_PREFIX}{secrets.token_urlsafe(16)}"


def _claims(session: SessionRecord) -> dict:
    if session.kind == SESSION_KIND_ADMIN:
        return {"sub": session.admin_id, "sid": session.session_id, "type": SESSION_KIND_ADMIN}
    return {
        "sub": session.user_id,
        "sid": session.session_id,
        "pid": session.project_id,
        "type": SESSION_KIND_USER,
    }


def _mint_access(session: SessionRecord, now: datetime) -> None:
    session.access_token = issue_token(
        _claims(session), settings.ACCESS_TOKEN_SECRET, settings.ACCESS_TOKEN_EXPIRE_SECONDS, now=now
    )
    session.access_token_expiry = token_expiry(settings.ACCESS_TOKEN_EXPIRE_SECONDS, now=now)


def _mint_refresh(session: SessionRecord, now: datetime) -> None:
    session.refresh_token = issue_token(
        _claims(session), settings.REFRESH_TOKEN_SECRET, settings.REFRESH_TOKEN_EXPIRE_SECONDS, now=now
    )
    session.refresh_token_expiry = token_expiry(settings.REFRESH_TOKEN_EXPIRE_SECONDS, now=now)


def count_live_sessions(db: Session, user_id: str, now: Optional[datetime] = None) -> int:
    """Sessions of a user whose stored refresh expiry is still in the future"""
    return db.query(SessionRecord).filter(
        SessionRecord.kind == SESSION_KIND_USER,
        SessionRecord.user_id == user_id,
        SessionRecord.refresh_token_expiry > (now or utcnow()),
    ).count()


def list_user_sessions(db: Session, user_id: str) -> List[SessionRecord]:
    return (
        db.query(SessionRecord)
        .filter(SessionRecord.kind == SESSION_KIND_USER, SessionRecord.user_id == user_id)
        .order_by(SessionRecord.created_at.desc())
        .all()
    )


def _create_admin_session(db: Session, admin_id: str, user_agent: Optional[str], now: datetime) -> SessionRecord:
    session = db.query(SessionRecord).filter(
        SessionRecord.kind == SESSION_KIND_ADMIN,
        SessionRecord.admin_id == admin_id,
    ).first()
    if session is None:
        session = SessionRecord(
            session_id=generate_session_id(),
            kind=SESSION_KIND_ADMIN,
            admin_id=admin_id,
        )
        db.add(session)
    session.user_agent = user_agent
    _mint_access(session, now)
    _mint_refresh(session, now)
    commit_or_raise(db)
    return session


def _create_user_session(
    db: Session,
    user_id: str,
    project: Project,
    user_agent: Optional[str],
    now: datetime,
) -> SessionRecord:
    limit = projects.security_settings(project)["user_session_limit"]
    live = count_live_sessions(db, user_id, now=now)
    if live >= limit:
        security_log.append(
            db,
            project.project_id,
            user_id,
            EventCode.SESSION_LIMIT_EXCEEDED,
            metadata={"limit": limit, "live_sessions": live},
        )
        record_auth_failure(SESSION_KIND_USER, "session_limit")
        logger.warning(
            f"Session limit reached for user {user_id}",
            extra={"project_id": project.project_id, "user_id": user_id, "action": "create_session"},
        )
        raise ApiLimitExceeded(
            "Maximum number of active sessions reached. Log out of another device first.",
            details={"user_session_limit": limit},
        )

    session = SessionRecord(
        session_id=generate_session_id(),
        kind=SESSION_KIND_USER,
        user_id=user_id,
        project_id=project.project_id,
        user_agent=user_agent,
    )
    _mint_access(session, now)
    _mint_refresh(session, now)
    db.add(session)

    user = db.query(User).filter(User.user_id == user_id).first()
    if user is not None:
        user.last_active_at = now

    security_log.append(
        db,
        project.project_id,
        user_id,
        EventCode.LOGIN,
        metadata={"session_id": session.session_id, "user_agent": user_agent},
    )
    return session


def create_session(
    db: Session,
    kind: str,
    subject_id: str,
    project: Optional[Project] = None,
    user_agent: Optional[str] = None,
    now: Optional[datetime] = None,
) -> IssuedSession:
    """Open a session for an admin or a user and return its token pair.

    Raises:
        ApiLimitExceeded: the user already holds ``user_session_limit`` live sessions.
    """
    now = now or utcnow()
    if kind == SESSION_KIND_ADMIN:
        session = _create_admin_session(db, subject_id, user_agent, now)
    elif kind == SESSION_KIND_USER:
        if project is None:
            raise InvalidFormat("User sessions require a project")
        session = _create_user_session(db, subject_id, project, user_agent, now)
    else:
        raise InvalidFormat(f"Unknown session kind '{kind}'")

    db.refresh(session)
    record_session_created(kind)
    logger.info(
        f"Session created: {session.session_id}",
        extra={
            "session_id": session.session_id,
            "admin_id": session.admin_id,
            "user_id": session.user_id,
            "project_id": session.project_id,
            "action": "create_session",
        },
    )
    return IssuedSession(session.access_token, session.refresh_token, session)


def authenticate(db: Session, access_token: str, now: Optional[datetime] = None) -> SessionRecord:
    """Resolve an access token to its live session.

    Raises:
        TokenInvalid: bad signature, unknown session, or a token that is no longer
            the one stored on the session.
        TokenExpired: the token or its stored expiry has passed.
    """
    now = now or utcnow()
    payload = verify_token(access_token, settings.ACCESS_TOKEN_SECRET, now=now)

    session_id = payload.get("sid")
    session = (
        db.query(SessionRecord).filter(SessionRecord.session_id == session_id).first()
        if session_id else None
    )
    if session is None or session.access_token != access_token:
        raise TokenInvalid("Access token is invalid or has been revoked")
    if session.access_token_expiry <= now:
        raise TokenExpired("Access token has expired")
    return session


def refresh(
    db: Session,
    refresh_token: str,
    kind: Optional[str] = None,
    project_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> IssuedSession:
    """Mint a new access token for the session a refresh token belongs to.

    The refresh token itself is left unchanged. ``kind`` and ``project_id`` restrict
    which sessions the caller may refresh; a mismatch is treated as an invalid token.
    """
    now = now or utcnow()
    claims = decode_unverified(refresh_token) or {}
    session_id = claims.get("sid")
    if not session_id:
        record_auth_failure("unknown", "refresh_invalid")
        raise RefreshTokenInvalid("Refresh token is invalid")

    session = db.query(SessionRecord).filter(SessionRecord.session_id == session_id).first()
    if session is None:
        raise NotFound("Session not found")
    if (kind and session.kind != kind) or (project_id and session.project_id != project_id):
        record_auth_failure(session.kind, "refresh_invalid")
        raise RefreshTokenInvalid("Refresh token is invalid")
    if session.refresh_token != refresh_token:
        record_auth_failure(session.kind, "refresh_invalid")
        raise RefreshTokenInvalid("Refresh token is invalid")
    if session.refresh_token_expiry <= now:
        record_auth_failure(session.kind, "refresh_expired")
        raise RefreshTokenExpired("Refresh token has expired, please log in again")

    _mint_access(session, now)
    if session.kind == SESSION_KIND_USER:
        user = db.query(User).filter(User.user_id == session.user_id).first()
        if user is not None:
            user.last_active_at = now
        security_log.append(
            db,
            session.project_id,
            session.user_id,
            EventCode.TOKEN_REFRESHED,
            metadata={"session_id": session.session_id},
        )
    else:
        commit_or_raise(db)
    db.refresh(session)

    logger.info(
        f"Access token refreshed: {session.session_id}",
        extra={"session_id": session.session_id, "action": "refresh"},
    )
    return IssuedSession(session.access_token, session.refresh_token, session)


def revoke_session(
    db: Session,
    session_id: str,
    user_id: Optional[str] = None,
    project_id: Optional[str] = None,
    event_code: EventCode = EventCode.SESSION_REVOKED,
) -> None:
    """Delete one session.

    With ``user_id`` (or ``project_id``) the session must belong to that user (or
    project); otherwise it is reported as not found.
    """
    query = db.query(SessionRecord).filter(SessionRecord.session_id == session_id)
    if user_id is not None:
        query = query.filter(SessionRecord.user_id == user_id)
    if project_id is not None:
        query = query.filter(SessionRecord.project_id == project_id)
    session = query.first()
    if session is None:
        raise NotFound(f"Session {session_id} not found")

    kind, owner_project_id, owner_id = session.kind, session.project_id, session.user_id
    db.delete(session)
    if kind == SESSION_KIND_USER:
        security_log.append(db, owner_project_id, owner_id, event_code, metadata={"session_id": session_id})
    else:
        commit_or_raise(db)

    logger.info(f"Session revoked: {session_id}", extra={"session_id": session_id, "action": "revoke_session"})


def revoke_all_sessions(db: Session, kind: str, subject_id: str) -> int:
    """Delete every session of an admin or a user. Returns the number removed."""
    if kind == SESSION_KIND_ADMIN:
        subject = SessionRecord.admin_id
    elif kind == SESSION_KIND_USER:
        subject = SessionRecord.user_id
    else:
        raise InvalidFormat(f"Unknown session kind '{kind}'")

    query = db.query(SessionRecord).filter(SessionRecord.kind == kind, subject == subject_id)
    project_id = None
    if kind == SESSION_KIND_USER:
        user = db.query(User).filter(User.user_id == subject_id).first()
        project_id = user.project_id if user else None

    removed = query.delete(synchronize_session=False)
    if project_id:
        security_log.append(
            db, project_id, subject_id, EventCode.LOGOUT_ALL, metadata={"sessions_removed": removed}
        )
    else:
        commit_or_raise(db)

    logger.info(f"Revoked {removed} {kind} sessions of {subject_id}", extra={"action": "revoke_all_sessions"})
    return removed
