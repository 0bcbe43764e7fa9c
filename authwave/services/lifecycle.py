"""Lifecycle orchestration: cascading deletes and inactive-account reclamation.

Children are always removed before their parent (security logs, sessions, users,
then the project), inside a single transaction per project. Every cascade is
idempotent, so a partially failed bulk delete can simply be retried.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from authwave.database import commit_or_raise
from authwave.middleware.monitoring import record_cascade
from authwave.models.admin import Admin
from authwave.models.project import Project
from authwave.models.security_log import EventCode, SecurityLog
from authwave.models.session import SESSION_KIND_ADMIN, Session as SessionRecord
from authwave.models.user import User
from authwave.services import security_log
from authwave.services.errors import ApiError, CascadeIncomplete, NotFound
from authwave.utils.logger import logger
from authwave.utils.timeutils import utcnow


@dataclass
class CascadeCounts:
    project_id: str
    users: int = 0
    sessions: int = 0
    security_logs: int = 0
    project: int = 0


@dataclass
class CascadeReport:
    deleted: List[str] = field(default_factory=list)
    failures: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.failures

    def merge(self, other: "CascadeReport") -> None:
        self.deleted.extend(other.deleted)
        self.failures.extend(other.failures)

    def raise_for_failures(self, message: Optional[str] = None) -> None:
        """Raise ``CascadeIncomplete`` listing the failed projects, if any"""
        if self.failures:
            raise CascadeIncomplete(
                message or f"{len(self.failures)} project(s) could not be deleted; retry the request",
                details={"deleted": self.deleted, "failures": self.failures},
            )


def delete_project(db: Session, project_id: str) -> CascadeCounts:
    """Delete a project and everything scoped to it in one transaction.

    Deleting an already-deleted project succeeds with zero counts.
    """
    counts = CascadeCounts(project_id=project_id)
    try:
        counts.security_logs = (
            db.query(SecurityLog)
            .filter(SecurityLog.project_id == project_id)
            .delete(synchronize_session=False)
        )
        counts.sessions = (
            db.query(SessionRecord)
            .filter(SessionRecord.project_id == project_id)
            .delete(synchronize_session=False)
        )
        counts.users = (
            db.query(User)
            .filter(User.project_id == project_id)
            .delete(synchronize_session=False)
        )
        counts.project = (
            db.query(Project)
            .filter(Project.project_id == project_id)
            .delete(synchronize_session=False)
        )
    except SQLAlchemyError:
        db.rollback()
        raise
    commit_or_raise(db)
    db.expire_all()

    logger.info(
        f"Deleted project cascade: {project_id}",
        extra={"project_id": project_id, "action": "delete_project"},
    )
    return counts


def delete_all_projects_owned_by(db: Session, owner_id: str) -> CascadeReport:
    """Cascade-delete every project of an admin.

    Each project is deleted in its own transaction. A failing project is recorded
    in the report and the remaining projects are still processed.
    """
    project_ids = [
        row.project_id
        for row in db.query(Project.project_id).filter(Project.owner_id == owner_id).all()
    ]

    report = CascadeReport()
    for project_id in project_ids:
        try:
            delete_project(db, project_id)
        except (ApiError, SQLAlchemyError) as exc:
            db.rollback()
            record_cascade("failure")
            report.failures.append({"project_id": project_id, "error": str(exc)})
            logger.error(
                f"Project cascade failed: {project_id}",
                extra={"project_id": project_id, "admin_id": owner_id, "action": "delete_project"},
                exc_info=True,
            )
            continue
        record_cascade("success")
        report.deleted.append(project_id)

    return report


def delete_admin(db: Session, admin_id: str) -> CascadeReport:
    """Remove an admin's session and record, then all of the admin's projects.

    Calling it again after a partial failure finishes the projects left behind,
    even though the admin record is already gone.
    """
    admin = db.query(Admin).filter(Admin.admin_id == admin_id).first()
    if admin:
        db.query(SessionRecord).filter(
            SessionRecord.kind == SESSION_KIND_ADMIN,
            SessionRecord.admin_id == admin_id,
        ).delete(synchronize_session=False)
        db.delete(admin)
        commit_or_raise(db)
        logger.info(f"Deleted admin: {admin_id}", extra={"admin_id": admin_id, "action": "delete_admin"})
    elif not db.query(Project.id).filter(Project.owner_id == admin_id).first():
        raise NotFound(f"Admin {admin_id} not found")

    return delete_all_projects_owned_by(db, admin_id)


def purge_orphaned_projects(db: Session) -> CascadeReport:
    """Cascade-delete projects whose owning admin no longer exists"""
    owner_ids = [
        row.owner_id
        for row in db.query(Project.owner_id)
        .filter(~Project.owner_id.in_(select(Admin.admin_id)))
        .distinct()
        .all()
    ]

    report = CascadeReport()
    for owner_id in owner_ids:
        report.merge(delete_all_projects_owned_by(db, owner_id))

    if owner_ids:
        logger.info(
            f"Purged {len(report.deleted)} orphaned projects",
            extra={"action": "purge_orphaned_projects"},
        )
    return report


def delete_user(db: Session, project_id: str, user_id: str) -> int:
    """Delete one user of a project with their sessions. Returns the session count removed.

    The user's security log history is kept.
    """
    user = db.query(User).filter(User.project_id == project_id, User.user_id == user_id).first()
    if not user:
        raise NotFound(f"User {user_id} not found")

    sessions = (
        db.query(SessionRecord)
        .filter(SessionRecord.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.delete(user)
    security_log.append(
        db,
        project_id,
        user_id,
        EventCode.ACCOUNT_DELETED,
        metadata={"email": user.email, "sessions_removed": sessions},
    )

    logger.info(
        f"Deleted user: {user_id}",
        extra={"project_id": project_id, "user_id": user_id, "action": "delete_user"},
    )
    return sessions


def reclaim_inactive_users(
    db: Session,
    project_id: str,
    threshold_days: int,
    now: Optional[datetime] = None,
) -> int:
    """Delete users with no activity within ``threshold_days``.

    Users that were never active (``last_active_at`` is null) are eligible too.
    Returns the number of users deleted.
    """
    cutoff = (now or utcnow()) - timedelta(days=threshold_days)

    user_ids = [
        row.user_id
        for row in db.query(User.user_id).filter(
            User.project_id == project_id,
            or_(User.last_active_at.is_(None), User.last_active_at < cutoff),
        ).all()
    ]

    if user_ids:
        db.query(SessionRecord).filter(
            SessionRecord.user_id.in_(user_ids)
        ).delete(synchronize_session=False)
        db.query(User).filter(User.user_id.in_(user_ids)).delete(synchronize_session=False)

    security_log.append(
        db,
        project_id,
        None,
        EventCode.INACTIVE_USERS_CLEARED,
        metadata={"threshold_days": threshold_days, "deleted_users": len(user_ids)},
    )

    logger.info(
        f"Reclaimed {len(user_ids)} inactive users",
        extra={"project_id": project_id, "action": "reclaim_inactive_users"},
    )
    return len(user_ids)
