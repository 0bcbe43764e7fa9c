"""Credential store for admins and project users"""
import secrets
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from authwave.config import settings
from authwave.database import commit_or_raise
from authwave.middleware.monitoring import record_auth_failure
from authwave.models.admin import Admin
from authwave.models.project import Project
from authwave.models.security_log import EventCode
from authwave.models.user import User
from authwave.schemas.project import LoginMethod
from authwave.services import projects, security_log
from authwave.services.errors import (
    AlreadyExists,
    ApiLimitExceeded,
    IncorrectPassword,
    InvalidFormat,
    LoginMethodDisabled,
    NotFound,
    ValidationError,
)
from authwave.utils import validators
from authwave.utils.logger import logger
from authwave.utils.passwords import hash_password, verify_password
from authwave.utils.timeutils import to_naive_utc, utcnow

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_BYTES = 72  # bcrypt input limit


def generate_admin_id() -> str:
    return f"{settings.ADMIN_ID_PREFIX}{secrets.token_urlsafe(12)}"


def generate_user_id() -> str:
    return f"{settings.USER_ID_PREFIX}{secrets.token_urlsafe(12)}"


def _normalize_email(email: str) -> str:
    errors = validators.validate_email(email)
    if errors:
        raise InvalidFormat("Invalid email address", details=errors)
    return email.strip().lower()


def _check_password(password: Optional[str]) -> None:
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        raise InvalidFormat(
            f"Password must be at least {PASSWORD_MIN_LENGTH} characters",
            details=[{"field": "password", "message": f"must be at least {PASSWORD_MIN_LENGTH} characters"}],
        )
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise InvalidFormat(
            f"Password must be at most {PASSWORD_MAX_BYTES} bytes",
            details=[{"field": "password", "message": f"must be at most {PASSWORD_MAX_BYTES} bytes"}],
        )


# ===== Admins =====

def create_admin(db: Session, name: str, email: str, password: str) -> Admin:
    if not isinstance(name, str) or not name.strip():
        raise InvalidFormat("Name is required", details=[{"field": "name", "message": "must be a non-empty string"}])
    email = _normalize_email(email)
    _check_password(password)

    if db.query(Admin).filter(Admin.email == email).first():
        raise AlreadyExists("An admin with this email already exists")

    admin = Admin(
        admin_id=generate_admin_id(),
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
    )
    db.add(admin)
    commit_or_raise(db, conflict_message="An admin with this email already exists")
    db.refresh(admin)

    logger.info(f"Created admin: {admin.admin_id}", extra={"admin_id": admin.admin_id, "action": "create_admin"})
    return admin


def authenticate_admin(db: Session, email: str, password: str) -> Admin:
    email = _normalize_email(email)
    admin = db.query(Admin).filter(Admin.email == email).first()
    if not admin:
        record_auth_failure("admin", "unknown_account")
        raise NotFound("No admin account with this email")
    if not verify_password(password or "", admin.password_hash):
        record_auth_failure("admin", "incorrect_password")
        logger.warning("Admin login rejected: incorrect password", extra={"admin_id": admin.admin_id})
        raise IncorrectPassword("Incorrect password")
    return admin


def get_admin(db: Session, admin_id: str) -> Admin:
    admin = db.query(Admin).filter(Admin.admin_id == admin_id).first()
    if not admin:
        raise NotFound(f"Admin {admin_id} not found")
    return admin


def update_admin(
    db: Session,
    admin_id: str,
    name: Optional[str] = None,
    email: Optional[str] = None,
    password: Optional[str] = None,
) -> Admin:
    admin = get_admin(db, admin_id)

    if name is not None:
        if not name.strip():
            raise InvalidFormat("Name must not be empty")
        admin.name = name.strip()
    if email is not None:
        email = _normalize_email(email)
        clash = db.query(Admin).filter(Admin.email == email, Admin.admin_id != admin_id).first()
        if clash:
            raise AlreadyExists("An admin with this email already exists")
        admin.email = email
    if password is not None:
        _check_password(password)
        admin.password_hash = hash_password(password)

    commit_or_raise(db, conflict_message="An admin with this email already exists")
    db.refresh(admin)
    logger.info(f"Updated admin: {admin_id}", extra={"admin_id": admin_id, "action": "update_admin"})
    return admin


# ===== Users =====

def create_user(
    db: Session,
    project: Project,
    email: str,
    password: Optional[str],
    verified: bool = False,
) -> User:
    """Create a user inside a project.

    Raises:
        AlreadyExists: the email is already registered in this project.
        ApiLimitExceeded: the project already holds ``security.user_limit`` users.
    """
    email = _normalize_email(email)
    if password is not None:
        _check_password(password)

    if db.query(User).filter(User.project_id == project.project_id, User.email == email).first():
        raise AlreadyExists("A user with this email already exists in the project")

    limit = projects.security_settings(project)["user_limit"]
    if db.query(User).filter(User.project_id == project.project_id).count() >= limit:
        logger.warning(
            "User limit reached",
            extra={"project_id": project.project_id, "action": "create_user"},
        )
        raise ApiLimitExceeded(
            "The project has reached its user limit",
            details={"user_limit": limit},
        )

    user = User(
        user_id=generate_user_id(),
        project_id=project.project_id,
        email=email,
        password_hash=hash_password(password) if password else None,
        is_verified=verified,
        last_active_at=utcnow(),
    )
    db.add(user)
    security_log.append(
        db,
        project.project_id,
        user.user_id,
        EventCode.ACCOUNT_CREATED,
        metadata={"email": email},
        conflict_message="A user with this email already exists in the project",
    )
    db.refresh(user)

    logger.info(
        f"Created user: {user.user_id}",
        extra={"project_id": project.project_id, "user_id": user.user_id, "action": "create_user"},
    )
    return user


def authenticate_user(db: Session, project: Project, email: str, password: str) -> User:
    if not projects.login_method_enabled(project, LoginMethod.EMAIL_PASSWORD.value):
        raise LoginMethodDisabled("Email and password login is disabled for this project")

    email = _normalize_email(email)
    user = db.query(User).filter(User.project_id == project.project_id, User.email == email).first()
    if not user:
        record_auth_failure("user", "unknown_account")
        raise NotFound("No user with this email in the project")

    if not user.password_hash or not verify_password(password or "", user.password_hash):
        record_auth_failure("user", "incorrect_password")
        security_log.append(
            db, project.project_id, user.user_id, EventCode.LOGIN_FAILED, metadata={"reason": "incorrect_password"}
        )
        logger.warning(
            "User login rejected: incorrect password",
            extra={"project_id": project.project_id, "user_id": user.user_id},
        )
        raise IncorrectPassword("Incorrect password")
    return user


def get_user(db: Session, project_id: str, user_id: str) -> User:
    """Load a user of the given project. Users of other projects are not visible."""
    user = db.query(User).filter(User.project_id == project_id, User.user_id == user_id).first()
    if not user:
        raise NotFound(f"User {user_id} not found")
    return user


def verify_user(
    db: Session,
    project_id: str,
    user_id: Optional[str] = None,
    email: Optional[str] = None,
) -> User:
    if user_id:
        user = get_user(db, project_id, user_id)
    elif email:
        email = _normalize_email(email)
        user = db.query(User).filter(User.project_id == project_id, User.email == email).first()
        if not user:
            raise NotFound("No user with this email in the project")
    else:
        raise InvalidFormat("Provide either a user id or an email")

    if not user.is_verified:
        user.is_verified = True
        security_log.append(db, project_id, user.user_id, EventCode.ACCOUNT_VERIFIED, metadata={"email": user.email})
        db.refresh(user)
        logger.info(
            f"Verified user: {user.user_id}",
            extra={"project_id": project_id, "user_id": user.user_id, "action": "verify_user"},
        )
    return user


def list_users(
    db: Session,
    project_id: str,
    page: int = 1,
    page_size: int = settings.LOG_QUERY_DEFAULT_PAGE_SIZE,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    search: Optional[str] = None,
) -> Tuple[List[User], int]:
    """Paginated user listing for the admin console, newest first.

    ``search`` matches a substring of the email; the date range filters on creation time.
    """
    if page < 1 or page_size < 1:
        raise ValidationError("page and page_size must be positive integers")
    start_date, end_date = to_naive_utc(start_date), to_naive_utc(end_date)
    if start_date and end_date and end_date < start_date:
        raise ValidationError("end_date must not be earlier than start_date")
    page_size = min(page_size, settings.LOG_QUERY_MAX_PAGE_SIZE)

    query = db.query(User).filter(User.project_id == project_id)
    if search:
        query = query.filter(User.email.ilike(f"%{search.strip().lower()}%"))
    if start_date:
        query = query.filter(User.created_at >= start_date)
    if end_date:
        query = query.filter(User.created_at <= end_date)

    total = query.count()
    users = (
        query.order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return users, total
