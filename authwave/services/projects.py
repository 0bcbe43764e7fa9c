"""Project registry: tenant records, project keys and per-project policy"""
import hmac
import secrets
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from authwave.config import settings
from authwave.database import commit_or_raise
from authwave.models.project import Project
from authwave.models.security_log import SecurityLog
from authwave.models.session import Session as SessionRecord
from authwave.models.user import User
from authwave.schemas.project import EmailTemplateName, LoginMethodsConfig
from authwave.services import lifecycle
from authwave.services.errors import (
    AlreadyExists,
    InvalidApiKey,
    InvalidFormat,
    NotFound,
    PermissionDenied,
    TokenExpired,
    TokenInvalid,
)
from authwave.utils import validators
from authwave.utils.jwt_utils import issue_token, verify_token
from authwave.utils.logger import logger
from authwave.utils.timeutils import utcnow


def default_security() -> Dict[str, int]:
    return {
        "user_limit": settings.DEFAULT_USER_LIMIT,
        "user_session_limit": settings.DEFAULT_USER_SESSION_LIMIT,
    }


def default_config() -> Dict[str, Any]:
    return {
        "login_methods": LoginMethodsConfig().model_dump(),
        "security": default_security(),
        "email_templates": {},
    }


def security_settings(project: Project) -> Dict[str, int]:
    """Current security caps of a project, falling back to the defaults"""
    return {**default_security(), **((project.config or {}).get("security") or {})}


def login_method_enabled(project: Project, method: str) -> bool:
    methods = {**LoginMethodsConfig().model_dump(), **((project.config or {}).get("login_methods") or {})}
    return bool(methods.get(method))


def generate_project_id() -> str:
    return f"{settings.PROJECT_ID_PREFIX}{secrets.token_urlsafe(12)}"


def _mint_project_key(project: Project) -> str:
    return issue_token(
        {"project_id": project.project_id, "owner": project.owner_id},
        settings.PROJECT_KEY_SECRET,
    )


def _raise_if_invalid(errors: List[Dict[str, Any]], message: str) -> None:
    if errors:
        raise InvalidFormat(message, details=errors)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def get_project(db: Session, project_id: str) -> Project:
    project = db.query(Project).filter(Project.project_id == project_id).first()
    if not project:
        raise NotFound(f"Project {project_id} not found")
    return project


def get_owned_project(db: Session, project_id: str, owner_id: str) -> Project:
    project = get_project(db, project_id)
    if project.owner_id != owner_id:
        raise PermissionDenied("Only the owner of a project can manage it")
    return project


def list_projects(db: Session, owner_id: str) -> List[Project]:
    return (
        db.query(Project)
        .filter(Project.owner_id == owner_id)
        .order_by(Project.created_at.desc())
        .all()
    )


def resolve_project_key(db: Session, project_key: str) -> Project:
    """Return the project a presented key belongs to.

    The key must verify against the project-key secret and also equal the key
    currently stored on the project, so rotation revokes old keys immediately.
    """
    try:
        payload = verify_token(project_key, settings.PROJECT_KEY_SECRET)
    except (TokenInvalid, TokenExpired):
        raise InvalidApiKey("Project key is invalid")

    project_id = payload.get("project_id")
    project = db.query(Project).filter(Project.project_id == project_id).first() if project_id else None
    if not project or not hmac.compare_digest(project.project_key, project_key):
        raise InvalidApiKey("Project key is invalid or has been rotated")
    return project


def activity_threshold_days(db: Session, project_id: str) -> int:
    """Inactivity threshold used when reclaiming the project's user accounts"""
    get_project(db, project_id)
    return settings.USER_ACTIVITY_THRESHOLD_DAYS


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def create_project(
    db: Session,
    owner_id: str,
    name: str,
    app_name: str,
    app_email: str,
    config: Dict[str, Any] = None,
) -> Project:
    """Create a project owned by ``owner_id``.

    The row is inserted with a placeholder key and flushed, then re-keyed once its
    identity is known; both happen in the same transaction.
    """
    _raise_if_invalid(
        validators.validate_project_details(name, app_name, app_email)
        + validators.validate_project_config(config),
        "Invalid project details",
    )
    name = name.strip()

    existing = db.query(Project).filter(Project.owner_id == owner_id, Project.name == name).first()
    if existing:
        raise AlreadyExists("Project with the same name already exists. Provide a different name.")

    merged_config = default_config()
    for section, value in (config or {}).items():
        if value is not None:
            merged_config[section] = dict(value)

    project = Project(
        project_id=generate_project_id(),
        name=name,
        owner_id=owner_id,
        app_name=app_name.strip(),
        app_email=app_email.strip(),
        config=merged_config,
        project_key=f"temporary-project-key-{secrets.token_hex(8)}",
    )
    db.add(project)
    db.flush()

    project.project_key = _mint_project_key(project)
    commit_or_raise(db, conflict_message="Project with the same name already exists. Provide a different name.")
    db.refresh(project)

    logger.info(
        f"Created project: {project.project_id}",
        extra={"project_id": project.project_id, "admin_id": owner_id, "action": "create_project"},
    )
    return project


def rotate_key(db: Session, project_id: str) -> str:
    project = get_project(db, project_id)
    project.project_key = _mint_project_key(project)
    commit_or_raise(db)

    logger.info(f"Rotated project key: {project_id}", extra={"project_id": project_id, "action": "rotate_key"})
    return project.project_key


def update_app_name(db: Session, project_id: str, app_name: str) -> Project:
    _raise_if_invalid(validators.validate_app_name(app_name), "Invalid app name")
    project = get_project(db, project_id)
    project.app_name = app_name.strip()
    commit_or_raise(db)
    db.refresh(project)
    return project


def update_app_email(db: Session, project_id: str, app_email: str) -> Project:
    _raise_if_invalid(validators.validate_email(app_email, field="app_email"), "Invalid app email")
    project = get_project(db, project_id)
    project.app_email = app_email.strip()
    commit_or_raise(db)
    db.refresh(project)
    return project


def _write_config_section(db: Session, project: Project, section: str, value: Any) -> Project:
    config = dict(project.config or default_config())
    config[section] = value
    project.config = config
    commit_or_raise(db)
    db.refresh(project)
    return project


def update_config(db: Session, project_id: str, section: str, value: Any) -> Project:
    """Replace one config section after validating it against the section schema"""
    _raise_if_invalid(validators.validate_config_section(section, value), f"Invalid {section} configuration")
    project = get_project(db, project_id)
    project = _write_config_section(db, project, section, dict(value))

    logger.info(
        f"Updated project config section: {section}",
        extra={"project_id": project_id, "action": "update_config"},
    )
    return project


def reset_security_defaults(db: Session, project_id: str) -> Project:
    project = get_project(db, project_id)
    return _write_config_section(db, project, "security", default_security())


def remove_email_template_override(db: Session, project_id: str, template_name: str) -> Project:
    """Drop one email-template override so the system default applies again"""
    if template_name not in {name.value for name in EmailTemplateName}:
        raise InvalidFormat(f"Unknown email template '{template_name}'")

    project = get_project(db, project_id)
    templates = dict((project.config or {}).get("email_templates") or {})
    templates.pop(template_name, None)
    return _write_config_section(db, project, "email_templates", templates)


def project_overview(db: Session, project_id: str) -> Dict[str, Any]:
    get_project(db, project_id)
    now = utcnow()
    return {
        "project_id": project_id,
        "user_count": db.query(User).filter(User.project_id == project_id).count(),
        "live_session_count": db.query(SessionRecord).filter(
            SessionRecord.project_id == project_id,
            SessionRecord.refresh_token_expiry > now,
        ).count(),
        "security_log_count": db.query(SecurityLog).filter(SecurityLog.project_id == project_id).count(),
    }


def delete_project(db: Session, project_id: str) -> lifecycle.CascadeCounts:
    return lifecycle.delete_project(db, project_id)


def delete_all_projects(db: Session, owner_id: str) -> lifecycle.CascadeReport:
    return lifecycle.delete_all_projects_owned_by(db, owner_id)
