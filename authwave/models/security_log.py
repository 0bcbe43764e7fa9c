"""Security log model"""
import enum
import uuid

from sqlalchemy import Column, DateTime, Index, Integer, JSON, String

from authwave.database import Base
from authwave.utils.timeutils import utcnow


def generate_uuid_string():
    """Generate UUID as string for SQLite compatibility"""
    return str(uuid.uuid4())


class EventCode(str, enum.Enum):
    """Recognised security event codes"""

    ACCOUNT_CREATED = "ACCOUNT_CREATED"
    ACCOUNT_DELETED = "ACCOUNT_DELETED"
    ACCOUNT_VERIFIED = "ACCOUNT_VERIFIED"
    LOGIN = "LOGIN"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    LOGOUT_ALL = "LOGOUT_ALL"
    SESSION_REVOKED = "SESSION_REVOKED"
    SESSION_LIMIT_EXCEEDED = "SESSION_LIMIT_EXCEEDED"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    INACTIVE_USERS_CLEARED = "INACTIVE_USERS_CLEARED"


class SecurityLog(Base):
    """SecurityLog model - append-only security events of a project"""

    __tablename__ = "security_logs"
    __table_args__ = (
        Index("ix_security_logs_project_user_timestamp", "project_id", "user_id", "timestamp"),
        Index("ix_security_logs_project_event_timestamp", "project_id", "event_code", "timestamp"),
    )

    id = Column(Integer, primary_key=True, index=True)
    log_id = Column(String(36), default=generate_uuid_string, unique=True, nullable=False, index=True)
    project_id = Column(String(50), nullable=False, index=True)
    user_id = Column(String(50), nullable=True)      # null for project-level events
    event_code = Column(String(50), nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    log_metadata = Column("metadata", JSON, nullable=True)  # Column name is 'metadata', attribute is 'log_metadata'
