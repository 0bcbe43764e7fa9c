"""User model: end-users of a project"""
from sqlalchemy import Boolean, Column, DateTime, Integer, String, UniqueConstraint

from authwave.database import Base
from authwave.utils.timeutils import utcnow


class User(Base):
    """User model - scoped to exactly one project"""

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("project_id", "email", name="uq_users_project_email"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(50), unique=True, nullable=False, index=True)    # "usr_xxx"
    project_id = Column(String(50), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=True)   # null for passwordless accounts
    is_verified = Column(Boolean, default=False, nullable=False)
    last_active_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
