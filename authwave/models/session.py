"""Session model: one live authenticated session of an admin or a user"""
from sqlalchemy import Column, DateTime, Integer, String, Text

from authwave.database import Base
from authwave.utils.timeutils import utcnow

SESSION_KIND_ADMIN = "admin"
SESSION_KIND_USER = "user"


class Session(Base):
    """Session model.

    Admin and user sessions share this table and differ only by ``kind``:
    admin sessions are single-slot (``admin_id`` set), user sessions are
    multi-slot and scoped to a project (``user_id`` + ``project_id`` set).
    The stored expiries are authoritative over the tokens' own ``exp`` claims.
    """

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(50), unique=True, nullable=False, index=True)   # "ses_xxx"
    kind = Column(String(10), nullable=False, index=True)                      # admin | user
    admin_id = Column(String(50), nullable=True, index=True)
    user_id = Column(String(50), nullable=True, index=True)
    project_id = Column(String(50), nullable=True, index=True)
    access_token = Column(Text, nullable=False)
    access_token_expiry = Column(DateTime, nullable=False)
    refresh_token = Column(Text, nullable=False)
    refresh_token_expiry = Column(DateTime, nullable=False, index=True)
    user_agent = Column(String(512), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
