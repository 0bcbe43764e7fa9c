"""Admin model: accounts that own projects"""
from sqlalchemy import Boolean, Column, DateTime, Integer, String

from authwave.database import Base
from authwave.utils.timeutils import utcnow


class Admin(Base):
    """An admin account.

    Admins authenticate with email + password and own zero or more projects.
    The live access/refresh token pair lives in the admin's single ``Session`` row
    (``kind == "admin"``), not on this record.
    """

    __tablename__ = "admins"

    id = Column(Integer, primary_key=True)
    admin_id = Column(String(50), unique=True, nullable=False, index=True)   # "adm_xxx"
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    verification_token = Column(String(255), nullable=True)
    verification_token_expiry = Column(DateTime, nullable=True)
    reset_password_token = Column(String(255), nullable=True)
    reset_password_token_expiry = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
