"""Project model: a tenant owned by one admin"""
from sqlalchemy import Column, DateTime, Integer, JSON, String, Text, UniqueConstraint

from authwave.database import Base
from authwave.utils.timeutils import utcnow


class Project(Base):
    """Project model - an isolated namespace of users, policy and security logs.

    ``config`` holds three sections (``login_methods``, ``security``,
    ``email_templates``). JSON columns are not mutation-tracked, so writers always
    assign a fresh dict.
    """

    __tablename__ = "projects"
    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="uq_projects_owner_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(String(50), unique=True, nullable=False, index=True)   # "prj_xxx"
    name = Column(String(255), nullable=False)
    owner_id = Column(String(50), nullable=False, index=True)                  # Admin.admin_id
    app_name = Column(String(255), nullable=False)
    app_email = Column(String(255), nullable=False)
    project_key = Column(Text, nullable=False)
    config = Column(JSON, default=dict, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
