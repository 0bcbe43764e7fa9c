"""Database models"""
from authwave.models.admin import Admin
from authwave.models.project import Project
from authwave.models.security_log import EventCode, SecurityLog
from authwave.models.session import Session
from authwave.models.user import User

__all__ = ["Admin", "EventCode", "Project", "SecurityLog", "Session", "User"]
