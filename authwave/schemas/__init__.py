"""Pydantic schemas for request/response validation"""
from authwave.schemas.admin import AdminCreate, AdminLogin, AdminResponse, AdminUpdate
from authwave.schemas.project import ProjectCreate, ProjectResponse
from authwave.schemas.security_log import SecurityLogPage, SecurityLogResponse
from authwave.schemas.session import SessionResponse, TokenPairResponse
from authwave.schemas.user import UserCreate, UserLogin, UserResponse

__all__ = [
    "AdminCreate",
    "AdminLogin",
    "AdminResponse",
    "AdminUpdate",
    "ProjectCreate",
    "ProjectResponse",
    "SecurityLogPage",
    "SecurityLogResponse",
    "SessionResponse",
    "TokenPairResponse",
    "UserCreate",
    "UserLogin",
    "UserResponse",
]
