"""Project schemas"""
import enum
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class LoginMethod(str, enum.Enum):
    EMAIL_PASSWORD = "email_password"
    MAGIC_URL = "magic_url"
    EMAIL_OTP = "email_otp"


class EmailTemplateName(str, enum.Enum):
    WELCOME = "welcome"
    USER_VERIFICATION = "user_verification"
    RESET_PASSWORD = "reset_password"
    MAGIC_URL = "magic_url"
    EMAIL_OTP = "email_otp"
    ACCOUNT_DELETION = "account_deletion"


class LoginMethodsConfig(BaseModel):
    """Enabled authentication mechanisms of a project"""

    class Config:
        extra = "forbid"
        strict = True

    email_password: bool = True
    magic_url: bool = False
    email_otp: bool = False


class SecurityConfig(BaseModel):
    """Per-project user and session caps"""

    class Config:
        extra = "forbid"
        strict = True

    user_limit: int = Field(..., gt=0)
    user_session_limit: int = Field(..., gt=0)


class EmailTemplate(BaseModel):
    """Override content for one email template"""

    class Config:
        extra = "forbid"

    subject: str = Field(..., min_length=1, max_length=255)
    body: str = Field(..., min_length=1)


class ProjectConfig(BaseModel):
    """Complete project configuration; omitted sections take their defaults"""

    class Config:
        extra = "forbid"

    login_methods: Optional[Dict[str, Any]] = None
    security: Optional[Dict[str, Any]] = None
    email_templates: Optional[Dict[str, Any]] = None


class ProjectCreate(BaseModel):
    """Schema for creating a project"""

    name: str = Field(..., description="Project name, unique per owner")
    app_name: str = Field(..., description="Application name shown to end-users")
    app_email: str = Field(..., description="Sender address for project emails")
    config: Optional[ProjectConfig] = None


class AppNameUpdate(BaseModel):
    app_name: str


class AppEmailUpdate(BaseModel):
    app_email: str


class ProjectResponse(BaseModel):
    """Schema for project response"""

    project_id: str
    name: str
    owner_id: str
    app_name: str
    app_email: str
    project_key: str
    config: Dict[str, Any]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectOverview(BaseModel):
    project_id: str
    user_count: int
    live_session_count: int
    security_log_count: int


class ProjectKeyResponse(BaseModel):
    project_id: str
    project_key: str


class CascadeCountsResponse(BaseModel):
    project_id: str
    users: int
    sessions: int
    security_logs: int
    project: int


class BulkDeleteResponse(BaseModel):
    deleted: List[str]


class ReclaimResponse(BaseModel):
    threshold_days: int
    deleted_users: int