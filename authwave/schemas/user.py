"""User schemas"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from authwave.schemas.session import SessionResponse


class UserCreate(BaseModel):
    email: str = Field(..., description="User email, unique within the project")
    password: Optional[str] = Field(None, description="Plain-text password; omit for passwordless accounts")


class ConsoleUserCreate(UserCreate):
    """User creation from the admin console"""

    verified: bool = Field(False, description="Mark the account as verified right away")


class UserLogin(BaseModel):
    email: str
    password: str


class UserVerify(BaseModel):
    user_id: Optional[str] = None
    email: Optional[str] = None


class UserResponse(BaseModel):
    user_id: str
    project_id: str
    email: str
    is_verified: bool
    last_active_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserDetailResponse(UserResponse):
    """Console view of one user including their sessions"""

    sessions: List[SessionResponse] = Field(default_factory=list)


class UserListResponse(BaseModel):
    users: List[UserResponse]
    page: int
    page_size: int
    total: int
