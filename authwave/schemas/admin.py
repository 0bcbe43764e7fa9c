"""Admin schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AdminCreate(BaseModel):
    name: str = Field(..., description="Display name of the admin")
    email: str = Field(..., description="Login email, unique across admins")
    password: str = Field(..., description="Plain-text password (min 8 characters)")


class AdminLogin(BaseModel):
    email: str
    password: str


class AdminUpdate(BaseModel):
    """Fields left out are not changed"""

    class Config:
        extra = "forbid"

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class AdminResponse(BaseModel):
    admin_id: str
    name: str
    email: str
    is_verified: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
