"""Session schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class TokenPairResponse(BaseModel):
    """Tokens returned once at login; the refresh token is not returned again on refresh"""

    session_id: str
    access_token: str
    access_token_expiry: datetime
    refresh_token: str
    refresh_token_expiry: datetime
    token_type: str = "bearer"


class AccessTokenResponse(BaseModel):
    session_id: str
    access_token: str
    access_token_expiry: datetime
    token_type: str = "bearer"


class SessionResponse(BaseModel):
    session_id: str
    kind: str
    user_agent: Optional[str] = None
    access_token_expiry: datetime
    refresh_token_expiry: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RevokedResponse(BaseModel):
    revoked: int


def token_pair(issued) -> TokenPairResponse:
    """Build the login response from an ``IssuedSession``"""
    session = issued.session
    return TokenPairResponse(
        session_id=session.session_id,
        access_token=issued.access_token,
        access_token_expiry=session.access_token_expiry,
        refresh_token=issued.refresh_token,
        refresh_token_expiry=session.refresh_token_expiry,
    )


def access_token(issued) -> AccessTokenResponse:
    session = issued.session
    return AccessTokenResponse(
        session_id=session.session_id,
        access_token=issued.access_token,
        access_token_expiry=session.access_token_expiry,
    )
