"""JWT utilities: signed token issuance, verification and unverified decoding.

Tokens are HMAC-signed (``JWT_ALGORITHM``, HS256 by default) with a secret that
the caller passes in: the access, refresh and project-key secrets are distinct
settings and none of these functions reads them implicitly.

A token's own ``exp`` claim is only the first line of defence. Callers that hold
server-side state (sessions, project keys) must also compare against the stored
record so that revocation takes effect before the token would expire by itself.
"""
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from authwave.config import settings
from authwave.services.errors import TokenExpired, TokenInvalid
from authwave.utils.logger import logger
from authwave.utils.timeutils import utcnow

# Claims added by issue_token and stripped again by verify_token
_REGISTERED_CLAIMS = ("iat", "exp", "jti")


def _timestamp(moment: datetime) -> int:
    return int((moment - datetime(1970, 1, 1)).total_seconds())


# ---------------------------------------------------------------------------
# Token creation
# ---------------------------------------------------------------------------

def issue_token(
    payload: Dict[str, Any],
    secret: str,
    ttl_seconds: Optional[int] = None,
    now: Optional[datetime] = None,
) -> str:
    """Sign and return a JWT.

    Args:
        payload:     Application claims to embed.
        secret:      HMAC signing secret.
        ttl_seconds: Lifetime in seconds; ``None`` issues a token without ``exp``
                     (used for project keys, which are revoked by rotation).
        now:         Issue time override (naive UTC).

    Returns:
        Signed JWT string.
    """
    issued_at = _timestamp(now or utcnow())

    claims: Dict[str, Any] = {
        **payload,
        "iat": issued_at,
        "jti": str(uuid.uuid4()),
    }
    if ttl_seconds is not None:
        claims["exp"] = issued_at + ttl_seconds

    return jwt.encode(claims, secret, algorithm=settings.JWT_ALGORITHM)


def token_expiry(ttl_seconds: int, now: Optional[datetime] = None) -> datetime:
    """Return the expiry datetime stored next to a token issued at ``now``."""
    issued_at = (now or utcnow()).replace(microsecond=0)
    return issued_at + timedelta(seconds=ttl_seconds)


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------

def verify_token(token: str, secret: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Verify a JWT and return its application payload.

    Raises:
        TokenInvalid: signature mismatch or malformed token.
        TokenExpired: the current time is at or past the ``exp`` claim.
    """
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError as exc:
        logger.debug(f"JWT decode failed: {exc}")
        raise TokenInvalid("Token is invalid or malformed") from exc

    exp = claims.get("exp")
    if exp is not None:
        if not isinstance(exp, (int, float)):
            raise TokenInvalid("Token carries a malformed expiry claim")
        if _timestamp(now or utcnow()) >= exp:
            raise TokenExpired("Token has expired")

    return {key: value for key, value in claims.items() if key not in _REGISTERED_CLAIMS}


def decode_unverified(token: str) -> Optional[Dict[str, Any]]:
    """Return the claims of a token without checking its signature.

    Only used to read an identity hint (the session id of a refresh token) before
    the authoritative check against the stored record. Returns ``None`` when the
    token cannot be parsed at all.
    """
    try:
        return jwt.get_unverified_claims(token)
    except JWTError:
        return None
