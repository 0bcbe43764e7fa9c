"""Tests for token issuance and verification"""
from datetime import timedelta

import pytest
from jose import jwt

from authwave.services.errors import TokenExpired, TokenInvalid
from authwave.utils.jwt_utils import decode_unverified, issue_token, token_expiry, verify_token
from authwave.utils.timeutils import utcnow

SECRET = "unit-test-secret"


def test_verify_returns_original_payload():
    payload = {"sub": "usr_abc", "sid": "ses_123", "type": "user"}
    token = issue_token(payload, SECRET, ttl_seconds=60)

    assert verify_token(token, SECRET) == payload


def test_token_without_ttl_has_no_expiry():
    token = issue_token({"project_id": "prj_1"}, SECRET)

    claims = decode_unverified(token)
    assert "exp" not in claims
    assert verify_token(token, SECRET, now=utcnow() + timedelta(days=3650)) == {"project_id": "prj_1"}


def test_tokens_issued_in_same_second_differ():
    now = utcnow()
    first = issue_token({"sub": "a"}, SECRET, ttl_seconds=60, now=now)
    second = issue_token({"sub": "a"}, SECRET, ttl_seconds=60, now=now)

    assert first != second


def test_expired_token_rejected():
    issued_at = utcnow()
    token = issue_token({"sub": "a"}, SECRET, ttl_seconds=60, now=issued_at)

    # Valid just before expiry
    verify_token(token, SECRET, now=issued_at + timedelta(seconds=59))

    # Expired exactly at exp
    with pytest.raises(TokenExpired):
        verify_token(token, SECRET, now=issued_at + timedelta(seconds=60))


def test_wrong_secret_rejected():
    token = issue_token({"sub": "a"}, SECRET, ttl_seconds=60)

    with pytest.raises(TokenInvalid):
        verify_token(token, "another-secret")


def test_tampered_token_rejected():
    token = issue_token({"sub": "a"}, SECRET, ttl_seconds=60)
    forged = jwt.encode({"sub": "admin"}, "guessed-secret", algorithm="HS256")
    header, _, signature = token.split(".")
    _, forged_payload, _ = forged.split(".")

    with pytest.raises(TokenInvalid):
        verify_token(f"{header}.{forged_payload}.{signature}", SECRET)


def test_malformed_token_rejected():
    with pytest.raises(TokenInvalid):
        verify_token("not-a-jwt", SECRET)

    assert decode_unverified("not-a-jwt") is None


def test_token_expiry_matches_ttl():
    now = utcnow().replace(microsecond=0)
    assert token_expiry(3600, now=now) == now + timedelta(hours=1)
