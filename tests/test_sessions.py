"""Tests for the session manager"""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from authwave.config import settings
from authwave.models.security_log import EventCode, SecurityLog
from authwave.models.session import SESSION_KIND_ADMIN, SESSION_KIND_USER
from authwave.services import projects, sessions
from authwave.services.errors import (
    ApiLimitExceeded,
    NotFound,
    RefreshTokenExpired,
    RefreshTokenInvalid,
    TokenExpired,
    TokenInvalid,
)
from authwave.utils.jwt_utils import issue_token
from authwave.utils.timeutils import utcnow


def _user_session(db, project, user, **kwargs):
    return sessions.create_session(db, SESSION_KIND_USER, user.user_id, project=project, **kwargs)


def test_create_user_session_and_authenticate(db, project, user):
    issued = _user_session(db, project, user, user_agent="pytest")

    session = sessions.authenticate(db, issued.access_token)
    assert session.session_id == issued.session.session_id
    assert session.user_id == user.user_id
    assert session.project_id == project.project_id
    assert session.user_agent == "pytest"

    codes = [log.event_code for log in db.query(SecurityLog).filter(SecurityLog.user_id == user.user_id)]
    assert EventCode.LOGIN.value in codes


def test_revoked_session_token_rejected(db, project, user):
    issued = _user_session(db, project, user)
    sessions.revoke_session(db, issued.session.session_id)

    with pytest.raises(TokenInvalid):
        sessions.authenticate(db, issued.access_token)


def test_stored_expiry_is_authoritative(db, project, user):
    issued = _user_session(db, project, user)
    session = issued.session
    session.access_token_expiry = utcnow() - timedelta(seconds=1)
    db.commit()

    # The token's own exp is a day away, the stored expiry has passed
    with pytest.raises(TokenExpired):
        sessions.authenticate(db, issued.access_token)


def test_token_for_unknown_session_rejected(db):
    token = issue_token(
        {"sub": "usr_x", "sid": "ses_missing", "type": "user"},
        settings.ACCESS_TOKEN_SECRET,
        ttl_seconds=60,
    )
    with pytest.raises(TokenInvalid):
        sessions.authenticate(db, token)


def test_session_limit_rejects_new_session(db, project, user):
    projects.update_config(db, project.project_id, "security", {"user_limit": 10, "user_session_limit": 2})

    _user_session(db, project, user)
    _user_session(db, project, user)
    with pytest.raises(ApiLimitExceeded):
        _user_session(db, project, user)

    assert sessions.count_live_sessions(db, user.user_id) == 2
    exceeded = db.query(SecurityLog).filter(
        SecurityLog.event_code == EventCode.SESSION_LIMIT_EXCEEDED.value
    ).count()
    assert exceeded == 1


def test_session_limit_uses_current_config(db, project, user):
    projects.update_config(db, project.project_id, "security", {"user_limit": 10, "user_session_limit": 1})
    _user_session(db, project, user)
    with pytest.raises(ApiLimitExceeded):
        _user_session(db, project, user)

    projects.update_config(db, project.project_id, "security", {"user_limit": 10, "user_session_limit": 2})
    _user_session(db, project, user)
    assert sessions.count_live_sessions(db, user.user_id) == 2


def test_lowering_limit_keeps_existing_sessions(db, project, user):
    first = _user_session(db, project, user)
    second = _user_session(db, project, user)

    projects.update_config(db, project.project_id, "security", {"user_limit": 10, "user_session_limit": 1})

    # Existing sessions keep working; new ones are refused
    sessions.authenticate(db, first.access_token)
    sessions.authenticate(db, second.access_token)
    with pytest.raises(ApiLimitExceeded):
        _user_session(db, project, user)


def test_sessions_with_expired_refresh_do_not_count(db, project, user):
    projects.update_config(db, project.project_id, "security", {"user_limit": 10, "user_session_limit": 1})
    long_ago = utcnow() - timedelta(seconds=settings.REFRESH_TOKEN_EXPIRE_SECONDS + 60)
    _user_session(db, project, user, now=long_ago)

    # The stale session is not live any more
    assert sessions.count_live_sessions(db, user.user_id) == 0
    _user_session(db, project, user)


def test_admin_relogin_overwrites_session(db, admin):
    first = sessions.create_session(db, SESSION_KIND_ADMIN, admin.admin_id)
    first_id = first.session.session_id
    first_token = first.access_token

    second = sessions.create_session(db, SESSION_KIND_ADMIN, admin.admin_id)

    assert second.session.session_id == first_id
    assert second.access_token != first_token
    sessions.authenticate(db, second.access_token)
    with pytest.raises(TokenInvalid):
        sessions.authenticate(db, first_token)


def test_refresh_mints_new_access_token(db, project, user):
    issued = _user_session(db, project, user)

    refreshed = sessions.refresh(db, issued.refresh_token)

    assert refreshed.access_token != issued.access_token
    assert refreshed.refresh_token == issued.refresh_token
    sessions.authenticate(db, refreshed.access_token)
    with pytest.raises(TokenInvalid):
        sessions.authenticate(db, issued.access_token)


def test_refresh_rejects_forged_token(db, project, user):
    issued = _user_session(db, project, user)
    forged = issue_token(
        {"sub": user.user_id, "sid": issued.session.session_id, "type": "user"},
        "attacker-secret",
        ttl_seconds=60,
    )

    with pytest.raises(RefreshTokenInvalid):
        sessions.refresh(db, forged)
    with pytest.raises(RefreshTokenInvalid):
        sessions.refresh(db, "garbage")


def test_refresh_unknown_session(db):
    token = issue_token({"sid": "ses_gone", "type": "user"}, settings.REFRESH_TOKEN_SECRET, ttl_seconds=60)

    with pytest.raises(NotFound):
        sessions.refresh(db, token)


def test_refresh_after_stored_expiry(db, project, user):
    issued = _user_session(db, project, user)
    later = utcnow() + timedelta(seconds=settings.REFRESH_TOKEN_EXPIRE_SECONDS + 1)

    with pytest.raises(RefreshTokenExpired):
        sessions.refresh(db, issued.refresh_token, now=later)


def test_refresh_restricted_by_kind(db, admin, project, user):
    issued = _user_session(db, project, user)

    with pytest.raises(RefreshTokenInvalid):
        sessions.refresh(db, issued.refresh_token, kind=SESSION_KIND_ADMIN)


def test_revoke_all_sessions(db, project, user, make_user):
    _user_session(db, project, user)
    _user_session(db, project, user)
    other = make_user(project, email="bob@example.com")
    _user_session(db, project, other)

    assert sessions.revoke_all_sessions(db, SESSION_KIND_USER, user.user_id) == 2
    assert sessions.list_user_sessions(db, user.user_id) == []
    assert len(sessions.list_user_sessions(db, other.user_id)) == 1


def test_revoke_session_checks_owner(db, project, user, make_user):
    issued = _user_session(db, project, user)
    other = make_user(project, email="bob@example.com")

    with pytest.raises(NotFound):
        sessions.revoke_session(db, issued.session.session_id, user_id=other.user_id)


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

def test_user_login_and_logout(client: TestClient, user_tokens: dict, user_headers: dict):
    response = client.get("/user/account", headers=user_headers)
    assert response.status_code == 200

    response = client.delete("/user/session", headers=user_headers)
    assert response.status_code == 204

    response = client.get("/user/account", headers=user_headers)
    assert response.status_code == 401
    assert response.json()["error"] == "TOKEN_INVALID"


def test_user_login_wrong_password(client: TestClient, project, user):
    response = client.post(
        "/user/session",
        json={"email": user.email, "password": "wrong-password"},
        headers={"X-Project-Key": project.project_key},
    )
    assert response.status_code == 401
    assert response.json()["error"] == "INCORRECT_PASSWORD"


def test_user_login_requires_project_key(client: TestClient, user):
    response = client.post("/user/session", json={"email": user.email, "password": "user-password-1"})
    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_API_KEY"


def test_user_refresh_endpoint(client: TestClient, project, user_tokens: dict, bearer):
    response = client.post(
        "/user/access-token/refresh",
        headers=bearer(user_tokens["refresh_token"], project.project_key),
    )
    assert response.status_code == 200

    new_access = response.json()["access_token"]
    assert new_access != user_tokens["access_token"]
    assert client.get("/user/account", headers=bearer(new_access)).status_code == 200


def test_admin_refresh_rejects_user_token(client: TestClient, user_tokens: dict, bearer):
    response = client.post("/admin/access-token/refresh", headers=bearer(user_tokens["refresh_token"]))
    assert response.status_code == 401
    assert response.json()["error"] == "REFRESH_TOKEN_INVALID"


def test_admin_relogin_endpoint(client: TestClient, admin, admin_tokens: dict, bearer):
    second = client.post("/admin/session", json={"email": admin.email, "password": "admin-password-1"})
    assert second.status_code == 200

    stale = client.get("/admin/account", headers=bearer(admin_tokens["access_token"]))
    assert stale.status_code == 401
    fresh = client.get("/admin/account", headers=bearer(second.json()["access_token"]))
    assert fresh.status_code == 200


def test_list_and_revoke_own_sessions(client: TestClient, project, user, user_headers: dict, bearer):
    second = client.post(
        "/user/session",
        json={"email": user.email, "password": "user-password-1"},
        headers={"X-Project-Key": project.project_key},
    ).json()

    listed = client.get("/user/sessions", headers=user_headers)
    assert listed.status_code == 200
    assert len(listed.json()) == 2

    response = client.delete(f"/user/session/{second['session_id']}", headers=user_headers)
    assert response.status_code == 204
    assert client.get("/user/account", headers=bearer(second["access_token"])).status_code == 401

    response = client.delete("/user/sessions", headers=user_headers)
    assert response.json() == {"revoked": 1}


def test_user_token_cannot_reach_admin_endpoints(client: TestClient, user_headers: dict):
    response = client.get("/admin/account", headers=user_headers)
    assert response.status_code == 403
