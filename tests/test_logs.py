"""Tests for the security log store and log endpoints"""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from authwave.config import settings
from authwave.models.security_log import EventCode
from authwave.services import security_log
from authwave.services.errors import ValidationError

T1 = datetime(2026, 1, 1, 12, 0, 0)
T2 = T1 + timedelta(minutes=5)
T3 = T1 + timedelta(minutes=10)


@pytest.fixture
def three_logins(db, project):
    for moment in (T1, T2, T3):
        security_log.append(db, project.project_id, "usr_fixed", EventCode.LOGIN, timestamp=moment)
    return project


def test_query_newest_first_with_pagination(db, three_logins):
    project_id = three_logins.project_id

    first = security_log.query_by_user(db, project_id, "usr_fixed", page=1, page_size=2)
    second = security_log.query_by_user(db, project_id, "usr_fixed", page=2, page_size=2)

    assert [log.timestamp for log in first.items] == [T3, T2]
    assert [log.timestamp for log in second.items] == [T1]
    assert first.total == 3


def test_query_date_range_is_inclusive(db, three_logins):
    result = security_log.query_by_event(
        db, three_logins.project_id, "LOGIN", start_date=T1, end_date=T2
    )
    assert [log.timestamp for log in result.items] == [T2, T1]


def test_query_past_last_page_is_empty(db, three_logins):
    result = security_log.query_by_user(db, three_logins.project_id, "usr_fixed", page=5, page_size=2)
    assert result.items == []
    assert result.total == 3


def test_equal_timestamps_keep_reverse_insertion_order(db, project):
    first = security_log.append(db, project.project_id, "usr_fixed", EventCode.LOGIN, timestamp=T1)
    second = security_log.append(db, project.project_id, "usr_fixed", EventCode.LOGOUT, timestamp=T1)

    result = security_log.query_by_user(db, project.project_id, "usr_fixed")
    assert [log.log_id for log in result.items] == [second.log_id, first.log_id]


def test_query_by_user_and_event(db, project):
    security_log.append(db, project.project_id, "usr_a", EventCode.LOGIN, timestamp=T1)
    security_log.append(db, project.project_id, "usr_a", EventCode.LOGOUT, timestamp=T2)
    security_log.append(db, project.project_id, "usr_b", EventCode.LOGIN, timestamp=T3)

    result = security_log.query_by_user_and_event(db, project.project_id, "usr_a", "LOGIN")
    assert [(log.user_id, log.event_code) for log in result.items] == [("usr_a", "LOGIN")]


def test_queries_are_scoped_to_project(db, admin, three_logins, make_project):
    other = make_project(admin, name="Other Project")
    result = security_log.query_by_event(db, other.project_id, EventCode.LOGIN)
    assert result.items == []


def test_page_size_is_clamped(db, three_logins):
    result = security_log.query_by_user(
        db, three_logins.project_id, "usr_fixed", page_size=settings.LOG_QUERY_MAX_PAGE_SIZE + 50
    )
    assert result.page_size == settings.LOG_QUERY_MAX_PAGE_SIZE


@pytest.mark.parametrize(
    "kwargs",
    [
        {"page": 0},
        {"page_size": 0},
        {"start_date": T3, "end_date": T1},
    ],
)
def test_invalid_window_rejected(db, project, kwargs):
    with pytest.raises(ValidationError):
        security_log.query_by_user(db, project.project_id, "usr_fixed", **kwargs)


def test_aware_bounds_compare_with_naive_timestamps(db, three_logins):
    aware_t1 = T1.replace(tzinfo=timezone.utc)
    # 14:05 at UTC+2 is T2
    aware_t2 = datetime(2026, 1, 1, 14, 5, tzinfo=timezone(timedelta(hours=2)))

    mixed = security_log.query_by_event(db, three_logins.project_id, "LOGIN", start_date=aware_t1, end_date=T2)
    assert [log.timestamp for log in mixed.items] == [T2, T1]

    aware = security_log.query_by_user(
        db, three_logins.project_id, "usr_fixed", start_date=aware_t1, end_date=aware_t2
    )
    assert aware.total == 2

    with pytest.raises(ValidationError):
        security_log.query_by_event(db, three_logins.project_id, "LOGIN", start_date=T3, end_date=aware_t1)


def test_unknown_event_code_rejected(db, project):
    with pytest.raises(ValidationError):
        security_log.query_by_event(db, project.project_id, "NOT_A_CODE")
    with pytest.raises(ValidationError):
        security_log.append(db, project.project_id, None, "NOT_A_CODE")


def test_missing_user_id_rejected(db, project):
    with pytest.raises(ValidationError):
        security_log.query_by_user(db, project.project_id, None)


def test_metadata_round_trips(db, project):
    security_log.append(db, project.project_id, "usr_a", EventCode.LOGIN_FAILED, metadata={"reason": "bad"})

    result = security_log.query_by_event(db, project.project_id, EventCode.LOGIN_FAILED)
    assert result.items[0].log_metadata == {"reason": "bad"}


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

def test_user_reads_own_logs(client: TestClient, user, user_headers: dict):
    response = client.get("/logs/user", headers=user_headers)
    assert response.status_code == 200

    data = response.json()
    assert [log["event_code"] for log in data["logs"]] == ["LOGIN", "ACCOUNT_CREATED"]
    assert all(log["user_id"] == user.user_id for log in data["logs"])


def test_user_logs_by_event(client: TestClient, user_headers: dict):
    response = client.get("/logs/user/event", params={"event_code": "LOGIN"}, headers=user_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 1


def test_admin_reads_user_logs(client: TestClient, console_headers: dict, user, user_tokens: dict):
    response = client.get("/logs/user", params={"user_id": user.user_id}, headers=console_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 2

    missing = client.get("/logs/user", headers=console_headers)
    assert missing.status_code == 400
    assert missing.json()["error"] == "VALIDATION_ERROR"


def test_admin_reads_logs_by_event(client: TestClient, console_headers: dict, user_tokens: dict):
    response = client.get("/logs/event", params={"event_code": "LOGIN"}, headers=console_headers)
    assert response.status_code == 200
    assert response.json()["logs"][0]["metadata"]["session_id"] == user_tokens["session_id"]

    bad = client.get("/logs/event", params={"event_code": "BOGUS"}, headers=console_headers)
    assert bad.status_code == 400


def test_reversed_range_rejected_over_http(client: TestClient, console_headers: dict):
    response = client.get(
        "/logs/event",
        params={"event_code": "LOGIN", "start_date": T3.isoformat(), "end_date": T1.isoformat()},
        headers=console_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


def test_mixed_timezone_range_over_http(client: TestClient, console_headers: dict, user, user_tokens: dict):
    response = client.get(
        "/logs/user",
        params={"user_id": user.user_id, "start_date": "2024-01-01T00:00:00Z", "end_date": "2099-01-01T00:00:00"},
        headers=console_headers,
    )
    assert response.status_code == 200
    assert response.json()["total"] == 2


def test_admin_cannot_read_other_admins_project(client: TestClient, db, project, user, make_admin, bearer):
    make_admin(email="intruder@example.com")
    login = client.post(
        "/admin/session", json={"email": "intruder@example.com", "password": "admin-password-1"}
    )
    headers = bearer(login.json()["access_token"], project.project_key)

    response = client.get("/logs/user", params={"user_id": user.user_id}, headers=headers)
    assert response.status_code == 403
