"""Tests for the project registry"""
import pytest
from fastapi.testclient import TestClient

from authwave.services import projects
from authwave.services.errors import AlreadyExists, InvalidApiKey, InvalidFormat, NotFound, PermissionDenied


def test_create_project_defaults(db, admin, make_project):
    project = make_project(admin)

    assert project.project_id.startswith("prj_")
    assert project.owner_id == admin.admin_id
    assert project.config["login_methods"]["email_password"] is True
    assert project.config["security"] == {"user_limit": 1000, "user_session_limit": 5}
    assert project.config["email_templates"] == {}
    assert projects.resolve_project_key(db, project.project_key).project_id == project.project_id


def test_project_name_unique_per_owner(db, admin, make_admin, make_project):
    make_project(admin, name="Shop")

    with pytest.raises(AlreadyExists):
        make_project(admin, name="Shop")

    # Another admin may reuse the name
    other = make_admin(email="other@example.com")
    assert make_project(other, name="Shop").owner_id == other.admin_id


@pytest.mark.parametrize("name", ["", "   ", "-leading-dash", "bad/name", "x" * 51])
def test_create_project_rejects_invalid_name(db, admin, name, make_project):
    with pytest.raises(InvalidFormat):
        make_project(admin, name=name)


def test_create_project_rejects_invalid_email(db, admin):
    with pytest.raises(InvalidFormat) as exc_info:
        projects.create_project(db, admin.admin_id, "Shop", "Shop App", "not-an-email")

    assert exc_info.value.details[0]["field"] == "app_email"


def test_create_project_rejects_invalid_config_before_write(db, admin, make_project):
    with pytest.raises(InvalidFormat):
        make_project(admin, config={"security": {"user_limit": 0, "user_session_limit": 5}})

    assert projects.list_projects(db, admin.admin_id) == []


def test_rotate_key_invalidates_previous_key(db, project):
    old_key = project.project_key
    new_key = projects.rotate_key(db, project.project_id)

    assert new_key != old_key
    assert projects.resolve_project_key(db, new_key).project_id == project.project_id
    with pytest.raises(InvalidApiKey):
        projects.resolve_project_key(db, old_key)


def test_resolve_project_key_rejects_garbage(db, project):
    with pytest.raises(InvalidApiKey):
        projects.resolve_project_key(db, "garbage")


def test_get_owned_project_checks_owner(db, project, make_admin):
    other = make_admin(email="other@example.com")

    with pytest.raises(PermissionDenied):
        projects.get_owned_project(db, project.project_id, other.admin_id)
    with pytest.raises(NotFound):
        projects.get_owned_project(db, "prj_missing", other.admin_id)


def test_update_config_replaces_section(db, project):
    updated = projects.update_config(
        db, project.project_id, "security", {"user_limit": 10, "user_session_limit": 2}
    )

    assert updated.config["security"] == {"user_limit": 10, "user_session_limit": 2}
    assert updated.config["login_methods"]["email_password"] is True


@pytest.mark.parametrize(
    "section, value",
    [
        ("unknown", {"a": 1}),
        ("security", {}),
        ("security", {"user_limit": -1, "user_session_limit": 5}),
        ("security", {"user_limit": "10", "user_session_limit": 5}),
        ("login_methods", {"carrier_pigeon": True}),
        ("email_templates", {"welcome": {"subject": "Hi"}}),
    ],
)
def test_update_config_rejects_invalid_values(db, project, section, value):
    with pytest.raises(InvalidFormat):
        projects.update_config(db, project.project_id, section, value)


def test_update_config_missing_project(db):
    with pytest.raises(NotFound):
        projects.update_config(db, "prj_missing", "security", {"user_limit": 1, "user_session_limit": 1})


def test_reset_security_defaults(db, project):
    projects.update_config(db, project.project_id, "security", {"user_limit": 3, "user_session_limit": 1})
    reset = projects.reset_security_defaults(db, project.project_id)

    assert reset.config["security"] == {"user_limit": 1000, "user_session_limit": 5}


def test_remove_email_template_override(db, project):
    projects.update_config(
        db,
        project.project_id,
        "email_templates",
        {
            "welcome": {"subject": "Welcome", "body": "Hello there"},
            "reset_password": {"subject": "Reset", "body": "Use this link"},
        },
    )

    updated = projects.remove_email_template_override(db, project.project_id, "welcome")
    assert list(updated.config["email_templates"]) == ["reset_password"]

    # Removing an absent override is a no-op
    again = projects.remove_email_template_override(db, project.project_id, "welcome")
    assert list(again.config["email_templates"]) == ["reset_password"]

    with pytest.raises(InvalidFormat):
        projects.remove_email_template_override(db, project.project_id, "newsletter")


def test_update_app_name_and_email(db, project):
    assert projects.update_app_name(db, project.project_id, "  Renamed App ").app_name == "Renamed App"
    assert projects.update_app_email(db, project.project_id, "hello@example.com").app_email == "hello@example.com"

    with pytest.raises(InvalidFormat):
        projects.update_app_name(db, project.project_id, "")


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

def test_create_project_endpoint(client: TestClient, admin_headers: dict):
    response = client.post(
        "/projects",
        json={
            "name": "Storefront",
            "app_name": "Storefront App",
            "app_email": "noreply@example.com",
            "config": {"login_methods": {"email_password": True, "magic_url": True}},
        },
        headers=admin_headers,
    )
    assert response.status_code == 201

    data = response.json()
    assert data["project_id"].startswith("prj_")
    assert data["project_key"]
    assert data["config"]["login_methods"]["magic_url"] is True
    assert data["config"]["security"]["user_session_limit"] == 5


def test_create_project_requires_admin(client: TestClient):
    response = client.post(
        "/projects", json={"name": "Storefront", "app_name": "App", "app_email": "a@example.com"}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "TOKEN_INVALID"


def test_create_duplicate_project_endpoint(client: TestClient, admin_headers: dict, project):
    response = client.post(
        "/projects",
        json={"name": project.name, "app_name": "App", "app_email": "a@example.com"},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "ALREADY_EXISTS"


def test_rotate_key_endpoint(client: TestClient, console_headers: dict, admin_tokens: dict, bearer):
    response = client.post("/project/key", headers=console_headers)
    assert response.status_code == 200
    new_key = response.json()["project_key"]

    # Old key is rejected, new key works
    stale = client.get("/project/overview", headers=console_headers)
    assert stale.status_code == 401
    assert stale.json()["error"] == "INVALID_API_KEY"

    fresh = client.get("/project/overview", headers=bearer(admin_tokens["access_token"], new_key))
    assert fresh.status_code == 200


def test_update_config_endpoint(client: TestClient, console_headers: dict):
    response = client.put(
        "/project/config/security",
        json={"user_limit": 50, "user_session_limit": 3},
        headers=console_headers,
    )
    assert response.status_code == 200
    assert response.json()["config"]["security"] == {"user_limit": 50, "user_session_limit": 3}

    invalid = client.put("/project/config/security", json={}, headers=console_headers)
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "INVALID_FORMAT"

    reset = client.post("/project/config/security/reset", headers=console_headers)
    assert reset.json()["config"]["security"] == {"user_limit": 1000, "user_session_limit": 5}


def test_project_endpoints_require_owner(client: TestClient, db, project, make_admin, bearer):
    make_admin(email="intruder@example.com")
    login = client.post(
        "/admin/session", json={"email": "intruder@example.com", "password": "admin-password-1"}
    )
    headers = bearer(login.json()["access_token"], project.project_key)

    response = client.get("/project/overview", headers=headers)
    assert response.status_code == 403
    assert response.json()["error"] == "ADMIN_PERMISSION_REQUIRED"

    response = client.get(f"/projects/{project.project_id}", headers=bearer(login.json()["access_token"]))
    assert response.status_code == 403


def test_project_overview_endpoint(client: TestClient, console_headers: dict, user_tokens: dict, project):
    response = client.get("/project/overview", headers=console_headers)
    assert response.status_code == 200

    data = response.json()
    assert data["project_id"] == project.project_id
    assert data["user_count"] == 1
    assert data["live_session_count"] == 1
    # ACCOUNT_CREATED + LOGIN
    assert data["security_log_count"] == 2
