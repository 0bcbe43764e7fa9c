"""Pytest configuration and fixtures"""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("PURGE_ORPHANED_PROJECTS_ON_STARTUP", "false")

from typing import Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from authwave.database import Base, get_db
from authwave.main import app
from authwave.models.admin import Admin
from authwave.models.project import Project
from authwave.models.user import User
from authwave.services import accounts, projects

# Use a throwaway SQLite file for tests
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

ADMIN_PASSWORD = "admin-password-1"
USER_PASSWORD = "user-password-1"


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database session override"""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_admin(db: Session) -> Callable[..., Admin]:
    """Factory for admins sharing the test password"""

    def _make_admin(email: str = "owner@example.com", name: str = "Owner") -> Admin:
        return accounts.create_admin(db, name, email, ADMIN_PASSWORD)

    return _make_admin


@pytest.fixture
def make_project(db: Session) -> Callable[..., Project]:
    """Factory for projects owned by a given admin"""

    def _make_project(owner: Admin, name: str = "Demo Project", config: Optional[dict] = None) -> Project:
        return projects.create_project(
            db, owner.admin_id, name, "Demo App", "noreply@example.com", config=config
        )

    return _make_project


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    """Factory for users of a given project sharing the test password"""

    def _make_user(project: Project, email: str = "alice@example.com") -> User:
        return accounts.create_user(db, project, email, USER_PASSWORD)

    return _make_user


@pytest.fixture
def admin(make_admin) -> Admin:
    return make_admin()


@pytest.fixture
def project(make_project, admin: Admin) -> Project:
    return make_project(admin)


@pytest.fixture
def user(make_user, project: Project) -> User:
    return make_user(project)


@pytest.fixture
def bearer() -> Callable[..., dict]:
    """Builder for authorization headers, optionally with a project key"""

    def _bearer(token: str, project_key: Optional[str] = None) -> dict:
        headers = {"Authorization": f"Bearer {token}"}
        if project_key:
            headers["X-Project-Key"] = project_key
        return headers

    return _bearer


@pytest.fixture
def admin_tokens(client: TestClient, admin: Admin) -> dict:
    """Token pair of a logged-in admin"""
    response = client.post("/admin/session", json={"email": admin.email, "password": ADMIN_PASSWORD})
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def admin_headers(admin_tokens: dict, bearer) -> dict:
    """Admin authentication headers"""
    return bearer(admin_tokens["access_token"])


@pytest.fixture
def console_headers(admin_tokens: dict, project: Project, bearer) -> dict:
    """Admin token plus the key of an owned project"""
    return bearer(admin_tokens["access_token"], project.project_key)


@pytest.fixture
def user_tokens(client: TestClient, project: Project, user: User) -> dict:
    """Token pair of a logged-in project user"""
    response = client.post(
        "/user/session",
        json={"email": user.email, "password": USER_PASSWORD},
        headers={"X-Project-Key": project.project_key},
    )
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def user_headers(user_tokens: dict, bearer) -> dict:
    return bearer(user_tokens["access_token"])
