"""Shared fixtures: in-memory database, users per role and an API client."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.pop("CRON_SECRET", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import kanvaro.models  # noqa: F401
from kanvaro.core.rate_limiter import limiter
from kanvaro.core.security import create_access_token, hash_password
from kanvaro.db.base import Base
from kanvaro.db.session import get_db
from kanvaro.models.custom_role import CustomRole
from kanvaro.models.organization import Organization
from kanvaro.models.project import Project, ProjectMember, ProjectRoleAssignment
from kanvaro.models.user import User
from kanvaro.permissions.catalog import SystemRole


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio for async tests."""
    return "asyncio"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def org(db) -> Organization:
    organization = Organization(name="Acme")
    db.add(organization)
    db.commit()
    db.refresh(organization)
    return organization


@pytest.fixture
def make_user(db, org):
    """Factory creating an active user in the test organization."""
    counter = {"n": 0}

    def _make(role: SystemRole = SystemRole.team_member, custom_role=None, organization=None) -> User:
        counter["n"] += 1
        user = User(
            organization_id=(organization or org).id,
            email=f"{role.value}{counter['n']}@acme.test",
            hashed_password=hash_password("password123"),
            first_name=role.value.title(),
            last_name=str(counter["n"]),
            role=role,
            custom_role_id=custom_role.id if custom_role else None,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_custom_role(db, org):
    def _make(name: str, permissions, organization=None) -> CustomRole:
        role = CustomRole(organization_id=(organization or org).id, name=name, is_active=True)
        role.permissions = permissions
        db.add(role)
        db.commit()
        db.refresh(role)
        return role

    return _make


@pytest.fixture
def make_project(db, org):
    def _make(creator: User, name: str = "Website", **kwargs) -> Project:
        project = Project(
            organization_id=kwargs.pop("organization_id", org.id),
            name=name,
            created_by=creator.id,
            **kwargs,
        )
        db.add(project)
        db.commit()
        db.refresh(project)
        return project

    return _make


@pytest.fixture
def add_member(db):
    def _add(project: Project, user: User) -> ProjectMember:
        member = ProjectMember(project_id=project.id, user_id=user.id)
        db.add(member)
        db.commit()
        return member

    return _add


@pytest.fixture
def assign_role(db):
    def _assign(project: Project, user: User, role: str = None, custom_role: CustomRole = None):
        assignment = ProjectRoleAssignment(
            project_id=project.id,
            user_id=user.id,
            role=role,
            custom_role_id=custom_role.id if custom_role else None,
        )
        db.add(assignment)
        db.commit()
        return assignment

    return _assign


@pytest.fixture
def admin(make_user) -> User:
    return make_user(SystemRole.admin)


@pytest.fixture
def viewer(make_user) -> User:
    return make_user(SystemRole.viewer)


@pytest.fixture
def member(make_user) -> User:
    return make_user(SystemRole.team_member)


def auth_headers(user: User) -> dict:
    token = create_access_token({
        "sub": str(user.id),
        "org": str(user.organization_id),
        "role": SystemRole(user.role).value,
        "email": user.email,
    })
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers


@pytest.fixture
def client(db):
    """TestClient bound to the test session, with rate limiting off."""
    from kanvaro.main import app

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    limiter.enabled = False
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def app_broadcaster(client):
    """The broadcaster created by the app lifespan."""
    return client.app.state.broadcaster
