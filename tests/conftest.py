import os

import pytest
from fastapi.testclient import TestClient

# Set test environment before importing app
os.environ["JWT_SECRET"] = "test-signing-secret-for-employdex-tests-only"  # noqa: S105
os.environ["DATABASE_URL"] = "sqlite:///./test_employdex.db"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ADMIN_EMAIL"] = "admin@example.com"
os.environ["ADMIN_MOBILE"] = "9999999999"
os.environ["ADMIN_PASSWORD"] = "AdminPass1"

from employdex.core.security import hash_password
from employdex.db.base import Base
from employdex.db.seeds.seed_admin import seed_admin
from employdex.db.seeds.seed_rbac import seed_rbac
from employdex.db.session import SessionLocal, engine, get_db
from employdex.main import app
from employdex.models import Permission, Role, RolePermission, User, UserRole
from employdex.services.audit_service import RecordingAuditSink

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "AdminPass1"
USER_PASSWORD = "UserPass1"


@pytest.fixture(scope="function")
def db_session():
    """Fresh schema, seeded catalog and primary admin, for each test."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    seed_rbac(session, verbose=False)
    seed_admin(session, verbose=False)
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture(scope="function")
def client(db_session, audit_sink):
    """Test client sharing the test session, with a recording audit sink."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    original_sink = app.state.audit_sink
    app.state.audit_sink = audit_sink
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.audit_sink = original_sink


@pytest.fixture
def make_role(db_session):
    """Create a non-system role granted the named permissions."""

    def _make_role(name, permissions=()):
        role = Role(name=name, description=f"{name} role", is_system=False)
        db_session.add(role)
        db_session.flush()
        if permissions:
            perms = db_session.query(Permission).filter(Permission.name.in_(list(permissions))).all()
            for perm in perms:
                db_session.add(RolePermission(role_id=role.id, permission_id=perm.id))
        db_session.commit()
        db_session.refresh(role)
        return role

    return _make_role


@pytest.fixture
def make_user(db_session):
    """Create a user holding the named roles."""
    counter = {"n": 0}

    def _make_user(email, roles=("User",), password=USER_PASSWORD, is_active=True, mobile=None):
        counter["n"] += 1
        user = User(
            email=email,
            mobile_number=mobile or f"70000000{counter['n']:02d}",
            hashed_password=hash_password(password),
            first_name=email.split("@")[0].title(),
            last_name="Tester",
            is_active=is_active,
        )
        db_session.add(user)
        db_session.flush()
        for role in db_session.query(Role).filter(Role.name.in_(list(roles))).all():
            db_session.add(UserRole(user_id=user.id, role_id=role.id))
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


def login(client, email, password):
    response = client.post(
        "/api/authentication/login",
        json={"identifier": {"kind": "email", "value": email}, "password": password},
    )
    assert response.status_code == 200, response.text
    return response.json()["token"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client):
    return bearer(login(client, ADMIN_EMAIL, ADMIN_PASSWORD))


@pytest.fixture
def user_headers(client, make_user):
    """Plain "User" role holder, no permissions."""
    make_user("plain@example.com")
    return bearer(login(client, "plain@example.com", USER_PASSWORD))


@pytest.fixture
def headers_for(client, make_user, make_role):
    """Headers for a fresh user whose only role grants ``permissions``."""

    def _headers_for(*permissions, role_name=None):
        name = role_name or "role_" + "_".join(permissions or ("none",))
        make_role(name, permissions)
        email = f"{name.lower()}@example.com"
        make_user(email, roles=(name,))
        return bearer(login(client, email, USER_PASSWORD))

    return _headers_for


@pytest.fixture
def login_as(client):
    """Log in by email and return bearer headers."""

    def _login_as(email, password=USER_PASSWORD):
        return bearer(login(client, email, password))

    return _login_as
