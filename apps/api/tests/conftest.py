"""
Test configuration and fixtures.
"""
import os
import pytest
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Set test settings before importing app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-only-jwt-secret-key-with-at-least-32-characters"
os.environ["OPENAI_API_KEY"] = ""
os.environ["REDIS_URL"] = "redis://localhost:6399/0"

from catering_ops.main import app
from catering_ops.core import roles
from catering_ops.core.security import hash_password
from catering_ops.db.base import Base
from catering_ops.db.session import get_db
from catering_ops.models.user import User

TEST_PASSWORD = "testpassword123"

# One in-memory database shared by the test session and the app
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh schema and a session for the test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database session override."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


def make_user(
    db: Session,
    email: str,
    role: str,
    station_assignment: str | None = None,
    branch_slugs: list[str] | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
) -> User:
    user = User(
        email=email,
        hashed_password=hash_password(TEST_PASSWORD),
        first_name=first_name,
        last_name=last_name,
        role=role,
        station_assignment=station_assignment,
        branch_slugs=branch_slugs or [],
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def login(client: TestClient, user: User) -> dict:
    response = client.post(
        "/api/auth/login",
        json={"email": user.email, "password": TEST_PASSWORD}
    )
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_user(db: Session) -> User:
    return make_user(db, "admin@catering-ops.com", roles.ADMIN, first_name="Amal", last_name="Haddad")


@pytest.fixture
def ops_user(db: Session) -> User:
    return make_user(db, "ops@catering-ops.com", roles.OPERATIONS_LEAD, first_name="Omar")


@pytest.fixture
def chef_user(db: Session) -> User:
    return make_user(db, "chef@catering-ops.com", roles.HEAD_CHEF, first_name="Rania", last_name="Saleh")


@pytest.fixture
def station_user(db: Session) -> User:
    return make_user(db, "hotline@catering-ops.com", roles.STATION_STAFF, station_assignment="Hot Line")


@pytest.fixture
def dispatcher_user(db: Session) -> User:
    return make_user(db, "dispatch@catering-ops.com", roles.DISPATCHER, first_name="Lina")


@pytest.fixture
def branch_manager_user(db: Session) -> User:
    return make_user(db, "manager@catering-ops.com", roles.BRANCH_MANAGER, branch_slugs=["marina"])


@pytest.fixture
def branch_staff_user(db: Session) -> User:
    return make_user(db, "staff@catering-ops.com", roles.BRANCH_STAFF, branch_slugs=["marina"])


@pytest.fixture
def regional_user(db: Session) -> User:
    return make_user(db, "regional@catering-ops.com", roles.REGIONAL_MANAGER, first_name="Hana")


@pytest.fixture
def ck_user(db: Session) -> User:
    return make_user(db, "ck@catering-ops.com", roles.CENTRAL_KITCHEN, first_name="Sami")


@pytest.fixture
def admin_headers(client: TestClient, admin_user: User) -> dict:
    return login(client, admin_user)


@pytest.fixture
def ops_headers(client: TestClient, ops_user: User) -> dict:
    return login(client, ops_user)


@pytest.fixture
def chef_headers(client: TestClient, chef_user: User) -> dict:
    return login(client, chef_user)


@pytest.fixture
def station_headers(client: TestClient, station_user: User) -> dict:
    return login(client, station_user)


@pytest.fixture
def dispatcher_headers(client: TestClient, dispatcher_user: User) -> dict:
    return login(client, dispatcher_user)


@pytest.fixture
def branch_manager_headers(client: TestClient, branch_manager_user: User) -> dict:
    return login(client, branch_manager_user)


@pytest.fixture
def branch_staff_headers(client: TestClient, branch_staff_user: User) -> dict:
    return login(client, branch_staff_user)


@pytest.fixture
def regional_headers(client: TestClient, regional_user: User) -> dict:
    return login(client, regional_user)


@pytest.fixture
def ck_headers(client: TestClient, ck_user: User) -> dict:
    return login(client, ck_user)
