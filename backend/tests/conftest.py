"""Shared test fixtures for backend tests."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from vanguard_desk.core.database import get_session, register_models
from vanguard_desk.core.security import create_access_token
from vanguard_desk.models.thread import SenderRole, ThreadMessage, utcnow
from vanguard_desk.models.user import Role, User

# In-memory SQLite with StaticPool so all connections (including threads) share one DB
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def get_test_session():
    with Session(test_engine) as session:
        yield session


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after."""
    register_models()
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def engine():
    return test_engine


@pytest.fixture
def session():
    with Session(test_engine) as session:
        yield session


def _create_user(username: str, role: Role, is_active: bool = True) -> User:
    with Session(test_engine) as session:
        user = User(username=username, email=f"{username}@example.com", role=role, is_active=is_active)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user


@pytest.fixture
def make_user():
    return _create_user


@pytest.fixture
def customer():
    return _create_user("alice", Role.USER)


@pytest.fixture
def other_customer():
    return _create_user("bob", Role.USER)


@pytest.fixture
def editor():
    return _create_user("erin", Role.EDITOR)


@pytest.fixture
def admin():
    return _create_user("adam", Role.ADMIN)


@pytest.fixture
def seed_message():
    """Insert a message directly, e.g. with a timestamp in the past."""
    def seed(thread_id: int, sender: SenderRole, user_id: int | None, text: str, at=None) -> str:
        with Session(test_engine) as session:
            message = ThreadMessage(
                thread_id=thread_id,
                sender=sender,
                sender_user_id=user_id,
                text=text,
                at=at or utcnow(),
            )
            session.add(message)
            session.commit()
            session.refresh(message)
            return message.uid
    return seed


@pytest.fixture
def auth():
    """Build request headers for a user."""
    def headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}
    return headers


@pytest.fixture
def client():
    """FastAPI TestClient bound to the in-memory database."""
    with patch("vanguard_desk.core.database.engine", test_engine):
        from vanguard_desk.main import app

        # Use FastAPI's dependency override for get_session
        app.dependency_overrides[get_session] = get_test_session

        with TestClient(app) as c:
            yield c

        app.dependency_overrides.clear()
