"""Pytest fixtures for the item tracker tests."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from app.database import get_session
from app.errors import UnauthenticatedError
from app.main import app
from app.models import User
from app.services.auth import get_current_user
from app.services.teams import create_team


@pytest.fixture
def engine():
    """In-memory database shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def make_user(session):
    def _make_user(username, email=None):
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            first_name=username.title(),
            last_name="Tester",
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_team(session):
    def _make_team(owner, name="Groceries"):
        return create_team(owner.id, name, session)
    return _make_team


@pytest.fixture
def client(engine):
    """API client; call ``client.login(user)`` to act as that user."""
    current = {}

    def override_session():
        with Session(engine) as session:
            yield session

    def override_user():
        if not current:
            raise UnauthenticatedError()
        return dict(current)

    def login(user):
        current.clear()
        current.update({"id": user.id, "email": user.email, "username": user.username})

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_current_user] = override_user
    test_client = TestClient(app)
    test_client.login = login
    yield test_client
    app.dependency_overrides.clear()
