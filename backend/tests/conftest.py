"""Pytest fixtures: in-memory SQLite database and signed session tokens."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("IDENTITY_JWT_SECRET", "test-secret")
os.environ.setdefault("ALLOWED_EMAIL_DOMAIN", "example.com")

import pytest
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.config import settings
from app.database import Base, get_db
from app.main import app

# Import all models so they register with Base.metadata
from app.models.user import User         # noqa: F401
from app.models.event import Event       # noqa: F401
from app.models.rsvp import Rsvp         # noqa: F401
from app.models.comment import Comment   # noqa: F401

SQLITE_URL = "sqlite://"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh in-memory SQLite engine for each test."""
    engine = create_engine(
        SQLITE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session for direct assertions on stored rows."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_engine):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)

    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def alice():
    return auth_headers("alice@example.com")


@pytest.fixture
def bob():
    return auth_headers("bob@example.com")


@pytest.fixture
def carol():
    return auth_headers("carol@example.com")


# ---------------------------------------------------------------------------
# Helpers: session tokens and API shortcuts
# ---------------------------------------------------------------------------
def make_token(email: str, subject: str = None, name: str = None, secret: str = None, **claims) -> str:
    """Sign a session token the way the identity provider would."""
    local_part = email.split("@")[0]
    payload = {
        "sub": subject or f"idp_{local_part}",
        "email": email,
        "name": name or local_part.title(),
        **claims,
    }
    return jwt.encode(
        payload,
        secret or settings.IDENTITY_JWT_SECRET,
        algorithm=settings.IDENTITY_JWT_ALGORITHM,
    )


def auth_headers(email: str, **kwargs) -> dict:
    return {"Authorization": f"Bearer {make_token(email, **kwargs)}"}


def create_test_event(client: TestClient, headers: dict, title: str = "Team Lunch", **fields) -> dict:
    """Helper: POST /events and return the created event JSON."""
    payload = {"title": title, "startsAt": "2030-01-15T12:00:00Z", **fields}
    resp = client.post("/events", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["event"]


def register(client: TestClient, event_id: int, headers: dict):
    """Helper: POST /events/{id}/register and return the response."""
    return client.post(f"/events/{event_id}/register", headers=headers)
