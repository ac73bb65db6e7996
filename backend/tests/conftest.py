"""Pytest fixtures — SQLite database per test, plus API helpers."""
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from lms.database import Base, get_db
from lms.main import app

# Import all models so they register with Base.metadata
from lms.models.user import User                              # noqa: F401
from lms.models.server import Server, Member, Channel         # noqa: F401
from lms.models.assessment import Assessment, Result          # noqa: F401

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})

    # Enable WAL mode for better concurrency
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(db_engine):
    """Yield a database session bound to the per-test engine."""
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


# ---------------------------------------------------------------------------
# Helpers: build users, classrooms and assessments through the API
# ---------------------------------------------------------------------------
def auth(user: dict) -> dict:
    """Identity header for ``user`` as forwarded by the session provider."""
    return {"X-User-Id": user["user_id"]}


def create_test_user(client: TestClient, name: str = "Test User") -> dict:
    """Helper — POST /api/users and return response JSON."""
    resp = client.post("/api/users/", json={"name": name})
    assert resp.status_code == 201, resp.text
    return resp.json()


def create_test_server(client: TestClient, owner: dict, name: str = "Math101", is_public: bool = True) -> dict:
    """Helper — POST /api/servers and return response JSON."""
    resp = client.post("/api/servers/", json={"name": name, "is_public": is_public}, headers=auth(owner))
    assert resp.status_code == 201, resp.text
    return resp.json()


def general_channel_id(client: TestClient, owner: dict, server: dict) -> str:
    resp = client.get(f"/api/servers/{server['server_id']}", headers=auth(owner))
    assert resp.status_code == 200, resp.text
    return resp.json()["channels"][0]["channel_id"]


def redeem(client: TestClient, user: dict, server: dict):
    """Helper — redeem the server's invite code as ``user``; returns the raw response."""
    return client.post(f"/api/invites/{server['invite_code']}", headers=auth(user))


def create_test_assessment(
    client: TestClient,
    owner: dict,
    server: dict,
    kind: str = "exam",
    name: str = "Midterm",
    **extra,
) -> dict:
    """Helper — create an exam or exercise in the server's general channel."""
    channel_id = general_channel_id(client, owner, server)
    resp = client.post(
        f"/api/channels/{channel_id}/assessments",
        json={"kind": kind, "name": name, **extra},
        headers=auth(owner),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def join_public(client: TestClient, owner: dict, name: str = "Student", server_name: str = "Math101"):
    """Owner creates a public classroom; a new student joins it. Returns (student, server)."""
    server = create_test_server(client, owner, name=server_name, is_public=True)
    student = create_test_user(client, name=name)
    resp = redeem(client, student, server)
    assert resp.status_code == 200, resp.text
    return student, server
