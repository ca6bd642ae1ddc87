"""Shared pytest fixtures.

Provides:
- SQLite in-memory database session (tables created and dropped per test)
- In-memory port fakes for the draft lifecycle
- A FastAPI TestClient wired to the SQLite session and a fake object store

Usage:
    def test_resume(client, actor_headers):
        response = client.post("/submissions/drafts", json={...}, headers=actor_headers)
        assert response.status_code == 200
"""

import os
from typing import Generator

# Set environment variables BEFORE any labintake imports so settings pick them up
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_JSON"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["S3_ENDPOINT_URL"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from labintake.database import get_db
from labintake.dependencies import get_storage
from labintake.domain.submissions.models import Actor
from labintake.models import Base
from labintake.submissions.controller import DraftHandle, DraftLifecycleController

from .fakes import FakeStorage, InMemoryAuditLog, InMemoryDraftRepository, InMemoryLabelStore

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

OWNER_ID = "lab-downtown"


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Fresh database for each test: tables created before, dropped after."""
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def actor() -> Actor:
    return Actor(id="user-17")


@pytest.fixture
def admin() -> Actor:
    return Actor(id="admin-1", is_admin=True)


@pytest.fixture
def repository() -> InMemoryDraftRepository:
    return InMemoryDraftRepository()


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def audit_log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def label_store() -> InMemoryLabelStore:
    return InMemoryLabelStore()


@pytest.fixture
def handle() -> DraftHandle:
    return DraftHandle(owner_id=OWNER_ID)


@pytest.fixture
def controller(repository, handle, audit_log) -> DraftLifecycleController:
    return DraftLifecycleController(repository, handle, audit_log=audit_log)


@pytest.fixture(scope="function")
def api_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture(scope="function")
def client(db_session: Session, api_storage: FakeStorage):
    """TestClient bound to the SQLite session and the fake object store."""
    from labintake.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: api_storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def actor_headers() -> dict:
    return {"X-Actor-Id": "user-17"}


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Actor-Id": "admin-1", "X-Actor-Role": "admin"}
