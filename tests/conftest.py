import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from datetime import datetime, timedelta, timezone
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from auth import create_access_token, OPERATOR_ROLE, USER_ROLE
from database.db import Base, get_db
from database.memory_store import InMemoryQueueStore
from database.store import SqlQueueStore
import database.models  # noqa: F401
from main import app
from utils.coordinator import QueueCoordinator

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture
def db_engine():
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(db_engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sql_store(db_session):
    return SqlQueueStore(db_session)


@pytest.fixture
def memory_store():
    return InMemoryQueueStore()


@pytest.fixture(params=["sql", "memory"])
def store(request):
    """Run the test once against each QueueStore implementation."""
    return request.getfixturevalue(f"{request.param}_store")


class StepClock:
    """Deterministic clock, one second per reading."""

    def __init__(self):
        self.now = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def coordinator(store):
    return QueueCoordinator(store, clock=StepClock())


@pytest.fixture
def queue(coordinator):
    return coordinator.create_queue("City Hospital", "Outpatient registration", 15)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user_id, name, role=USER_ROLE):
    token = create_access_token({"sub": user_id, "name": name, "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def operator_headers():
    return auth_headers("op-1", "Front Desk", OPERATOR_ROLE)


@pytest.fixture
def alice_headers():
    return auth_headers("alice", "Alice")


@pytest.fixture
def bob_headers():
    return auth_headers("bob", "Bob")
