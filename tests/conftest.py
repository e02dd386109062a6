import os

# Configure before any guardian module reads settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["LEADERBOARD_CACHE_TTL_SECONDS"] = "0"

import uuid
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from guardian.infrastructure.database import Base, get_db
from guardian.infrastructure import models  # noqa: F401  registers tables
from guardian.main import app


@pytest.fixture(scope="session")
def test_engine():
    """In-memory SQLite engine shared by every connection."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def test_db(test_engine):
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=test_engine)
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=test_engine
    )
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def client(test_db):
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client_no_db():
    """Create a test client without database dependency for basic endpoint tests."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def make_user_id():
    """Factory for ordered user ids (tie-break tests)."""
    def _make(n: int) -> uuid.UUID:
        return uuid.UUID(int=n)
    return _make
