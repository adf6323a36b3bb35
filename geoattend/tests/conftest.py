"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time; provide test values before importing geoattend
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-geoattend-tests")
os.environ.setdefault("APP_ENV", "local")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.engine import Engine
from geoattend.main import app
from geoattend.db.base import Base
from geoattend.core.deps import get_db, get_notifier
from geoattend.core.constants import ROLE_EMPLOYEE
from geoattend.core.security import create_access_token
from geoattend.services.change_notifier import ChangeNotifier

# Import all models to ensure they're registered with Base.metadata
from geoattend.models import (
    Location,
    WorkShift,
    RosterAssignment,
    AttendanceSession,
    AttendanceEvent,
)  # noqa


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def notifier(db):
    """Change notifier over the test database; drained explicitly by tests (no thread)"""
    return ChangeNotifier(TestingSessionLocal, max_attempts=3, retry_delay_seconds=0, poll_interval_seconds=0.05)


@pytest.fixture(scope="function")
def client(db, notifier):
    """Test client fixture with database and notifier overrides"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def office(db):
    """San Francisco office with a 50 m geofence"""
    location = Location(name="SF Office", address="Market St", latitude=37.7749, longitude=-122.4194, radius_meters=50)
    db.add(location)
    db.commit()
    db.refresh(location)
    return location


def auth_headers(user_id: str, role: str = ROLE_EMPLOYEE) -> dict:
    """Bearer header for a user as issued by the identity service"""
    token = create_access_token(user_id, role=role)
    return {"Authorization": f"Bearer {token}"}
