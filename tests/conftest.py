"""Pytest fixtures and configuration for Gatherly tests."""

import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from gatherly.database.database import Base
from gatherly.database.user_repository import UserRepository
from gatherly.models.user import UserProfile
from gatherly.social.activities import ActivityManager
from gatherly.social.feed import FeedAggregator
from gatherly.social.friends import FriendGraph
from gatherly.social.invitations import InvitationManager


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# Fixed "now" for service-level tests
BASE_TIME = datetime(2030, 6, 1, 12, 0, 0)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture(scope="function")
def db_session():
    """Create a database session for testing.

    Uses an in-memory SQLite database that is created fresh for each test.
    """
    from gatherly.database import models  # noqa: F401

    # Create engine with StaticPool for in-memory database
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # Participant rows rely on ON DELETE CASCADE
    @event.listens_for(engine, "connect")
    def set_sqlite_pragmas(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def clock():
    return FakeClock(BASE_TIME)


@pytest.fixture
def make_profile(db_session: Session):
    """Factory that stores a profile and returns it."""
    repo = UserRepository(db_session)

    def _make(uid: str, display_name=None, photo_url=None, email=None) -> UserProfile:
        return repo.create_if_absent(
            UserProfile(
                uid=uid,
                email=email,
                display_name=display_name,
                photo_url=photo_url,
                created_at=BASE_TIME,
            )
        )

    return _make


@pytest.fixture
def alice(make_profile):
    return make_profile("alice", display_name="Alice", photo_url="https://img.example/alice.png", email="alice@example.com")


@pytest.fixture
def bob(make_profile):
    return make_profile("bob", display_name="Bob", email="bob@example.com")


@pytest.fixture
def carol(make_profile):
    return make_profile("carol", display_name="carol")


@pytest.fixture
def friend_graph(db_session: Session, clock):
    return FriendGraph(db_session, now=clock)


@pytest.fixture
def invitation_manager(db_session: Session, clock):
    return InvitationManager(db_session, now=clock)


@pytest.fixture
def activity_manager(db_session: Session, clock):
    return ActivityManager(db_session, now=clock)


@pytest.fixture
def feed_aggregator(db_session: Session, clock):
    return FeedAggregator(db_session, now=clock)


@pytest.fixture
def test_client(db_session: Session, alice):
    """FastAPI test client with the test database, signed in as alice."""
    from gatherly.api.app import app
    from gatherly.database.database import get_db
    from gatherly.auth.dependencies import get_current_user

    # Override the get_db dependency to use our test database session
    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: alice

    with TestClient(app) as client:
        yield client

    # Clean up dependency overrides
    app.dependency_overrides.clear()


@pytest.fixture
def act_as():
    """Switch the user the test client is authenticated as."""
    from gatherly.api.app import app
    from gatherly.auth.dependencies import get_current_user

    def _act_as(profile: UserProfile) -> None:
        app.dependency_overrides[get_current_user] = lambda: profile

    return _act_as
