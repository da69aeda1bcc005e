"""
Pytest configuration and fixtures for ContentHQ API tests.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from contenthq.database import Base, get_db
from contenthq.limiter import limiter
from contenthq.main import app
from contenthq.models import Organization, Member, Client, ContentItem
from contenthq.auth import get_password_hash, create_access_token
from contenthq.workflow.events import Notifier, get_notifiers

# Disable rate limiting for tests
limiter.enabled = False

# Use in-memory SQLite for tests with shared connection
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Global session for sharing across requests
_test_session = None


def get_test_db():
    """Get the shared test database session."""
    yield _test_session


class RecordingNotifier(Notifier):
    """Collects events instead of delivering them."""

    name = "recording"

    def __init__(self):
        self.events = []

    def notify(self, event):
        self.events.append(event)

    @property
    def names(self):
        return [e.event for e in self.events]


class FailingNotifier(Notifier):
    name = "failing"

    def notify(self, event):
        raise RuntimeError("smtp relay unreachable")


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    global _test_session

    Base.metadata.create_all(bind=engine)
    _test_session = TestingSessionLocal()
    app.dependency_overrides[get_db] = get_test_db

    yield _test_session

    app.dependency_overrides.clear()
    _test_session.close()
    _test_session = None

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def recorder(db):
    """Route lifecycle notifications to an in-memory recorder."""
    notifier = RecordingNotifier()
    app.dependency_overrides[get_notifiers] = lambda: [notifier]
    return notifier


@pytest.fixture(scope="function")
def use_notifiers(db):
    """Replace the notifiers for the rest of the test. "failing" adds a notifier that raises."""
    def _use(*notifiers):
        resolved = [FailingNotifier() if n == "failing" else n for n in notifiers]
        app.dependency_overrides[get_notifiers] = lambda: resolved
    return _use


@pytest.fixture(scope="function")
def client(db, recorder):
    """Create a test client."""
    with TestClient(app) as c:
        yield c


@pytest.fixture(scope="function")
def organization(db):
    org = Organization(name="Acme Agency", slug="acme-agency")
    db.add(org)
    db.commit()
    db.refresh(org)
    return org


def _member(db, organization, email, role, name):
    member = Member(
        org_id=organization.id,
        email=email,
        hashed_password=get_password_hash("testpassword123"),
        display_name=name,
        role=role,
        is_active=True,
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


@pytest.fixture(scope="function")
def manager(db, organization):
    """An owner/manager who may open the internal gate."""
    return _member(db, organization, "manager@example.com", "manager", "Marta Manager")


@pytest.fixture(scope="function")
def designer(db, organization):
    return _member(db, organization, "designer@example.com", "designer", "Dani Designer")


def _headers(member):
    token = create_access_token({"sub": str(member.id), "org": member.org_id})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def manager_headers(manager):
    return _headers(manager)


@pytest.fixture(scope="function")
def designer_headers(designer):
    return _headers(designer)


@pytest.fixture(scope="function")
def client_record(db, organization):
    """The agency's customer who reviews content."""
    record = Client(org_id=organization.id, name="Padaria Central", slug="padaria-central")
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture(scope="function")
def make_content(db, organization, client_record, manager):
    """Factory for content items placed directly in a given state."""
    def _make(status="draft", internal_approved=False, **fields):
        content = ContentItem(
            org_id=organization.id,
            client_id=client_record.id,
            created_by=manager.id,
            status=status,
            internal_approved=internal_approved,
            title=fields.pop("title", "Spring menu launch"),
            body=fields.pop("body", "Fresh bread every morning."),
            **fields,
        )
        db.add(content)
        db.commit()
        db.refresh(content)
        return content
    return _make
