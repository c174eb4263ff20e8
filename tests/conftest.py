"""
Shared fixtures.

  • engine / session_factory / db   in-memory SQLite shared through StaticPool
  • store                           empty EntityStore
  • fake_timer                      manual call_later for the debouncer
  • transport / http_client         httpx.MockTransport recording every request
  • make_client / make_session      rows written straight through the repositories
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pawbook import models  # noqa: F401
from pawbook.database import Base
from pawbook.domain.clients.repository import ClientRepository
from pawbook.domain.sessions.repository import SessionRepository
from pawbook.store.entity_store import EntityStore


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store():
    return EntityStore()


# ---------------------------------------------------------------------------
# Manual timer
# ---------------------------------------------------------------------------


class FakeHandle:
    def __init__(self, due, callback, args):
        self.due = due
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeTimer:
    """Stands in for loop.call_later; time only moves when advance() is called"""

    def __init__(self):
        self.now = 0.0
        self.handles = []

    def call_later(self, delay, callback, *args):
        handle = FakeHandle(self.now + delay, callback, args)
        self.handles.append(handle)
        return handle

    def pending(self):
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def advance(self, seconds):
        self.now += seconds
        due = sorted((h for h in self.pending() if h.due <= self.now), key=lambda h: h.due)
        for handle in due:
            handle.fired = True
            handle.callback(*handle.args)


@pytest.fixture
def fake_timer():
    return FakeTimer()


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


class RecordingTransport:
    def __init__(self):
        self.requests = []
        self.handler = lambda request: httpx.Response(200, json={})

    def __call__(self, request):
        self.requests.append(request)
        return self.handler(request)

    def paths(self):
        return [request.url.path for request in self.requests]


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def http_client(transport):
    return httpx.AsyncClient(transport=httpx.MockTransport(transport))


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_client(session_factory):
    def _factory(**fields):
        data = {"firstName": "Sam", "lastName": "Jones", "dogName": "Rex", "email": "sam@example.com"}
        data.update(fields)
        with session_factory() as db:
            return ClientRepository.create(db, data)

    return _factory


@pytest.fixture
def make_session(session_factory):
    def _factory(**fields):
        data = {
            "sessionType": "In-Person",
            "bookingDate": "2026-03-14",
            "bookingTime": "10:00",
            "quote": 75,
        }
        data.update(fields)
        with session_factory() as db:
            return SessionRepository.create(db, data)

    return _factory
