"""Shared fixtures: in-memory database, seed data, API client with a fake Redis."""

import json
from datetime import datetime
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from serenibook.database import enable_sqlite_fk, get_db
from serenibook.models import Base, Clients, Professionals, Services
from serenibook.redis_client import get_redis

# Monday
MONDAY = datetime(2030, 3, 4, 9, 0)


class FakeRedis:
    """In-process stand-in for the events queue: records rpush calls."""

    def __init__(self):
        self.lists: dict[str, list] = {}

    def rpush(self, key, *values):
        self.lists.setdefault(key, []).extend(values)
        return len(self.lists[key])

    def events(self, key: str = "events:p2p") -> list[dict]:
        return [json.loads(v) for v in self.lists.get(key, [])]

    def event_types(self) -> list[str]:
        return [e["type"] for e in self.events()]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", enable_sqlite_fk)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def professional(db) -> Professionals:
    """Professional with a 15 minute buffer, manual confirmation."""
    obj = Professionals(name="Ana Costa", email="ana@example.com", buffer_time=15, auto_confirm_bookings=False)
    db.add(obj)
    db.commit()
    return obj


@pytest.fixture
def auto_professional(db) -> Professionals:
    """Professional without buffer who auto-confirms bookings."""
    obj = Professionals(name="Rui Lopes", buffer_time=0, auto_confirm_bookings=True)
    db.add(obj)
    db.commit()
    return obj


@pytest.fixture
def client_record(db) -> Clients:
    obj = Clients(name="Maria Silva", email="maria@example.com")
    db.add(obj)
    db.commit()
    return obj


@pytest.fixture
def make_clients(db):
    def _make(count: int) -> list[Clients]:
        clients = [Clients(name=f"Client {i}") for i in range(count)]
        db.add_all(clients)
        db.commit()
        return clients
    return _make


@pytest.fixture
def service(db, professional) -> Services:
    """50 minute massage."""
    obj = Services(professional_id=professional.id, name="Massage", duration=50, price=60.0)
    db.add(obj)
    db.commit()
    return obj


@pytest.fixture
def fake_redis(monkeypatch) -> FakeRedis:
    fake = FakeRedis()
    monkeypatch.setattr("serenibook.services.events.redis_client", fake)
    return fake


@pytest.fixture
def api(session_factory, fake_redis) -> Generator[TestClient, None, None]:
    """TestClient bound to the in-memory database, no Redis locks."""
    from serenibook.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()
