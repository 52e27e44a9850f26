"""Shared fixtures: memory-backed services with a controllable clock."""

import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("USE_MOCK_DB", "true")

import pytest
from fastapi.testclient import TestClient

from civicworks.main import app
from civicworks.services.container import ServiceContainer, get_container
from civicworks.stores.memory_store import create_memory_stores


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def stores():
    return create_memory_stores()


@pytest.fixture
def container(stores, clock):
    return ServiceContainer(stores, clock=clock)


@pytest.fixture
def make_user(container):
    counter = {"n": 0}

    def _make_user(name: str = None, **kwargs):
        counter["n"] += 1
        name = name or f"Citizen {counter['n']}"
        email = kwargs.pop("email", f"citizen{counter['n']}@example.com")
        return container.users.create_user(name=name, email=email, **kwargs)

    return _make_user


@pytest.fixture
def owner(make_user):
    return make_user("Asha Rao")


@pytest.fixture
def neighbor(make_user):
    return make_user("Ravi Kumar")


@pytest.fixture
def make_report(container, owner):
    def _make_report(**kwargs):
        params = {
            "owner": owner["id"],
            "category": "road",
            "description": "Pothole near the bus stop",
            "lat": 28.61,
            "lng": 77.20,
        }
        params.update(kwargs)
        return container.lifecycle.create_report(**params)

    return _make_report


@pytest.fixture
def client(container):
    app.dependency_overrides[get_container] = lambda: container
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
