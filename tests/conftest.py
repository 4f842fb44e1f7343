import os
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from post_api.db import SQLRecordStore  # noqa: E402
from post_api.main import app  # noqa: E402
from post_api.repositories import InMemoryRecordStore, get_store  # noqa: E402


class TickingClock:
    """Returns a strictly increasing timestamp on every call."""

    def __init__(self, start=datetime(2025, 1, 1, 12, 0, 0), step=timedelta(seconds=1)):
        self._now = start
        self._step = step

    def __call__(self) -> datetime:
        self._now += self._step
        return self._now


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def memory_store(clock):
    return InMemoryRecordStore(clock=clock)


@pytest.fixture
def sql_store(clock):
    # StaticPool keeps one in-memory database per store
    store = SQLRecordStore("sqlite://", clock=clock)
    yield store
    store.engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def client(memory_store):
    """
    TestClient whose record store is a fresh in-memory store per test.
    """
    app.dependency_overrides[get_store] = lambda: memory_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
