"""Functional test bootstrap.

Logic tests run against the in-memory gateway. SQL gateway tests use a
file-backed SQLite database per test with the packaged migrations applied,
so the schema and ON CONFLICT upserts are exercised for real. Application
tests build the FastAPI app through ``create_app`` with an explicit gateway
and configuration, never from environment state.
"""

from __future__ import annotations

import itertools
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from formflow.config import AppConfig, DatabaseConfig, ExportConfig, PublishConfig, StorageConfig
from formflow.db.base import dispose_engine, get_engine
from formflow.db.migrations_runner import apply_migrations
from formflow.logic import events
from formflow.logic.storage_gateway import SqlStorageGateway
from formflow.logic.storage_inmemory import InMemoryStorageGateway
from formflow.main import create_app


class FixedClock:
    """Deterministic clock: each call advances one second from a fixed start."""

    def __init__(self, start_second: int = 0) -> None:
        self._counter = itertools.count(start_second)

    def __call__(self) -> str:
        n = next(self._counter)
        minutes, seconds = divmod(n, 60)
        return f"2024-03-05T15:{minutes:02d}:{seconds:02d}.000000Z"


def sequential_ids(prefix: str = "id") -> Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter):03d}"


@pytest.fixture(autouse=True)
def clear_event_buffer() -> Iterator[None]:
    events.EVENT_BUFFER.clear()
    yield
    events.EVENT_BUFFER.clear()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def ids() -> Callable[[], str]:
    return sequential_ids("q")


@pytest.fixture
def memory_gateway() -> InMemoryStorageGateway:
    return InMemoryStorageGateway()


@pytest.fixture
def sql_gateway(tmp_path) -> Iterator[SqlStorageGateway]:
    url = f"sqlite:///{tmp_path / 'formflow.db'}"
    engine = get_engine(url)
    apply_migrations(engine)
    yield SqlStorageGateway(engine)
    dispose_engine()


@pytest.fixture(params=["memory", "sql"])
def gateway(request):
    """Both backends; tests using this fixture must hold for each."""
    return request.getfixturevalue(f"{request.param}_gateway")


def make_config(**export) -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(dsn="sqlite+pysqlite:///:memory:", auto_apply_migrations=False),
        storage=StorageConfig(backend="memory"),
        publish=PublishConfig(token_length=8),
        export=ExportConfig(**export),
    )


@pytest.fixture
def app_config() -> AppConfig:
    return make_config()


@pytest.fixture
def client(memory_gateway, app_config) -> TestClient:
    app = create_app(gateway=memory_gateway, config=app_config, test_support=True)
    return TestClient(app)


@pytest.fixture
def config_factory() -> Callable[..., AppConfig]:
    return make_config


@pytest.fixture
def id_factory() -> Callable[[str], Callable[[], str]]:
    return sequential_ids
