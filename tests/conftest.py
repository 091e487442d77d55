from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from tasklist.config import Settings
from tasklist.database import StoreHandle, connect_store, create_tables
from tasklist.main import create_app
from tasklist.repository import TaskRepository


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite store, with cheap bcrypt."""
    return Settings(
        store_url=f"sqlite:///{tmp_path / 'store.sqlite3'}",
        store_api_key="test-key",
        secret_key="test-secret",
        password_hash_rounds=4,
    )


@pytest.fixture()
def unconfigured_settings() -> Settings:
    return Settings(secret_key="test-secret", password_hash_rounds=4)


@pytest.fixture()
def empty_store(settings: Settings) -> Iterator[StoreHandle]:
    """Reachable store with no tables at all."""
    store = connect_store(settings)
    yield store
    store.dispose()


@pytest.fixture()
def store(empty_store: StoreHandle) -> StoreHandle:
    """Store with the tables created but no rows."""
    create_tables(empty_store)
    return empty_store


@pytest.fixture()
def seeded_store(store: StoreHandle) -> StoreHandle:
    """Store with tables and the shared checklist."""
    TaskRepository(store).seed_shared_checklist()
    return store


@pytest.fixture()
def client(settings: Settings, seeded_store: StoreHandle) -> Iterator[TestClient]:
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture()
def offline_client(unconfigured_settings: Settings) -> Iterator[TestClient]:
    with TestClient(create_app(unconfigured_settings)) as test_client:
        yield test_client
