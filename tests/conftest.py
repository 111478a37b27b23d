"""
Pytest configuration and shared fixtures.

Contains common test fixtures and setup for all test modules.
"""

import os
from typing import Any, Callable, Dict, Generator, Optional
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from src.meteorstack.config import get_settings, reload_settings
from src.meteorstack.core.records import Meteorite, records_from_store
from src.meteorstack.main import app


SAMPLE_METEORITES: Dict[str, Dict[str, Any]] = {
    "-Nx01": {
        "id": "1",
        "name": "Aachen",
        "recclass": "L5",
        "mass": "21",
        "fall": "Fell",
        "year": "1880",
        "latitude": "50.775",
        "longitude": "6.08333",
    },
    "-Nx02": {
        "id": "2",
        "name": "Aarhus",
        "recclass": "H6",
        "mass": "5",
        "fall": "Found",
        "year": "1999",
        "latitude": "0.001",
        "longitude": "0.001",
    },
    "-Nx03": {
        "id": "3",
        "name": "Ćeské Vrbné",
        "recclass": "L5 ",
        "mass": "0",
        "fall": "fell",
        "year": "bad",
        "latitude": "10",
        "longitude": "10",
    },
}


class FakeStoreClient:
    """In-process stand-in for the remote store client."""

    def __init__(self, data: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None) -> None:
        self.data = data
        self.error = error
        self.calls = 0

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def fetch_all(self, location: Optional[str] = None, secret_path: Optional[str] = None) -> Optional[Dict[str, Any]]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.data


@pytest.fixture
def test_env() -> Dict[str, str]:
    """Environment of a valid deployment."""
    return {
        "METEORSTACK_LOG_LEVEL": "DEBUG",
        "METEORSTACK_STORE_URL": "https://meteorites-test.example.com",
        "METEORSTACK_STORE_SECRET_PATH": "hidden/meteorites",
        "METEORSTACK_STORE_TIMEOUT_MS": "6000",
        "METEORSTACK_SECURITY_HASH_KEY": "test_hash_key_123456789abc",
        "METEORSTACK_SECURITY_RATE_LIMIT_INTERVAL_S": "1",
        "METEORSTACK_SECURITY_MAX_READS_PER_DAY": "5",
        "METEORSTACK_SECURITY_IPS_PURGE_TIME_DAYS": "1",
        "METEORSTACK_SECURITY_TRUSTED_PROXIES": "1",
        "METEORSTACK_QUERY_MAX_RANDOM_METEORITES": "100",
        "METEORSTACK_QUERY_DEFAULT_RANDOM_METEORITES": "100",
        "METEORSTACK_QUERY_MAX_RETURNED_SEARCH_RESULTS": "100",
        "METEORSTACK_QUERY_MIN_RADIUS": "1",
        "METEORSTACK_QUERY_MAX_RADIUS": "5000",
    }


@pytest.fixture
def reconfigure(monkeypatch: pytest.MonkeyPatch) -> Callable[..., None]:
    """Replace every METEORSTACK_ variable with the given ones and reload settings."""

    def _apply(env: Dict[str, str]) -> None:
        for var in list(os.environ):
            if var.startswith("METEORSTACK_"):
                monkeypatch.delenv(var)
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        with patch("src.meteorstack.config.load_config_file", return_value={}):
            reload_settings()

    return _apply


@pytest.fixture
def configured(test_env: Dict[str, str], reconfigure: Callable[..., None]) -> Generator[Dict[str, str], None, None]:
    """Apply the valid test environment for the duration of a test."""
    reconfigure(test_env)
    yield test_env
    get_settings.cache_clear()


@pytest.fixture
def sample_records() -> tuple:
    return records_from_store(SAMPLE_METEORITES)


@pytest.fixture
def make_record() -> Callable[..., Meteorite]:
    """Build a record with only the given fields set."""

    def _make(**fields: Any) -> Meteorite:
        return Meteorite.from_payload(fields.pop("key", None), fields)

    return _make


@pytest.fixture
def fake_store() -> FakeStoreClient:
    return FakeStoreClient(data=SAMPLE_METEORITES)


@pytest.fixture
def test_client(configured: Dict[str, str], fake_store: FakeStoreClient) -> Generator[TestClient, None, None]:
    """FastAPI test client backed by the fake store."""
    # Clear Prometheus registry to avoid duplicates
    from prometheus_client import REGISTRY
    REGISTRY._collector_to_names.clear()
    REGISTRY._names_to_collectors.clear()

    # Clear rate limiter state to ensure test isolation
    import src.meteorstack.core.auth as auth_module
    import src.meteorstack.core.store as store_module
    auth_module._rate_limiter = None
    store_module._store_client = fake_store

    with TestClient(app) as client:
        yield client

    auth_module._rate_limiter = None
    store_module._store_client = None


@pytest.fixture
def caller() -> Callable[[int], Dict[str, str]]:
    """Headers making a request come from a distinct client, as recorded by the trusted proxy."""

    def _headers(n: int) -> Dict[str, str]:
        return {"X-Forwarded-For": f"203.0.113.{n}"}

    return _headers
