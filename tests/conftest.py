"""Shared test fixtures for all test modules."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from loginspector.config import (
    QuerySettings,
    StoreSettings,
    load_query_settings,
    load_store_settings,
)
from loginspector.core.levels import quote_identifier, table_name_for
from loginspector.service import LogService

try:
    import httpx
except ImportError:
    httpx = None


def make_store_settings(**overrides: object) -> StoreSettings:
    """Store settings for an in-process store, with optional overrides."""
    values: dict[str, object] = {
        "host": "localhost",
        "port": 27017,
        "username": "admin",
        "password": "secret",
        "namespace": "logs",
        "data_dir": ":memory:",
    }
    values.update(overrides)
    return load_store_settings(values)


@pytest.fixture
def settings_factory():
    """Factory fixture building store settings with overrides."""
    return make_store_settings


@pytest.fixture
def store_settings() -> StoreSettings:
    """Settings for an in-memory store."""
    return make_store_settings()


@pytest.fixture
def file_store_settings(tmp_path: Path) -> StoreSettings:
    """Settings for a file-backed store in a temporary directory."""
    return make_store_settings(data_dir=str(tmp_path))


@pytest.fixture
def query_settings() -> QuerySettings:
    """Query settings with a small page size to exercise pagination."""
    return load_query_settings(page_size=2)


@pytest.fixture
async def service(
    store_settings: StoreSettings, query_settings: QuerySettings
) -> AsyncGenerator[LogService]:
    """Started in-memory log service with proper cleanup."""
    log_service = LogService(store_settings, query_settings)
    await log_service.start()
    yield log_service
    await log_service.close()


@pytest.fixture
async def broken_service(service: LogService) -> LogService:
    """Started service whose info collection has lost its record columns.

    Reads and writes of info fail inside the store.
    """
    table = quote_identifier(table_name_for("info"))
    conn = service.manager.handle()
    await conn.execute(f"DROP TABLE {table}")
    await conn.execute(f"CREATE TABLE {table} (id INTEGER PRIMARY KEY)")
    await conn.commit()
    return service


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client, service):
            app = create_asgi_app(service)
            async with asgi_test_client(app) as client:
                response = await client.get("/log/info")
    """
    if httpx is None:
        pytest.skip("httpx not installed")

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
