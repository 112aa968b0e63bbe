"""Tests for collection provisioning and lookup."""

import asyncio
from collections.abc import AsyncGenerator

import pytest

from loginspector.adapters.storage.collections import CollectionRouter
from loginspector.adapters.storage.connection import (
    CREDENTIALS_TABLE,
    ConnectionManager,
)
from loginspector.core.exceptions import StorageWriteError
from loginspector.core.levels import quote_identifier, table_name_for

pytestmark = pytest.mark.tier(2)


@pytest.fixture
async def manager(store_settings) -> AsyncGenerator[ConnectionManager]:
    """Open in-memory connection manager with proper cleanup."""
    connection_manager = ConnectionManager(store_settings)
    await connection_manager.open()
    yield connection_manager
    await connection_manager.close()


async def _time_indexes(manager: ConnectionManager, collection: str) -> list[tuple]:
    """Return (index name, column, descending) for indexes on time."""
    conn = manager.handle()
    found = []
    table = quote_identifier(table_name_for(collection))
    async with conn.execute(f"PRAGMA index_list({table})") as cursor:
        index_names = [row[1] async for row in cursor]
    for name in index_names:
        index = quote_identifier(name)
        async with conn.execute(f"PRAGMA index_xinfo({index})") as cursor:
            async for row in cursor:
                # seqno, cid, name, desc, coll, key
                if row[2] == "time" and row[5]:
                    found.append((name, row[2], bool(row[3])))
    return found


class TestEnsureIndex:
    """Tests for CollectionRouter.ensure_index()."""

    @pytest.mark.storage
    async def test_creates_descending_time_index(self, manager) -> None:
        router = CollectionRouter(manager)
        await router.ensure_index("info")
        assert await _time_indexes(manager, "info") == [
            ("idx:info:time", "time", True)
        ]
        assert router.is_provisioned("info")

    @pytest.mark.storage
    async def test_twice_leaves_exactly_one_index(self, manager) -> None:
        router = CollectionRouter(manager)
        await router.ensure_index("warn")
        await router.ensure_index("warn")
        # A fresh router has no cache and must rely on the store.
        await CollectionRouter(manager).ensure_index("warn")
        assert len(await _time_indexes(manager, "warn")) == 1

    @pytest.mark.storage
    async def test_concurrent_calls_are_safe(self, manager) -> None:
        router = CollectionRouter(manager)
        await asyncio.gather(
            *(router.ensure_index(name) for name in ["audit", "audit", "trace"] * 3)
        )
        assert len(await _time_indexes(manager, "audit")) == 1
        assert len(await _time_indexes(manager, "trace")) == 1

    @pytest.mark.storage
    async def test_names_needing_quotes_are_supported(self, manager) -> None:
        router = CollectionRouter(manager)
        await router.ensure_index('odd "level" name')
        assert await router.resolve('odd "level" name') == 'odd "level" name'

    @pytest.mark.storage
    async def test_empty_name_is_refused(self, manager) -> None:
        with pytest.raises(StorageWriteError, match="empty"):
            await CollectionRouter(manager).ensure_index("")

    @pytest.mark.storage
    @pytest.mark.parametrize(
        "name",
        [
            "idx:info:time",
            "idx_info_time",
            "log:info",
            CREDENTIALS_TABLE,
            "sqlite_master",
        ],
    )
    async def test_any_name_can_coexist_with_info(self, manager, name: str) -> None:
        """Names of indexes and internal tables are ordinary collections."""
        router = CollectionRouter(manager)
        await router.ensure_index("info")
        await router.ensure_index(name)
        assert await router.list_collections() == sorted(["info", name])
        assert len(await _time_indexes(manager, name)) == 1


class TestProvision:
    """Tests for CollectionRouter.provision()."""

    @pytest.mark.storage
    async def test_provisions_bootstrap_levels(self, manager) -> None:
        router = CollectionRouter(manager)
        assert await router.provision() == []
        assert await router.list_collections() == ["error", "info", "warn"]

    @pytest.mark.storage
    async def test_failures_are_reported_and_do_not_stop_others(
        self, manager
    ) -> None:
        router = CollectionRouter(manager)
        failed = await router.provision(["info", "", "error"])
        assert failed == [""]
        assert await router.list_collections() == ["error", "info"]


class TestLookup:
    """Tests for resolve() and list_collections()."""

    @pytest.mark.storage
    async def test_resolve_never_creates_collections(self, manager) -> None:
        router = CollectionRouter(manager)
        assert await router.resolve("nonexistent") is None
        assert await router.list_collections() == []

    @pytest.mark.storage
    async def test_resolve_matches_case_insensitively(self, manager) -> None:
        router = CollectionRouter(manager)
        await router.ensure_index("Audit")
        assert await router.resolve("audit") == "Audit"

    @pytest.mark.storage
    async def test_credentials_table_is_not_a_collection(self, manager) -> None:
        router = CollectionRouter(manager)
        assert await router.list_collections() == []
        assert await router.resolve(CREDENTIALS_TABLE) is None
