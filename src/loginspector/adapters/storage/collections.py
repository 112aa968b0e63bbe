"""Per-level collections and their time indexes.

Every collection is a table holding the records of one level, with a
descending index on time so pages can be served newest first. Tables
carry a prefix so that any level name, including names of indexes or
internal tables, can be a collection.
"""

import asyncio
import logging
import sqlite3
from collections.abc import Iterable

from loginspector.adapters.storage.connection import ConnectionManager
from loginspector.core.exceptions import StorageQueryError, StorageWriteError
from loginspector.core.levels import (
    BOOTSTRAP_LEVELS,
    TABLE_PREFIX,
    collection_from_table,
    collection_name_for,
    index_name_for,
    quote_identifier,
    table_name_for,
)

logger = logging.getLogger(__name__)

_COLLECTION_SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    time REAL NOT NULL,
    level TEXT NOT NULL,
    source_node TEXT NOT NULL,
    message TEXT NOT NULL DEFAULT '',
    attributes TEXT NOT NULL DEFAULT '{{}}'
)
"""

_TIME_INDEX = """
CREATE INDEX IF NOT EXISTS {index} ON {table} (time DESC)
"""

_SELECT_COLLECTION = """
SELECT name FROM sqlite_master WHERE type = 'table' AND name = ? COLLATE NOCASE
"""

_SELECT_COLLECTIONS = """
SELECT name FROM sqlite_master
WHERE type = 'table' AND substr(name, 1, ?) = ?
ORDER BY name
"""


class CollectionRouter:
    """Routes levels to collections and provisions their indexes.

    ensure_index() is idempotent. A per-collection lock and a cache of
    provisioned names keep concurrent callers from repeating the work.
    """

    def __init__(self, manager: ConnectionManager) -> None:
        self._manager = manager
        self._provisioned: set[str] = set()
        self._locks: dict[str, asyncio.Lock] = {}

    def collection_for(self, level: str) -> str:
        return collection_name_for(level)

    def is_provisioned(self, collection: str) -> bool:
        return collection in self._provisioned

    async def ensure_index(self, collection: str) -> None:
        """Create the collection and its descending time index if absent.

        Raises:
            StorageWriteError: If the name is empty or provisioning fails.
            StoreConnectionError: If the store is not open or closed.
        """
        if collection in self._provisioned:
            return
        if not collection:
            raise StorageWriteError("collection name must not be empty")
        lock = self._locks.setdefault(collection, asyncio.Lock())
        async with lock:
            if collection in self._provisioned:
                return
            conn = self._manager.handle()
            table = quote_identifier(table_name_for(collection))
            index = quote_identifier(index_name_for(collection))
            try:
                await conn.execute(_COLLECTION_SCHEMA.format(table=table))
                await conn.execute(_TIME_INDEX.format(index=index, table=table))
                await conn.commit()
            except sqlite3.Error as exc:
                raise StorageWriteError(
                    f"could not provision collection {collection!r}: {exc}"
                ) from exc
            self._provisioned.add(collection)
            logger.info("%s - index ready", collection)

    async def provision(self, levels: Iterable[str] = BOOTSTRAP_LEVELS) -> list[str]:
        """Ensure the collections of the given levels.

        Failures are logged and do not stop the remaining levels.

        Returns:
            Names of the collections that could not be provisioned.
        """
        failed = []
        for level in levels:
            collection = self.collection_for(level)
            try:
                await self.ensure_index(collection)
            except StorageWriteError:
                logger.exception("Index provisioning failed for %r", collection)
                failed.append(collection)
        return failed

    async def resolve(self, collection: str) -> str | None:
        """Return the stored name of a collection, or None if it was never written.

        Lookups are read-only and never create a collection.
        """
        if not collection:
            return None
        conn = self._manager.handle()
        try:
            async with conn.execute(
                _SELECT_COLLECTION, (table_name_for(collection),)
            ) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise StorageQueryError(
                f"could not look up collection {collection!r}: {exc}"
            ) from exc
        return collection_from_table(row[0]) if row else None

    async def list_collections(self) -> list[str]:
        """Return the names of all collections, sorted."""
        conn = self._manager.handle()
        try:
            async with conn.execute(
                _SELECT_COLLECTIONS, (len(TABLE_PREFIX), TABLE_PREFIX)
            ) as cursor:
                return [collection_from_table(row[0]) async for row in cursor]
        except sqlite3.Error as exc:
            raise StorageQueryError(f"could not list collections: {exc}") from exc
