"""Log service: the explicitly constructed owner of the store.

Example:
    ```python
    from loginspector import LogService, load_store_settings

    settings = load_store_settings(
        host="localhost", username="admin", password="secret", namespace="logs"
    )
    async with LogService(settings) as service:
        await service.report("info", "node started", source_node="n1")
        page = await service.query("info")
    ```
"""

import logging
from collections.abc import Iterable
from typing import Any

from loginspector.adapters.storage.collections import CollectionRouter
from loginspector.adapters.storage.connection import ConnectionManager
from loginspector.adapters.storage.sqlite_logs import SQLiteLogStore
from loginspector.adapters.storage.sqlite_nodes import SQLiteNodeInspector
from loginspector.config import (
    QuerySettings,
    StoreSettings,
    load_query_settings,
    load_store_settings,
)
from loginspector.core.inspector import SortField
from loginspector.core.levels import BOOTSTRAP_LEVELS
from loginspector.core.models import (
    AttributeValue,
    LogRecord,
    NodeStat,
    Page,
    TimeRange,
)
from loginspector.core.records import prepare_record

logger = logging.getLogger(__name__)


class LogService:
    """Owns the connection and the engines built on it.

    start() opens the connection and provisions the bootstrap collections;
    close() releases the connection. The service is also an async context
    manager doing both.
    """

    def __init__(
        self,
        store_settings: StoreSettings,
        query_settings: QuerySettings | None = None,
        bootstrap_levels: Iterable[str] = BOOTSTRAP_LEVELS,
    ) -> None:
        query_settings = query_settings or QuerySettings()
        self._bootstrap_levels = tuple(bootstrap_levels)
        self._manager = ConnectionManager(store_settings)
        self._router = CollectionRouter(self._manager)
        self._logs = SQLiteLogStore(self._manager, self._router, query_settings)
        self._nodes = SQLiteNodeInspector(self._manager, self._router, query_settings)

    @classmethod
    def from_env(cls, **overrides: Any) -> "LogService":
        """Build a service from environment settings.

        Keyword overrides apply to the store settings.

        Raises:
            ConfigurationError: If required settings are missing or malformed.
        """
        return cls(load_store_settings(**overrides), load_query_settings())

    @property
    def manager(self) -> ConnectionManager:
        return self._manager

    @property
    def router(self) -> CollectionRouter:
        return self._router

    @property
    def log_store(self) -> SQLiteLogStore:
        return self._logs

    @property
    def node_inspector(self) -> SQLiteNodeInspector:
        return self._nodes

    async def start(self) -> "LogService":
        """Open the store and provision the bootstrap collections.

        Provisioning failures are logged and retried by the next start().

        Raises:
            StoreConnectionError: If the store cannot be opened.
        """
        await self._manager.open()
        logger.info("build index.")
        failed = await self._router.provision(self._bootstrap_levels)
        if failed:
            logger.warning(
                "Serving without indexes for %s; retrying on next start",
                ", ".join(failed),
            )
        return self

    async def close(self) -> None:
        """Close the store. Safe to call more than once."""
        await self._manager.close()

    async def __aenter__(self) -> "LogService":
        return await self.start()

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def report(
        self,
        level: str | None,
        message: str | None = "",
        time: float | None = None,
        source_node: str | None = None,
        **attributes: AttributeValue,
    ) -> str:
        """Validate and write one log record.

        Returns:
            The store's acknowledgment of the write.

        Raises:
            InvalidRecordError: If level is missing or blank.
            StorageWriteError: If the write fails.
        """
        record = prepare_record(level, message, time, source_node, attributes)
        return await self._logs.report(record)

    async def report_record(self, record: LogRecord) -> str:
        """Write an already prepared log record."""
        return await self._logs.report(record)

    async def query(
        self,
        level: str,
        time: TimeRange | float | None = None,
        keyword: str | None = None,
        page_num: int = 1,
    ) -> Page[LogRecord]:
        """Return one page of a level's records, newest first.

        A bare number as time means "at or after that time".
        """
        if time is not None and not isinstance(time, TimeRange):
            time = TimeRange(since=float(time))
        return await self._logs.find_all(level, time, keyword or None, page_num)

    async def inspector(
        self, sorted_field: str | SortField | None = None, page_num: int = 1
    ) -> Page[NodeStat]:
        """Return one page of per-node reporting statistics."""
        return await self._nodes.find_all(sorted_field, page_num)

    async def levels(self) -> list[str]:
        """Return the collections that currently exist."""
        return await self._router.list_collections()

    async def ping(self) -> None:
        """Check that the store answers a heartbeat."""
        await self._manager.ping()
