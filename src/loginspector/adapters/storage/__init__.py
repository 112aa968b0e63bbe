"""Storage adapters implementing core ports."""

from loginspector.adapters.storage.collections import CollectionRouter
from loginspector.adapters.storage.connection import ConnectionManager
from loginspector.adapters.storage.sqlite_logs import SQLiteLogStore
from loginspector.adapters.storage.sqlite_nodes import SQLiteNodeInspector

__all__ = [
    "CollectionRouter",
    "ConnectionManager",
    "SQLiteLogStore",
    "SQLiteNodeInspector",
]
