"""loginspector - centralized log collection and node inspection.

Remote nodes report log records; the store keeps them in one
time-indexed collection per level and serves paginated views plus
per-node reporting statistics.
"""

from loginspector.config import (
    KeywordScope,
    QuerySettings,
    StoreSettings,
    load_query_settings,
    load_store_settings,
)
from loginspector.core.exceptions import (
    ClosedError,
    ConfigurationError,
    InvalidRecordError,
    LogStoreError,
    StorageQueryError,
    StorageWriteError,
    StoreConnectionError,
)
from loginspector.core.inspector import SortField
from loginspector.core.models import (
    NO_PAGE,
    UNKNOWN_NODE,
    LogRecord,
    NodeStat,
    Page,
    TimeRange,
)
from loginspector.service import LogService

__all__ = [
    "NO_PAGE",
    "UNKNOWN_NODE",
    "ClosedError",
    "ConfigurationError",
    "InvalidRecordError",
    "KeywordScope",
    "LogRecord",
    "LogService",
    "LogStoreError",
    "NodeStat",
    "Page",
    "QuerySettings",
    "SortField",
    "StorageQueryError",
    "StorageWriteError",
    "StoreConnectionError",
    "StoreSettings",
    "TimeRange",
    "load_query_settings",
    "load_store_settings",
]
