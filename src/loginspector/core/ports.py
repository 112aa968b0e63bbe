"""Port interfaces for storage adapters.

These protocols define the contracts that storage adapters must implement.
The service and the HTTP adapters depend only on these interfaces.
"""

from typing import Protocol, runtime_checkable

from loginspector.core.inspector import SortField
from loginspector.core.models import LogRecord, NodeStat, Page, TimeRange


@runtime_checkable
class LogStorePort(Protocol):
    """Port for writing and querying level-partitioned log records.

    Example: SQLiteLogStore.
    """

    async def report(self, record: LogRecord) -> str:
        """Write a record and return the store's acknowledgment."""
        ...

    async def find_all(
        self,
        level: str,
        time_filter: TimeRange | None = None,
        keyword: str | None = None,
        page_num: int = 1,
    ) -> Page[LogRecord]:
        """Return one page of records of a level, newest first.

        Args:
            level: Severity level selecting the collection.
            time_filter: Optional inclusive time window.
            keyword: Optional substring the record must contain.
            page_num: 1-based page number; values below 1 mean page 1.

        Returns:
            Page of LogRecord. Unknown levels give an empty page.
        """
        ...


@runtime_checkable
class NodeInspectorPort(Protocol):
    """Port for the aggregated per-node inspector view.

    Example: SQLiteNodeInspector.
    """

    async def find_all(
        self, sorted_field: str | SortField | None = None, page_num: int = 1
    ) -> Page[NodeStat]:
        """Return one page of node statistics sorted by sorted_field."""
        ...
