"""SQLite adapter computing the per-node inspector view."""

import logging
import sqlite3

from loginspector.adapters.storage.collections import CollectionRouter
from loginspector.adapters.storage.connection import ConnectionManager
from loginspector.config import QuerySettings
from loginspector.core.exceptions import StorageQueryError
from loginspector.core.inspector import SortField, resolve_sort_field
from loginspector.core.levels import quote_identifier, table_name_for
from loginspector.core.models import NodeStat, Page
from loginspector.core.pagination import (
    MAX_OFFSET,
    build_page,
    normalize_page_num,
    page_window,
)

logger = logging.getLogger(__name__)

# The average period is the mean of the positive gaps between a node's
# consecutive report times; equal times contribute no gap.
_SELECT_NODE_STATS = """
WITH reports AS (
    {reports}
),
gaps AS (
    SELECT source_node, time,
           time - LAG(time) OVER (PARTITION BY source_node ORDER BY time) AS gap
    FROM reports
),
stats AS (
    SELECT source_node,
           COUNT(*) AS report_count,
           AVG(CASE WHEN gap > 0 THEN gap END) AS average_period,
           MAX(time) AS last_seen
    FROM gaps
    GROUP BY source_node
)
SELECT source_node, report_count, average_period, last_seen
FROM stats
ORDER BY {order}
LIMIT ? OFFSET ?
"""

_SELECT_REPORTS = "SELECT source_node, time FROM {table}"

_SORT_COLUMNS = {
    SortField.AVERAGE_PERIOD: "average_period",
    SortField.REPORT_COUNT: "report_count",
    SortField.LAST_SEEN: "last_seen",
    SortField.SOURCE_NODE: "source_node",
}


def _order_by(field: SortField) -> str:
    """Return the ORDER BY terms for a sort field.

    Undefined values sort last; source_node breaks ties.
    """
    column = _SORT_COLUMNS[field]
    direction = "DESC" if field.descending else "ASC"
    terms = [f"{column} IS NULL", f"{column} {direction}"]
    if field is not SortField.SOURCE_NODE:
        terms.append("source_node ASC")
    return ", ".join(terms)


class SQLiteNodeInspector:
    """SQLite implementation of NodeInspectorPort.

    Statistics are recomputed on every call from the stored records, so
    the view always reflects the latest reports.
    """

    def __init__(
        self,
        manager: ConnectionManager,
        router: CollectionRouter,
        settings: QuerySettings | None = None,
    ) -> None:
        self._manager = manager
        self._router = router
        self._settings = settings or QuerySettings()

    async def _collections(self) -> list[str]:
        """Return the existing collections within the inspector's scope."""
        if not self._settings.inspector_levels:
            return await self._router.list_collections()
        collections: list[str] = []
        for level in self._settings.inspector_levels:
            stored = await self._router.resolve(self._router.collection_for(level))
            if stored is not None and stored not in collections:
                collections.append(stored)
        return collections

    async def find_all(
        self, sorted_field: str | SortField | None = None, page_num: int = 1
    ) -> Page[NodeStat]:
        """Return one page of node statistics.

        Args:
            sorted_field: Wire name of a SortField. Unknown names fall back
                to the average period.
            page_num: 1-based page number; values below 1 mean page 1.

        Returns:
            Page of NodeStat.

        Raises:
            StorageQueryError: If the aggregation query fails.
        """
        page_num = normalize_page_num(page_num)
        page_size = self._settings.page_size
        limit, offset = page_window(page_num, page_size)
        field = resolve_sort_field(sorted_field)

        collections = await self._collections()
        # Pages past the addressable offset are necessarily empty.
        if not collections or offset > MAX_OFFSET:
            return build_page([], page_num, page_size)
        reports = "\n    UNION ALL\n    ".join(
            _SELECT_REPORTS.format(table=quote_identifier(table_name_for(name)))
            for name in collections
        )
        query = _SELECT_NODE_STATS.format(reports=reports, order=_order_by(field))

        conn = self._manager.handle()
        try:
            async with conn.execute(query, (limit, offset)) as cursor:
                fetched = [
                    NodeStat(
                        source_node=row[0],
                        report_count=row[1],
                        average_period=row[2],
                        last_seen=row[3],
                    )
                    async for row in cursor
                ]
        except sqlite3.Error as exc:
            raise StorageQueryError(f"could not aggregate node stats: {exc}") from exc
        return build_page(fetched, page_num, page_size)
