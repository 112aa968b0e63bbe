"""SQLite storage adapter for level-partitioned logs."""

import json
import logging
import sqlite3
from typing import Any

from loginspector.adapters.storage.collections import CollectionRouter
from loginspector.adapters.storage.connection import ConnectionManager
from loginspector.config import KeywordScope, QuerySettings
from loginspector.core.exceptions import (
    InvalidRecordError,
    StorageQueryError,
    StorageWriteError,
)
from loginspector.core.levels import quote_identifier, table_name_for
from loginspector.core.models import LogRecord, Page, TimeRange
from loginspector.core.pagination import (
    MAX_OFFSET,
    build_page,
    normalize_page_num,
    page_window,
)

logger = logging.getLogger(__name__)

_INSERT_LOG = """
INSERT INTO {table} (time, level, source_node, message, attributes)
VALUES (?, ?, ?, ?, ?)
"""

_SELECT_LOGS = """
SELECT time, level, source_node, message, attributes
FROM {table}
{where}
ORDER BY time DESC, id DESC
LIMIT ? OFFSET ?
"""


def _safe_json_loads(
    data: str, default: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Safely parse JSON data, returning default on decode error.

    Args:
        data: JSON string to parse.
        default: Value to return if parsing fails. Defaults to empty dict.

    Returns:
        Parsed JSON as dict, or default if parsing fails.
    """
    if default is None:
        default = {}
    try:
        result: dict[str, Any] = json.loads(data)
        return result
    except json.JSONDecodeError:
        return default


def _escape_like(keyword: str) -> str:
    escaped = keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _keyword_clause(keyword: str, settings: QuerySettings) -> tuple[str, list[Any]]:
    """Build the WHERE fragment matching keyword as a substring.

    Case-insensitive matching uses LIKE, which folds ASCII letters only.
    """
    if settings.keyword_case_sensitive:
        template, param = "instr({column}, ?) > 0", keyword
    else:
        template, param = "{column} LIKE ? ESCAPE '\\'", _escape_like(keyword)

    columns = ["message"]
    if settings.keyword_scope is KeywordScope.ALL:
        columns.append("source_node")
    clauses = [template.format(column=column) for column in columns]
    params: list[Any] = [param] * len(columns)
    if settings.keyword_scope is KeywordScope.ALL:
        value_match = template.format(column="CAST(attr.value AS TEXT)")
        clauses.append(
            f"EXISTS (SELECT 1 FROM json_each(attributes) AS attr WHERE {value_match})"
        )
        params.append(param)
    return "(" + " OR ".join(clauses) + ")", params


class SQLiteLogStore:
    """SQLite implementation of LogStorePort.

    Each level is stored in its own collection table. Writes provision
    a collection on first use; reads never create one, so querying a
    level that was never written yields an empty page.
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

    @property
    def settings(self) -> QuerySettings:
        return self._settings

    def _to_row(self, record: LogRecord) -> tuple[Any, ...]:
        try:
            attributes = json.dumps(record.attributes)
        except (TypeError, ValueError) as exc:
            raise InvalidRecordError(
                f"log record attributes are not serializable: {exc}"
            ) from exc
        return (
            record.time,
            record.level,
            record.source_node,
            record.message,
            attributes,
        )

    def _from_row(self, row: sqlite3.Row | tuple[Any, ...]) -> LogRecord:
        return LogRecord(
            time=row[0],
            level=row[1],
            source_node=row[2],
            message=row[3],
            attributes=_safe_json_loads(row[4]),
        )

    async def report(self, record: LogRecord) -> str:
        """Write a log record to its level's collection.

        The first write to a new level provisions its collection and
        time index before the insert.

        Returns:
            Acknowledgment of the form "<collection>/<id>".

        Raises:
            InvalidRecordError: If the record cannot be encoded.
            StorageWriteError: If the write fails. It is not retried.
        """
        collection = self._router.collection_for(record.level)
        row = self._to_row(record)
        await self._router.ensure_index(collection)
        table = quote_identifier(table_name_for(collection))
        conn = self._manager.handle()
        try:
            cursor = await conn.execute(_INSERT_LOG.format(table=table), row)
            record_id = cursor.lastrowid
            await cursor.close()
            await conn.commit()
        except sqlite3.Error as exc:
            raise StorageWriteError(
                f"could not write record to {collection!r}: {exc}"
            ) from exc
        return f"{collection}/{record_id}"

    async def find_all(
        self,
        level: str,
        time_filter: TimeRange | None = None,
        keyword: str | None = None,
        page_num: int = 1,
    ) -> Page[LogRecord]:
        """Return one page of a level's records, newest first.

        Records with equal time are listed most recently written first,
        so every query has a total order and pages never overlap.

        Args:
            level: Severity level selecting the collection.
            time_filter: Optional inclusive time window.
            keyword: Optional substring filter (see QuerySettings).
            page_num: 1-based page number; values below 1 mean page 1.

        Returns:
            Page of LogRecord. Unknown levels give an empty page.

        Raises:
            StorageQueryError: If the query fails.
        """
        page_num = normalize_page_num(page_num)
        page_size = self._settings.page_size
        limit, offset = page_window(page_num, page_size)

        level = (level or "").strip()
        stored = None
        if level:
            stored = await self._router.resolve(self._router.collection_for(level))
        # Pages past the addressable offset are necessarily empty.
        if stored is None or offset > MAX_OFFSET:
            return build_page([], page_num, page_size)

        clauses: list[str] = []
        params: list[Any] = []
        if time_filter is not None:
            clauses.append("time >= ?")
            params.append(time_filter.since)
            if time_filter.until is not None:
                clauses.append("time <= ?")
                params.append(time_filter.until)
        if keyword:
            clause, keyword_params = _keyword_clause(keyword, self._settings)
            clauses.append(clause)
            params.extend(keyword_params)
        where = "WHERE " + " AND ".join(clauses) if clauses else ""
        table = quote_identifier(table_name_for(stored))
        query = _SELECT_LOGS.format(table=table, where=where)

        conn = self._manager.handle()
        try:
            async with conn.execute(query, (*params, limit, offset)) as cursor:
                fetched = [self._from_row(row) async for row in cursor]
        except sqlite3.Error as exc:
            raise StorageQueryError(f"could not query {stored!r}: {exc}") from exc
        return build_page(fetched, page_num, page_size)
