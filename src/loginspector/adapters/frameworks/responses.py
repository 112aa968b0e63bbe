"""Translation of store results and errors into HTTP responses."""

import logging
from typing import Any

from loginspector.core.exceptions import (
    InvalidRecordError,
    LogStoreError,
    StorageQueryError,
    StoreConnectionError,
)
from loginspector.core.models import NO_PAGE, LogRecord, NodeStat, Page

logger = logging.getLogger(__name__)


def status_for_error(exc: LogStoreError) -> int:
    """Map a store error onto an HTTP status code.

    - InvalidRecordError -> 400
    - StoreConnectionError (including ClosedError) -> 503
    - any other store error -> 500
    """
    if isinstance(exc, InvalidRecordError):
        return 400
    if isinstance(exc, StoreConnectionError):
        return 503
    return 500


def error_body(exc: LogStoreError, page_num: int | None = None) -> dict[str, Any]:
    """Build the JSON body describing a failed request.

    Failed queries still carry an empty page so views can render, but the
    "error" key tells the caller the page is not a real empty result.
    """
    if isinstance(exc, InvalidRecordError):
        logger.info("Rejected request: %s", exc)
    else:
        logger.error("Request failed: %s", exc)
    body: dict[str, Any] = {"error": str(exc)}
    if page_num is not None and isinstance(exc, StorageQueryError):
        body.update(
            resultList=[],
            currPage=max(page_num, 1),
            prevPage=NO_PAGE,
            nextPage=NO_PAGE,
        )
    return body


def log_page_body(page: Page[LogRecord]) -> dict[str, Any]:
    return page.to_dict(LogRecord.to_dict)


def node_page_body(page: Page[NodeStat]) -> dict[str, Any]:
    return page.to_dict(NodeStat.to_dict)
