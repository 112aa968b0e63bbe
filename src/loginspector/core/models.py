"""Core domain models for collected logs and node statistics."""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")

AttributeValue = str | int | float | bool

# Navigation cursor value meaning "there is no such page".
NO_PAGE: int | None = None

# Source node recorded when a reporter does not identify itself.
UNKNOWN_NODE = "unknown"


@dataclass(frozen=True)
class LogRecord:
    """A log record reported by a remote node.

    Attributes:
        level: Severity level; selects the collection the record lives in.
        time: Unix timestamp in seconds. Records are listed newest first.
        source_node: Identifier of the reporting node.
        message: The log message.
        attributes: Additional structured fields attached by the reporter.
    """

    level: str
    time: float
    source_node: str = UNKNOWN_NODE
    message: str = ""
    attributes: dict[str, AttributeValue] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Render the record in its wire shape."""
        return {
            "level": self.level,
            "time": self.time,
            "sourceNode": self.source_node,
            "message": self.message,
            "attributes": dict(self.attributes),
        }


@dataclass(frozen=True)
class NodeStat:
    """Reporting statistics of one source node, computed on demand.

    Attributes:
        source_node: Identifier of the reporting node.
        report_count: Number of records the node has reported.
        average_period: Mean interval in seconds between consecutive reports,
            or None when the node has fewer than two distinct report times.
        last_seen: Timestamp of the node's most recent record.
    """

    source_node: str
    report_count: int
    average_period: float | None
    last_seen: float

    def to_dict(self) -> dict[str, Any]:
        """Render the statistic in its wire shape."""
        return {
            "sourceNode": self.source_node,
            "reportCount": self.report_count,
            "averagePeriod": self.average_period,
            "lastSeen": self.last_seen,
        }


@dataclass(frozen=True)
class TimeRange:
    """Inclusive time window used to filter queries.

    Attributes:
        since: Lower bound; records with time >= since match.
        until: Optional upper bound; records with time <= until match.
    """

    since: float
    until: float | None = None


@dataclass(frozen=True)
class Page(Generic[T]):
    """One bounded slice of an ordered result set.

    Attributes:
        result_list: Items on this page, in result order.
        curr_page: 1-based number of this page.
        prev_page: Previous page number, or NO_PAGE on the first page.
        next_page: Next page number, or NO_PAGE when no further results exist.
        page_size: Maximum number of items per page.
    """

    result_list: Sequence[T]
    curr_page: int
    prev_page: int | None
    next_page: int | None
    page_size: int

    @property
    def has_next(self) -> bool:
        return self.next_page is not NO_PAGE

    @property
    def has_prev(self) -> bool:
        return self.prev_page is not NO_PAGE

    def to_dict(self, encode: Callable[[T], Any]) -> dict[str, Any]:
        """Render the page in its wire shape, encoding each item with encode."""
        return {
            "resultList": [encode(item) for item in self.result_list],
            "currPage": self.curr_page,
            "prevPage": self.prev_page,
            "nextPage": self.next_page,
        }
