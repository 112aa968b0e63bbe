"""Sort keys of the node inspector view."""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class SortField(str, Enum):
    """Fields the inspector view can be sorted by.

    Values are the field names used on the wire.
    """

    AVERAGE_PERIOD = "averagePeriod"
    REPORT_COUNT = "reportCount"
    LAST_SEEN = "lastSeen"
    SOURCE_NODE = "sourceNode"

    @property
    def descending(self) -> bool:
        """Whether larger values are listed first."""
        return self is not SortField.SOURCE_NODE


DEFAULT_SORT_FIELD = SortField.AVERAGE_PERIOD


def resolve_sort_field(name: str | SortField | None) -> SortField:
    """Resolve a requested sort field, falling back to the default.

    Matching is case-insensitive and also accepts snake_case names
    ("average_period"). Unknown names never fail so the inspector view
    always renders.

    Args:
        name: Requested field name, a SortField, or None.

    Returns:
        The matching SortField, or DEFAULT_SORT_FIELD.
    """
    if isinstance(name, SortField):
        return name
    if not name:
        return DEFAULT_SORT_FIELD
    wanted = name.replace("_", "").lower()
    for field in SortField:
        if field.value.lower() == wanted:
            return field
    logger.debug(
        "Unknown inspector sort field %r, using %s", name, DEFAULT_SORT_FIELD.value
    )
    return DEFAULT_SORT_FIELD
