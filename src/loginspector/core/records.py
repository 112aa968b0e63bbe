"""Helpers for building LogRecord objects at ingestion time."""

import time as _time
from collections.abc import Mapping

from loginspector.core.exceptions import InvalidRecordError
from loginspector.core.models import UNKNOWN_NODE, AttributeValue, LogRecord


def prepare_record(
    level: str | None,
    message: str | None = "",
    time: float | None = None,
    source_node: str | None = None,
    attributes: Mapping[str, AttributeValue] | None = None,
) -> LogRecord:
    """Validate a reported record and fill in its defaults.

    Only a missing level rejects a record. A missing time is set to now and
    a missing source node becomes UNKNOWN_NODE.

    Args:
        level: Severity level; must be non-empty after trimming.
        message: The log message.
        time: Unix timestamp in seconds (default: now)
        source_node: Identifier of the reporting node.
        attributes: Additional structured fields.

    Returns:
        LogRecord ready to be written.

    Raises:
        InvalidRecordError: If level is missing or blank.
    """
    level = (level or "").strip()
    if not level:
        raise InvalidRecordError("log record level must be a non-empty string")
    source_node = (source_node or "").strip() or UNKNOWN_NODE
    return LogRecord(
        level=level,
        time=_time.time() if time is None else float(time),
        source_node=source_node,
        message=message or "",
        attributes=dict(attributes or {}),
    )


def record(
    level: str,
    message: str,
    source_node: str | None = None,
    **attributes: AttributeValue,
) -> LogRecord:
    """Create a log record with automatic timestamp.

    Args:
        level: Log level (e.g., "info", "error")
        message: The log message
        source_node: Identifier of the reporting node
        **attributes: Additional structured fields

    Returns:
        LogRecord with current timestamp
    """
    return prepare_record(
        level, message, source_node=source_node, attributes=attributes
    )


def info(
    message: str, source_node: str | None = None, **attributes: AttributeValue
) -> LogRecord:
    """Create an info log record with automatic timestamp."""
    return record("info", message, source_node, **attributes)


def warn(
    message: str, source_node: str | None = None, **attributes: AttributeValue
) -> LogRecord:
    """Create a warn log record with automatic timestamp."""
    return record("warn", message, source_node, **attributes)


def error(
    message: str, source_node: str | None = None, **attributes: AttributeValue
) -> LogRecord:
    """Create an error log record with automatic timestamp."""
    return record("error", message, source_node, **attributes)
