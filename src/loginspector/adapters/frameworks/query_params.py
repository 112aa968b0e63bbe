"""Shared query parameter parsing utilities for framework adapters.

This module provides utilities for parsing and validating the query
parameters of the report, log and inspector endpoints.
"""

import json
import math
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any
from urllib.parse import parse_qs

from loginspector.core.exceptions import InvalidRecordError
from loginspector.core.models import TimeRange

Params = Mapping[str, Sequence[Any]]

# Report parameters that are record fields rather than attributes.
_RECORD_FIELDS = {"level", "time", "message", "sourceNode", "source_node"}


def _first(params: Params, *names: str) -> Any:
    for name in names:
        values = params.get(name)
        if values:
            return values[0]
    return None


def _parse_timestamp(raw: str | float) -> float | None:
    """Parse a Unix timestamp or an ISO 8601 datetime.

    Returns None for blank, unparseable, NaN and infinite values.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        raw = raw.strip()
        if not raw:
            return None
        try:
            value = float(raw)
        except ValueError:
            try:
                return datetime.fromisoformat(raw).timestamp()
            except ValueError:
                return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _parse_page_num(params: Params) -> int:
    """Parse the '_pageNum' query parameter.

    Returns:
        The requested page number, 1 if missing or invalid. Numbers below 1
        are passed through; the engines normalize them.
    """
    raw = _first(params, "_pageNum", "pageNum")
    try:
        return int(raw) if raw is not None else 1
    except ValueError:
        return 1


def _parse_time_param(params: Params) -> TimeRange | None:
    """Parse the 'time' query parameter.

    Accepts "since" or "since,until", each a Unix timestamp or an ISO 8601
    datetime. Blank or invalid values mean no time restriction.
    """
    raw = _first(params, "time")
    if not raw:
        return None
    since_raw, _, until_raw = raw.partition(",")
    since = _parse_timestamp(since_raw)
    if since is None:
        return None
    return TimeRange(since=since, until=_parse_timestamp(until_raw))


def _parse_keyword_param(params: Params) -> str | None:
    """Parse the 'keyword' query parameter; blank means no filter."""
    keyword = _first(params, "keyword")
    if keyword is None or not keyword.strip():
        return None
    return keyword.strip()


def _parse_sorted_param(params: Params) -> str | None:
    """Parse the 'sortedName' query parameter of the inspector view."""
    return _first(params, "sortedName", "sortedField")


def _parse_report_params(params: Params) -> dict[str, Any]:
    """Turn report parameters into prepare_record() keyword arguments.

    Parameters other than level, time, message and sourceNode become
    record attributes (first value of each).

    Raises:
        InvalidRecordError: If a time is given but cannot be parsed.
    """
    raw_time = _first(params, "time")
    time = None
    if raw_time is not None and str(raw_time).strip():
        time = _parse_timestamp(raw_time)
        if time is None:
            raise InvalidRecordError(f"invalid report time {raw_time!r}")
    attributes = {
        name: values[0]
        for name, values in params.items()
        if name not in _RECORD_FIELDS and values
    }
    level = _first(params, "level")
    message = _first(params, "message")
    source_node = _first(params, "sourceNode", "source_node")
    return {
        "level": str(level) if level is not None else None,
        "message": str(message) if message is not None else "",
        "time": time,
        "source_node": str(source_node) if source_node is not None else None,
        "attributes": attributes,
    }


def _report_params_from_json(body: Mapping[str, Any]) -> dict[str, list[Any]]:
    """Convert a JSON report body into the parameter shape of a query string.

    A nested "attributes" object is merged into the top level. Values that
    are not str, int, float or bool are dropped.
    """
    flat: dict[str, Any] = {
        name: value for name, value in body.items() if name != "attributes"
    }
    nested = body.get("attributes")
    if isinstance(nested, Mapping):
        for name, value in nested.items():
            flat.setdefault(str(name), value)
    return {
        name: [value]
        for name, value in flat.items()
        if isinstance(value, (str, int, float, bool))
    }


def _parse_report_body(content_type: str, body: bytes) -> dict[str, list[Any]]:
    """Parse a POSTed report body into the parameter shape of a query string.

    JSON bodies must be objects; any other body is read as form-encoded.

    Args:
        content_type: Content-Type header of the request, possibly empty.
        body: Raw request body.

    Raises:
        InvalidRecordError: If a JSON body is malformed or not an object.
    """
    if not body:
        return {}
    media_type = content_type.split(";")[0].strip().lower()
    if media_type == "application/json":
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise InvalidRecordError(f"report body is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise InvalidRecordError("report body must be a JSON object")
        return _report_params_from_json(payload)
    return parse_qs(body.decode(errors="replace"), keep_blank_values=True)
