"""ASGI generic adapter for the log collection endpoints.

This adapter provides a framework-agnostic ASGI application that can be used
with any ASGI server (uvicorn, hypercorn, daphne) without requiring FastAPI
as a dependency.

Routes:
    /log/report          - GET or POST; writes one record, returns the acknowledgment
    /log/inspector.json  - per-node statistics (sortedName, _pageNum)
    /log/{level}         - records of a level (time, keyword, _pageNum)
"""

import json
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any
from urllib.parse import parse_qs

from loginspector.adapters.frameworks.query_params import (
    Params,
    _parse_keyword_param,
    _parse_page_num,
    _parse_report_body,
    _parse_report_params,
    _parse_sorted_param,
    _parse_time_param,
)
from loginspector.adapters.frameworks.responses import (
    error_body,
    log_page_body,
    node_page_body,
    status_for_error,
)
from loginspector.core.exceptions import LogStoreError
from loginspector.core.records import prepare_record
from loginspector.service import LogService

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]

_LOG_PREFIX = "/log/"


def _parse_query_params(scope: Scope) -> dict[str, list[str]]:
    """Parse query string from ASGI scope into parameter dictionary.

    Args:
        scope: ASGI scope dictionary containing request metadata.

    Returns:
        Dictionary mapping parameter names to lists of values.
        Returns empty dict if query_string is missing or empty.
    """
    query_string = scope.get("query_string", b"").decode(errors="replace")
    return parse_qs(query_string, keep_blank_values=True)


def _content_type(scope: Scope) -> str:
    headers: list[tuple[bytes, bytes]] = scope.get("headers", [])
    for name, value in headers:
        if name.lower() == b"content-type":
            return value.decode("latin-1")
    return ""


async def _read_body(receive: Receive) -> bytes:
    """Read the complete request body from the ASGI receive channel."""
    chunks = []
    while True:
        message = await receive()
        if message["type"] != "http.request":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


async def _report_params(scope: Scope, receive: Receive) -> Params:
    """Collect report parameters from the query string and a POST body.

    Body parameters take precedence over query parameters.

    Raises:
        InvalidRecordError: If a JSON body is malformed or not an object.
    """
    params: dict[str, Any] = dict(_parse_query_params(scope))
    if scope.get("method") == "POST":
        body = await _read_body(receive)
        params.update(_parse_report_body(_content_type(scope), body))
    return params


async def _send_response(send: Send, status: int, content_type: str, body: str) -> None:
    """Send an HTTP response with headers and body.

    Args:
        send: ASGI send callable for writing response.
        status: HTTP status code.
        content_type: Content-Type header value.
        body: Response body as string (will be encoded to bytes).
    """
    headers = [(b"content-type", content_type.encode())]
    await send({"type": "http.response.start", "status": status, "headers": headers})
    await send({"type": "http.response.body", "body": body.encode()})


async def _send_json(send: Send, status: int, payload: dict[str, Any]) -> None:
    await _send_response(send, status, "application/json", json.dumps(payload))


async def _handle_endpoint(
    send: Send,
    endpoint_func: Callable[[], Awaitable[dict[str, Any]]],
    page_num: int | None = None,
) -> None:
    """Execute an endpoint function with error handling and send JSON.

    Store errors become JSON error responses; the process keeps serving.

    Args:
        send: ASGI send callable for writing response.
        endpoint_func: Async function that returns the response payload.
        page_num: Requested page, echoed in error bodies of failed queries.
    """
    try:
        payload = await endpoint_func()
    except LogStoreError as exc:
        await _send_json(send, status_for_error(exc), error_body(exc, page_num))
        return
    await _send_json(send, 200, payload)


def create_asgi_app(service: LogService) -> ASGIApp:
    """Create an ASGI app serving the report, log and inspector endpoints.

    Args:
        service: Started LogService the endpoints read from and write to.

    Returns:
        ASGI application callable.
    """

    async def report(scope: Scope, receive: Receive, send: Send) -> None:
        try:
            params = await _report_params(scope, receive)
            record = prepare_record(**_parse_report_params(params))
            ack = await service.report_record(record)
        except LogStoreError as exc:
            await _send_json(send, status_for_error(exc), error_body(exc))
            return
        await _send_response(send, 200, "text/plain; charset=utf-8", ack)

    async def inspector(scope: Scope, send: Send) -> None:
        params = _parse_query_params(scope)
        page_num = _parse_page_num(params)
        sorted_field = _parse_sorted_param(params)

        async def endpoint() -> dict[str, Any]:
            return node_page_body(await service.inspector(sorted_field, page_num))

        await _handle_endpoint(send, endpoint, page_num)

    async def logs(scope: Scope, send: Send, level: str) -> None:
        params = _parse_query_params(scope)
        page_num = _parse_page_num(params)
        time_filter = _parse_time_param(params)
        keyword = _parse_keyword_param(params)

        async def endpoint() -> dict[str, Any]:
            page = await service.query(level, time_filter, keyword, page_num)
            return log_page_body(page)

        await _handle_endpoint(send, endpoint, page_num)

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        path = scope["path"]
        if path == "/log/report":
            await report(scope, receive, send)
        elif path == "/log/inspector.json":
            await inspector(scope, send)
        elif path.startswith(_LOG_PREFIX) and "/" not in path[len(_LOG_PREFIX) :]:
            level = path[len(_LOG_PREFIX) :]
            if not level:
                await _send_response(send, 404, "text/plain", "Not Found")
                return
            await logs(scope, send, level)
        else:
            await _send_response(send, 404, "text/plain", "Not Found")

    return app
