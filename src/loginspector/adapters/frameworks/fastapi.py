"""FastAPI adapter for the log collection endpoints.

Requests are parsed by the same helpers as the ASGI adapter, so both
accept the same query strings and bodies.
"""

from typing import Any

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse

from loginspector.adapters.frameworks.query_params import (
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


def _query_params(request: Request) -> dict[str, Any]:
    return {
        name: request.query_params.getlist(name)
        for name in request.query_params.keys()
    }


def create_log_router(service: LogService) -> APIRouter:
    """Create a FastAPI router with the report, log and inspector endpoints.

    Args:
        service: Started LogService the endpoints read from and write to.

    Returns:
        APIRouter with /log/report, /log/inspector.json and /log/{level}.
    """
    router = APIRouter()

    @router.api_route("/log/report", methods=["GET", "POST"])
    async def report(request: Request) -> Response:
        """Write one log record and return the store's acknowledgment.

        Record fields come from the query string, a JSON object body or a
        form-encoded body.
        """
        params = _query_params(request)
        try:
            if request.method == "POST":
                content_type = request.headers.get("content-type", "")
                body = await request.body()
                params.update(_parse_report_body(content_type, body))
            record = prepare_record(**_parse_report_params(params))
            ack = await service.report_record(record)
        except LogStoreError as exc:
            return JSONResponse(error_body(exc), status_code=status_for_error(exc))
        return PlainTextResponse(ack)

    @router.get("/log/inspector.json")
    async def inspector(request: Request) -> Response:
        """Return per-node reporting statistics (sortedName, _pageNum)."""
        params = _query_params(request)
        page_num = _parse_page_num(params)
        try:
            page = await service.inspector(_parse_sorted_param(params), page_num)
        except LogStoreError as exc:
            return JSONResponse(
                error_body(exc, page_num), status_code=status_for_error(exc)
            )
        return JSONResponse(node_page_body(page))

    @router.get("/log/{level}")
    async def logs(level: str, request: Request) -> Response:
        """Return one page of a level's records, newest first.

        Query parameters:
            time: "since" or "since,until" (Unix timestamps or ISO 8601).
            keyword: Substring filter.
            _pageNum: 1-based page number.
        """
        params = _query_params(request)
        page_num = _parse_page_num(params)
        time_filter = _parse_time_param(params)
        keyword = _parse_keyword_param(params)
        try:
            page = await service.query(level, time_filter, keyword, page_num)
        except LogStoreError as exc:
            return JSONResponse(
                error_body(exc, page_num), status_code=status_for_error(exc)
            )
        return JSONResponse(log_page_body(page))

    return router
