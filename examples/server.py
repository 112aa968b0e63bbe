"""Example FastAPI application collecting logs from remote nodes.

Run with:
    LOGINSPECTOR_STORE_HOST=localhost \
    LOGINSPECTOR_STORE_USERNAME=admin \
    LOGINSPECTOR_STORE_PASSWORD=secret \
    LOGINSPECTOR_STORE_NAMESPACE=logs \
    uvicorn examples.server:app --reload

Endpoints:
    /log/report?level=info&sourceNode=n1&message=up   - report one record
    /log/info?_pageNum=2&keyword=timeout             - browse a level
    /log/error?time=1700000000,1700003600            - records within a window
    /log/inspector.json?sortedName=lastSeen          - per-node statistics
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from loginspector import LogService, StoreConnectionError
from loginspector.adapters.frameworks.fastapi import create_log_router
from loginspector.config import configure_logging

configure_logging()

# Fails fast with ConfigurationError when required settings are missing.
service = LogService.from_env()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the store before serving and close it on shutdown."""
    await service.start()
    try:
        yield
    finally:
        await service.close()


app = FastAPI(title="Log Inspector", lifespan=lifespan)
app.include_router(create_log_router(service))


@app.get("/health")
async def health() -> JSONResponse:
    """Report whether the store answers a heartbeat."""
    try:
        await service.ping()
    except StoreConnectionError as exc:
        return JSONResponse({"status": "down", "error": str(exc)}, status_code=503)
    return JSONResponse({"status": "ok"})
