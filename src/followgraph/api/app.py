from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from followgraph.api.errors import ApiError, api_error_from_graph
from followgraph.api.routes_public import public_router
from followgraph.api.security import RequestSizeLimitMiddleware
from followgraph.api.structured_logging import RequestLogMiddleware
from followgraph.config import GraphConfig, load_config
from followgraph.graph.errors import GraphError
from followgraph.runtime.executor import GraphExecutor
from followgraph.runtime.executor_boot import build_executor as _build_executor


def build_executor(cfg: GraphConfig) -> GraphExecutor:
    """Build the GraphExecutor for the API runtime.

    Tests monkeypatch `followgraph.api.app.build_executor` to avoid touching disk.
    """
    return _build_executor(cfg)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(_request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_json())

    @app.exception_handler(GraphError)
    async def _graph_error(_request: Request, exc: GraphError) -> JSONResponse:
        err = api_error_from_graph(exc)
        return JSONResponse(status_code=err.status_code, content=err.to_json())

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        err = ApiError.bad_request("bad_request", "request validation failed", {"errors": exc.errors()})
        return JSONResponse(status_code=err.status_code, content=jsonable_encoder(err.to_json()))


def create_app(*, boot_runtime: bool = True, cfg: Optional[GraphConfig] = None) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): build the executor (opens the store, may take the writer lock)
      - False: no executor; routes that need one answer 500 not_ready
    """
    c = cfg or load_config()

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        yield
        ex = getattr(app.state, "executor", None)
        if ex is not None:
            ex.close()

    if c.is_prod:
        app = FastAPI(title="followgraph API", docs_url=None, redoc_url=None, openapi_url=None, lifespan=_lifespan)
    else:
        app = FastAPI(title="followgraph API", lifespan=_lifespan)

    app.state.cfg = c
    app.state.executor = build_executor(c) if boot_runtime else None

    # Request size limiter runs first (added last) so oversize bodies fail fast.
    app.add_middleware(RequestLogMiddleware, enabled=c.log_requests)
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=c.max_request_bytes)

    _install_error_handlers(app)
    app.include_router(public_router)
    return app
