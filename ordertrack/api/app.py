"""FastAPI application factory for ordertrack.

Usage::

    from ordertrack.api.app import create_app

    app = create_app(
        store=store,
        engine=engine,
        projector=projector,
        tracker=tracker,
        config=config,
    )

Used by both the production bootstrap (``ordertrack.app``) and tests.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ordertrack.api.routes import router
from ordertrack.api.schemas import ErrorResponse
from ordertrack.ledger.store import SnapshotStoreError

_log = structlog.get_logger(component="api.app")

_API_PREFIX = "/api/v1"


def create_app(
    store: Any,
    engine: Any,
    projector: Any,
    tracker: Any = None,
    config: Any = None,
) -> FastAPI:
    """Create and configure the ordertrack FastAPI application.

    Args:
        store:      SnapshotStore holding order histories.
        engine:     ReconciliationEngine used by the push-style reconcile route.
        projector:  HistoryProjector for the history view.
        tracker:    Optional OrderTracker; without it ``/refresh`` answers 503
                    and ``/diff`` is always empty.
        config:     OrderTrackConfig, kept for introspection.
    """
    from ordertrack import __version__

    app = FastAPI(
        title="ordertrack",
        summary="Order change tracking API",
        version=__version__,
        description="Field-level change detection and per-order history for tracked orders.",
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
        openapi_url="/api/v1/openapi.json",
    )

    app.state.store = store
    app.state.engine = engine
    app.state.projector = projector
    app.state.tracker = tracker
    app.state.config = config

    app.include_router(router, prefix=_API_PREFIX)

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        _request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = exc.errors()
        first_msg = str(errors[0].get("msg", "")) if errors else ""
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="INVALID_REQUEST", detail=first_msg).model_dump(),
        )

    @app.exception_handler(SnapshotStoreError)
    async def store_exception_handler(
        request: Request,
        exc: SnapshotStoreError,
    ) -> JSONResponse:
        _log.error(
            "snapshot_store_error",
            path=str(request.url.path),
            operation=exc.operation,
            error=str(exc.cause),
        )
        return JSONResponse(
            status_code=503,
            content=ErrorResponse(
                error="STORE_UNAVAILABLE",
                detail="Order history storage is unavailable.",
            ).model_dump(),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
