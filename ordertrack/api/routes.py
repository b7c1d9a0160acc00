"""REST API routes.

Dependencies (store, engine, projector, tracker) live on ``app.state`` and
are set by ``create_app``.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ordertrack.api.schemas import (
    ChangeEventModel,
    DiffResponse,
    ErrorResponse,
    HealthResponse,
    HistoryResponse,
    OrdersResponse,
    OrderSummaryModel,
    ReconcileRequest,
    RefreshResponse,
)
from ordertrack.collector.source import UnauthorizedError, UpstreamFetchError
from ordertrack.models.history import diff_to_dict
from ordertrack.models.orders import OrderSummary

_log = structlog.get_logger(component="api.routes")

router = APIRouter()


def _error(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
    )


def _opt_str(value: Any) -> str | None:
    return None if value is None else str(value)


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    from ordertrack import __version__

    tracker = request.app.state.tracker
    return HealthResponse(
        version=__version__,
        session_expired=bool(tracker is not None and tracker.session_expired),
    )


@router.get("/orders", response_model=OrdersResponse)
async def list_orders(request: Request) -> OrdersResponse:
    store = request.app.state.store
    tracker = request.app.state.tracker
    latest_diffs = tracker.latest.diffs if tracker is not None else {}

    summaries: list[OrderSummaryModel] = []
    for entity_key in store.entity_keys():
        history = store.read(entity_key)
        if not history:
            continue
        last = history[-1]
        try:
            summary = OrderSummary.from_record(last.data)
        except ValueError:
            summary = OrderSummary(reference_number=entity_key)
        summaries.append(
            OrderSummaryModel(
                reference_number=entity_key,
                status=_opt_str(summary.status),
                model_code=_opt_str(summary.model_code),
                vin=_opt_str(summary.vin),
                license_plate=_opt_str(summary.license_plate),
                delivery_window=_opt_str(summary.delivery_window),
                delivery_appointment=_opt_str(summary.delivery_appointment),
                delivery_center=_opt_str(summary.delivery_center),
                last_recorded_at=last.timestamp,
                changed_fields=sorted(latest_diffs.get(entity_key, {})),
            )
        )
    return OrdersResponse(orders=summaries)


@router.get("/orders/{reference_number}/history", response_model=HistoryResponse)
async def order_history(
    request: Request,
    reference_number: str,
    all_fields: bool = Query(default=False),
) -> HistoryResponse:
    store = request.app.state.store
    projector = request.app.state.projector

    history = store.read(reference_number)
    events = projector.project_all_fields(history) if all_fields else projector.project(history)
    return HistoryResponse(
        reference_number=reference_number,
        snapshot_count=len(history),
        events=[ChangeEventModel(**event.to_dict()) for event in events],
    )


@router.get("/orders/{reference_number}/diff", response_model=DiffResponse)
async def order_diff(request: Request, reference_number: str) -> DiffResponse:
    tracker = request.app.state.tracker
    changes = tracker.latest.diffs.get(reference_number, {}) if tracker is not None else {}
    return DiffResponse(reference_number=reference_number, changes=diff_to_dict(changes))


@router.post("/orders/{reference_number}/reconcile", response_model=DiffResponse)
async def reconcile_order(request: Request, reference_number: str, body: ReconcileRequest) -> DiffResponse:
    engine = request.app.state.engine
    changes = engine.reconcile(reference_number, body.record)
    return DiffResponse(reference_number=reference_number, changes=diff_to_dict(changes))


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(request: Request) -> RefreshResponse | JSONResponse:
    tracker = request.app.state.tracker
    if tracker is None:
        return _error(503, "SOURCE_NOT_CONFIGURED", "No record source is configured.")
    try:
        result = await tracker.refresh()
    except UnauthorizedError:
        return _error(401, "SESSION_EXPIRED", "Upstream rejected the session; sign in again.")
    except UpstreamFetchError as exc:
        _log.warning("refresh_failed", error=str(exc), status_code=exc.status_code)
        return _error(502, "UPSTREAM_FETCH_FAILED", "Could not retrieve order information.")

    return RefreshResponse(
        refreshed_at=result.refreshed_at,
        orders=len(result.records),
        changes={key: diff_to_dict(changes) for key, changes in result.diffs.items()},
    )


@router.get("/metrics", response_class=PlainTextResponse)
async def metrics() -> PlainTextResponse:
    return PlainTextResponse(generate_latest().decode("utf-8"), media_type=CONTENT_TYPE_LATEST)
