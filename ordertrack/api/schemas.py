"""Pydantic request/response models for the REST API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str
    detail: str


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    session_expired: bool = False


class FieldChangeModel(BaseModel):
    """One changed field inside a history event."""

    path: str
    label: str
    old: Any = None
    new: Any = None


class ChangeEventModel(BaseModel):
    timestamp: int
    is_initial: bool
    changes: list[FieldChangeModel] = Field(default_factory=list)


class HistoryResponse(BaseModel):
    reference_number: str
    snapshot_count: int
    events: list[ChangeEventModel] = Field(default_factory=list)


class DiffEntryModel(BaseModel):
    old: Any = None
    new: Any = None


class DiffResponse(BaseModel):
    reference_number: str
    changes: dict[str, DiffEntryModel] = Field(default_factory=dict)


class ReconcileRequest(BaseModel):
    record: dict[str, Any]


class OrderSummaryModel(BaseModel):
    reference_number: str
    status: str | None = None
    model_code: str | None = None
    vin: str | None = None
    license_plate: str | None = None
    delivery_window: str | None = None
    delivery_appointment: str | None = None
    delivery_center: str | None = None
    last_recorded_at: int | None = None
    changed_fields: list[str] = Field(default_factory=list)


class OrdersResponse(BaseModel):
    orders: list[OrderSummaryModel] = Field(default_factory=list)


class RefreshResponse(BaseModel):
    refreshed_at: int
    orders: int
    changes: dict[str, dict[str, DiffEntryModel]] = Field(default_factory=dict)
