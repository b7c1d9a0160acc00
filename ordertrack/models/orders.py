"""Typed view over order records and the field labels used for display.

Records stay untyped JSON trees everywhere in the ledger; this module only
reads known paths out of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ordertrack.models.history import MISSING, Record

REFERENCE_NUMBER_PATH = "order.referenceNumber"

# Field paths shown in the history view, with their display labels.
INTERESTING_FIELDS: dict[str, str] = {
    "order.orderStatus": "Order Status",
    "order.vin": "VIN",
    "details.tasks.deliveryDetails.regData.reggieLicensePlate": "License Plate",
    "order.mktOptions": "Vehicle Options",
    "order.ownerCompanyName": "Company Name",
    "details.tasks.scheduling.deliveryWindowDisplay": "Delivery Window",
    "details.tasks.scheduling.apptDateTimeAddressStr": "Delivery Appointment",
    "details.tasks.finalPayment.data.etaToDeliveryCenter": "ETA to Delivery Center",
    "details.tasks.registration.orderDetails.vehicleRoutingLocation": "Vehicle Location",
    "details.tasks.scheduling.deliveryType": "Delivery Method",
    "details.tasks.scheduling.deliveryAddressTitle": "Delivery Center",
    "details.tasks.registration.orderDetails.vehicleOdometer": "Odometer",
    "details.tasks.registration.orderDetails.reservationDate": "Reservation Date",
    "details.tasks.registration.orderDetails.orderBookedDate": "Order Booked Date",
}


def field_label(path: str) -> str:
    """Return the display label for *path*, or the path itself if unknown."""
    return INTERESTING_FIELDS.get(path, path)


def format_value(value: Any) -> str:
    """Render a diff value for display; empty values become ``N/A``."""
    if value is None or value is MISSING or value == "":
        return "N/A"
    return str(value).strip()


def get_path(record: Any, path: str, default: Any = None) -> Any:
    """Follow a dotted *path* through nested mappings.

    Returns *default* as soon as a segment is missing or a non-mapping is
    reached.
    """
    current = record
    for segment in path.split("."):
        if not isinstance(current, dict) or segment not in current:
            return default
        current = current[segment]
    return current


def reference_number(record: Record) -> str:
    """Extract the entity key of an order record.

    Raises ValueError when the record carries no reference number.
    """
    value = get_path(record, REFERENCE_NUMBER_PATH)
    if value is None or value == "":
        raise ValueError(f"record has no {REFERENCE_NUMBER_PATH}")
    return str(value)


@dataclass(frozen=True)
class OrderSummary:
    """The handful of order fields the presentation layer reads directly."""

    reference_number: str
    status: str | None = None
    model_code: str | None = None
    vin: str | None = None
    license_plate: str | None = None
    delivery_window: str | None = None
    delivery_appointment: str | None = None
    delivery_center: str | None = None

    @classmethod
    def from_record(cls, record: Record) -> OrderSummary:
        return cls(
            reference_number=reference_number(record),
            status=get_path(record, "order.orderStatus"),
            model_code=get_path(record, "order.modelCode"),
            vin=get_path(record, "order.vin"),
            license_plate=get_path(record, "details.tasks.deliveryDetails.regData.reggieLicensePlate"),
            delivery_window=get_path(record, "details.tasks.scheduling.deliveryWindowDisplay"),
            delivery_appointment=get_path(record, "details.tasks.scheduling.apptDateTimeAddressStr"),
            delivery_center=get_path(record, "details.tasks.scheduling.deliveryAddressTitle"),
        )
