"""Shared fixtures for ordertrack integration tests.

Provides a wired store / engine / projector / tracker stack and realistic
order records so tests can exercise full refresh and history pipelines
without touching the real upstream API.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import pytest

from ordertrack.collector.source import RecordSource
from ordertrack.collector.tracker import OrderTracker
from ordertrack.ledger.projector import HistoryProjector
from ordertrack.ledger.reconcile import ReconciliationEngine
from ordertrack.ledger.store import FileBackend, SnapshotStore
from ordertrack.models.history import Record

# ---------------------------------------------------------------------------
# Record factory helpers
# ---------------------------------------------------------------------------


def make_order_record(
    reference_number: str = "RN123456789",
    status: str = "BOOKED",
    vin: str | None = None,
    license_plate: str | None = None,
    delivery_window: str | None = "June 2 - June 9",
    appointment: str | None = None,
    odometer: int = 15,
    tasks_state: dict[str, Any] | None = None,
) -> Record:
    """Create an order record shaped like the owner API's order + tasks payload."""
    return {
        "order": {
            "referenceNumber": reference_number,
            "orderStatus": status,
            "modelCode": "my",
            "vin": vin,
            "isB2b": False,
            "isUsed": False,
            "mktOptions": "APBS,DV2W,IPB7,MDLY,PPSW,WY19P",
        },
        "details": {
            "tasks": {
                "scheduling": {
                    "deliveryWindowDisplay": delivery_window,
                    "apptDateTimeAddressStr": appointment,
                    "deliveryType": "PICKUP_SERVICE_CENTER",
                    "deliveryAddressTitle": "Tilburg Delivery Center",
                    "complete": False,
                },
                "registration": {
                    "orderDetails": {
                        "vehicleOdometer": odometer,
                        "vehicleRoutingLocation": 1234,
                        "reservationDate": "2025-03-01T10:00:00Z",
                        "orderBookedDate": "2025-03-02T10:00:00Z",
                    },
                },
                "deliveryDetails": {"regData": {"reggieLicensePlate": license_plate}},
                "finalPayment": {"data": {"etaToDeliveryCenter": None}},
                "state": tasks_state or {"polledAt": 1},
                "strings": {"title": "Your Model Y"},
            },
        },
    }


def evolve(record: Record, **changes: Any) -> Record:
    """Return a deep copy of *record* with dotted-path *changes* applied.

    Path segments are separated by ``__`` in keyword names, e.g.
    ``order__orderStatus="DELIVERED"``.
    """
    result = copy.deepcopy(record)
    for dotted, value in changes.items():
        segments = dotted.split("__")
        target = result
        for segment in segments[:-1]:
            target = target.setdefault(segment, {})
        target[segments[-1]] = value
    return result


class ScriptedSource(RecordSource):
    """Replays one scripted response per fetch: a record list or an exception."""

    def __init__(self, *responses: list[Record] | Exception) -> None:
        self._responses = list(responses)
        self.calls = 0

    def push(self, response: list[Record] | Exception) -> None:
        self._responses.append(response)

    async def fetch_records(self) -> list[Record]:
        self.calls += 1
        if not self._responses:
            raise AssertionError("no scripted response left")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store(tmp_path: Path) -> SnapshotStore:
    """A file-backed store in a temporary directory."""
    return SnapshotStore(FileBackend(tmp_path / "history"))


@pytest.fixture
def engine(store: SnapshotStore) -> ReconciliationEngine:
    ticks = iter(range(1_700_000_000_000, 1_800_000_000_000, 60_000))
    return ReconciliationEngine(store, clock=lambda: next(ticks))


@pytest.fixture
def projector() -> HistoryProjector:
    return HistoryProjector()


@pytest.fixture
def source() -> ScriptedSource:
    return ScriptedSource()


@pytest.fixture
def tracker(source: ScriptedSource, engine: ReconciliationEngine) -> OrderTracker:
    return OrderTracker(source, engine)
