"""Unit tests for the ReconciliationEngine."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from ordertrack.ledger.reconcile import ReconciliationEngine, now_ms
from ordertrack.ledger.store import InMemoryBackend, KeyValueBackend, SnapshotStore, SnapshotStoreError
from ordertrack.models.history import DiffEntry

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _clock(start: int = 1_000) -> Iterator[int]:
    tick = start
    while True:
        yield tick
        tick += 1_000


def _engine(store: SnapshotStore | None = None) -> tuple[ReconciliationEngine, SnapshotStore]:
    store = store or SnapshotStore(InMemoryBackend())
    ticks = _clock()
    return ReconciliationEngine(store, clock=lambda: next(ticks)), store


def _order(status: str, **extra: object) -> dict:
    return {"order": {"referenceNumber": "RN123", "orderStatus": status, **extra}}


class _ReadOnlyBackend(KeyValueBackend):
    def __init__(self, initial: dict[str, str]) -> None:
        self._data = initial

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        raise PermissionError("read-only")

    def keys(self) -> list[str]:
        return list(self._data)


# ---------------------------------------------------------------------------
# First observation
# ---------------------------------------------------------------------------


class TestFirstObservation:
    def test_returns_empty_diff(self) -> None:
        engine, _ = _engine()
        assert engine.reconcile("RN123", _order("BOOKED")) == {}

    def test_creates_single_snapshot(self) -> None:
        engine, store = _engine()
        engine.reconcile("RN123", _order("BOOKED"))
        history = store.read("RN123")
        assert len(history) == 1
        assert history[0].data == _order("BOOKED")
        assert history[0].timestamp == 1_000


# ---------------------------------------------------------------------------
# Subsequent observations
# ---------------------------------------------------------------------------


class TestChanges:
    def test_change_appends_and_returns_diff(self) -> None:
        engine, store = _engine()
        engine.reconcile("RN123", _order("BOOKED"))
        result = engine.reconcile("RN123", _order("DELIVERED"))
        assert result == {"order.orderStatus": DiffEntry(old="BOOKED", new="DELIVERED")}
        history = store.read("RN123")
        assert len(history) == 2
        assert history[-1].data == _order("DELIVERED")
        assert history[-1].timestamp == 2_000

    def test_diff_is_against_last_snapshot_not_first(self) -> None:
        engine, _ = _engine()
        engine.reconcile("RN123", _order("BOOKED"))
        engine.reconcile("RN123", _order("IN_TRANSIT"))
        result = engine.reconcile("RN123", _order("DELIVERED"))
        assert result == {"order.orderStatus": DiffEntry(old="IN_TRANSIT", new="DELIVERED")}

    def test_uninteresting_fields_still_trigger_append(self) -> None:
        engine, store = _engine()
        engine.reconcile("RN123", _order("BOOKED", internalCounter=1))
        result = engine.reconcile("RN123", _order("BOOKED", internalCounter=2))
        assert list(result) == ["order.internalCounter"]
        assert len(store.read("RN123")) == 2


class TestIdempotence:
    def test_second_identical_call_is_noop(self) -> None:
        engine, store = _engine()
        engine.reconcile("RN123", _order("BOOKED"))
        assert engine.reconcile("RN123", _order("BOOKED")) == {}
        assert len(store.read("RN123")) == 1

    def test_repeated_after_change(self) -> None:
        engine, store = _engine()
        engine.reconcile("RN123", _order("BOOKED"))
        engine.reconcile("RN123", _order("DELIVERED"))
        assert engine.reconcile("RN123", _order("DELIVERED")) == {}
        assert len(store.read("RN123")) == 2

    def test_noop_does_not_write(self) -> None:
        store = SnapshotStore(
            _ReadOnlyBackend(
                {"order-history-RN123": '[{"timestamp": 1, "data": {"order": {"orderStatus": "BOOKED"}}}]'}
            )
        )
        engine, _ = _engine(store)
        assert engine.reconcile("RN123", {"order": {"orderStatus": "BOOKED"}}) == {}


# ---------------------------------------------------------------------------
# Failure propagation
# ---------------------------------------------------------------------------


class TestFailures:
    def test_write_failure_surfaces(self) -> None:
        store = SnapshotStore(
            _ReadOnlyBackend({"order-history-RN123": '[{"timestamp": 1, "data": {"order": {"orderStatus": "A"}}}]'})
        )
        engine, _ = _engine(store)
        with pytest.raises(SnapshotStoreError):
            engine.reconcile("RN123", {"order": {"orderStatus": "B"}})

    def test_corrupted_history_is_reinitialised(self) -> None:
        store = SnapshotStore(InMemoryBackend({"order-history-RN123": "[[["}))
        engine, _ = _engine(store)
        assert engine.reconcile("RN123", _order("BOOKED")) == {}
        assert len(store.read("RN123")) == 1


# ---------------------------------------------------------------------------
# reconcile_many
# ---------------------------------------------------------------------------


class TestReconcileMany:
    def test_returns_only_non_empty_diffs(self) -> None:
        engine, _ = _engine()
        engine.reconcile_many({"RN1": _order("BOOKED"), "RN2": _order("BOOKED")})
        result = engine.reconcile_many({"RN1": _order("BOOKED"), "RN2": _order("DELIVERED")})
        assert list(result) == ["RN2"]
        assert result["RN2"] == {"order.orderStatus": DiffEntry(old="BOOKED", new="DELIVERED")}

    def test_first_pass_returns_nothing(self) -> None:
        engine, store = _engine()
        assert engine.reconcile_many({"RN1": _order("A"), "RN2": _order("B")}) == {}
        assert store.entity_keys() == ["RN1", "RN2"]


def test_now_ms_is_milliseconds() -> None:
    # 2020-01-01 in ms; guards against a seconds-based clock
    assert now_ms() > 1_577_836_800_000
