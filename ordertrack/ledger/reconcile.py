"""Reconciliation of the latest fetched record against stored history."""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping

import structlog

from ordertrack.ledger.diff import diff
from ordertrack.ledger.store import SnapshotStore
from ordertrack.models.history import Diff, Record, Snapshot
from ordertrack.observability.metrics import reconciliations_total

_log = structlog.get_logger(component="ledger.reconcile")


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


class ReconciliationEngine:
    """Diffs each new record against the last snapshot and records changes.

    The first record seen for an entity only seeds its history.  Later
    records append a snapshot when, and only when, something changed, so
    polling an unchanged order leaves the store untouched.

    Calls for the same entity must not overlap; the engine holds no locks.
    """

    def __init__(self, store: SnapshotStore, clock: Callable[[], int] = now_ms) -> None:
        self._store = store
        self._clock = clock

    def reconcile(self, entity_key: str, latest: Record) -> Diff:
        """Record *latest* for *entity_key* and return what changed."""
        history = self._store.read(entity_key)

        if not history:
            self._store.initialize(entity_key, Snapshot(timestamp=self._clock(), data=latest))
            reconciliations_total.labels(outcome="initial").inc()
            _log.info("history_initialized", entity_key=entity_key)
            return {}

        changes = diff(history[-1].data, latest)
        if not changes:
            reconciliations_total.labels(outcome="unchanged").inc()
            _log.debug("no_changes", entity_key=entity_key)
            return {}

        self._store.append(entity_key, Snapshot(timestamp=self._clock(), data=latest))
        reconciliations_total.labels(outcome="changed").inc()
        _log.info(
            "changes_detected",
            entity_key=entity_key,
            changed_fields=len(changes),
            history_length=len(history) + 1,
        )
        return changes

    def reconcile_many(self, records: Mapping[str, Record]) -> dict[str, Diff]:
        """Reconcile each entity in turn; only non-empty diffs are returned."""
        results: dict[str, Diff] = {}
        for entity_key, record in records.items():
            changes = self.reconcile(entity_key, record)
            if changes:
                results[entity_key] = changes
        return results
