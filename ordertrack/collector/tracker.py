"""Refresh cycle: fetch every order, reconcile each against its history."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import structlog

from ordertrack.collector.source import RecordSource, UnauthorizedError, UpstreamFetchError
from ordertrack.ledger.reconcile import ReconciliationEngine, now_ms
from ordertrack.models.history import Diff, Record
from ordertrack.models.orders import reference_number

_log = structlog.get_logger(component="collector.tracker")


@dataclass
class RefreshResult:
    """Outcome of one refresh cycle."""

    records: dict[str, Record] = field(default_factory=dict)
    diffs: dict[str, Diff] = field(default_factory=dict)
    refreshed_at: int = 0


class OrderTracker:
    """Drives reconciliation for every order the source returns.

    Orders are reconciled one after another, so two reconciliations of the
    same order never overlap within a tracker.  Only one tracker should
    write a given store.
    """

    def __init__(self, source: RecordSource, engine: ReconciliationEngine) -> None:
        self._source = source
        self._engine = engine
        self._latest = RefreshResult()
        self._lock = asyncio.Lock()
        self.session_expired = False

    @property
    def latest(self) -> RefreshResult:
        """Result of the most recent successful refresh."""
        return self._latest

    async def refresh(self) -> RefreshResult:
        """Fetch all records and reconcile them.

        Raises:
            UnauthorizedError:   upstream rejected the session; the tracker
                                 is marked expired.
            UpstreamFetchError:  any other fetch failure.
        """
        async with self._lock:
            try:
                fetched = await self._source.fetch_records()
            except UnauthorizedError:
                self.session_expired = True
                _log.warning("session_expired")
                raise

            records: dict[str, Record] = {}
            for record in fetched:
                try:
                    key = reference_number(record)
                except ValueError:
                    _log.warning("record_without_reference_number_skipped")
                    continue
                records[key] = record

            diffs = self._engine.reconcile_many(records)
            self._latest = RefreshResult(records=records, diffs=diffs, refreshed_at=now_ms())
            _log.info("refresh_complete", orders=len(records), changed=len(diffs))
            return self._latest

    async def run_periodic(self, interval_seconds: float) -> None:
        """Refresh every *interval_seconds* until cancelled or the session ends.

        Transient fetch failures are logged and retried on the next tick.
        """
        while True:
            try:
                await self.refresh()
            except UnauthorizedError:
                _log.warning("periodic_refresh_stopped", reason="unauthorized")
                return
            except UpstreamFetchError as exc:
                _log.warning("periodic_refresh_failed", error=str(exc), status_code=exc.status_code)
            await asyncio.sleep(interval_seconds)
