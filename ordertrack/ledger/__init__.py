"""Change ledger for ordertrack.

Keeps an append-only snapshot history per order and answers "what changed
and when".

Submodules:
    diff        -- Structural diff producing flat field-path changes.
    store       -- Snapshot histories persisted in a key-value backend.
    reconcile   -- Diffs fetched records against the last snapshot.
    projector   -- Change timeline for display.
"""

from ordertrack.ledger.diff import diff, diff_by_key
from ordertrack.ledger.projector import HistoryProjector
from ordertrack.ledger.reconcile import ReconciliationEngine
from ordertrack.ledger.store import (
    FileBackend,
    InMemoryBackend,
    KeyValueBackend,
    SnapshotStore,
    SnapshotStoreError,
    build_backend,
    history_storage_key,
)

__all__ = [
    "FileBackend",
    "HistoryProjector",
    "InMemoryBackend",
    "KeyValueBackend",
    "ReconciliationEngine",
    "SnapshotStore",
    "SnapshotStoreError",
    "build_backend",
    "diff",
    "diff_by_key",
    "history_storage_key",
]
