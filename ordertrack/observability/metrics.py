"""Prometheus counters for reconciliation, storage and upstream fetches."""

from __future__ import annotations

from prometheus_client import Counter

reconciliations_total = Counter(
    "ordertrack_reconciliations_total",
    "Reconciliations by outcome (initial, changed, unchanged).",
    ["outcome"],
)

history_corrupted_total = Counter(
    "ordertrack_history_corrupted_total",
    "Stored histories that could not be parsed and were treated as empty.",
)

upstream_fetch_failures_total = Counter(
    "ordertrack_upstream_fetch_failures_total",
    "Failed record fetches by reason (unauthorized, http_status, transport).",
    ["reason"],
)
