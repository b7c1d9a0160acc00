"""Core data structures for ordertrack."""

from ordertrack.models.config import OrderTrackConfig
from ordertrack.models.history import (
    MISSING,
    ChangeEvent,
    Diff,
    DiffEntry,
    Record,
    Snapshot,
)
from ordertrack.models.orders import INTERESTING_FIELDS, OrderSummary

__all__ = [
    "INTERESTING_FIELDS",
    "MISSING",
    "ChangeEvent",
    "Diff",
    "DiffEntry",
    "OrderSummary",
    "OrderTrackConfig",
    "Record",
    "Snapshot",
]
