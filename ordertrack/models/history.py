"""Snapshot, diff and change-event data structures."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias

Record: TypeAlias = dict[str, Any]


class _Missing(Enum):
    """Marker for a key absent on one side of a diff.

    Distinct from ``None``, which is an explicit JSON null.
    """

    MISSING = "<missing>"

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing.MISSING


def to_json_value(value: Any) -> Any:
    """Map ``MISSING`` to ``None``; every other value passes through."""
    return None if value is MISSING else value


@dataclass(frozen=True)
class DiffEntry:
    """Old and new value for one field path."""

    old: Any
    new: Any

    def to_dict(self) -> dict[str, Any]:
        return {"old": to_json_value(self.old), "new": to_json_value(self.new)}


# field path -> DiffEntry; empty means no observable change
Diff: TypeAlias = dict[str, DiffEntry]


def diff_to_dict(diff: Diff) -> dict[str, dict[str, Any]]:
    """Serialise a Diff to plain JSON-compatible dicts."""
    return {path: entry.to_dict() for path, entry in diff.items()}


@dataclass(frozen=True)
class Snapshot:
    """Full record state captured at one point in time.

    Immutable once written: the store only ever appends new snapshots.
    """

    timestamp: int  # ms since epoch
    data: Record = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "data": self.data}

    @classmethod
    def from_dict(cls, raw: Any) -> Snapshot:
        """Build a Snapshot from its stored form.

        Raises ValueError when *raw* does not have a finite numeric
        ``timestamp`` and a mapping ``data``.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"snapshot must be an object, got {type(raw).__name__}")
        timestamp = raw.get("timestamp")
        data = raw.get("data")
        # bool is an int subclass but never a valid timestamp
        if isinstance(timestamp, bool) or not isinstance(timestamp, int | float):
            raise ValueError(f"snapshot timestamp must be a number, got {timestamp!r}")
        if isinstance(timestamp, float) and not math.isfinite(timestamp):
            raise ValueError(f"snapshot timestamp must be finite, got {timestamp!r}")
        if not isinstance(data, dict):
            raise ValueError(f"snapshot data must be an object, got {type(data).__name__}")
        return cls(timestamp=int(timestamp), data=data)


@dataclass(frozen=True)
class ChangeEvent:
    """One displayable entry in an order's history timeline."""

    timestamp: int
    is_initial: bool
    changes: Diff = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        from ordertrack.models.orders import field_label

        return {
            "timestamp": self.timestamp,
            "is_initial": self.is_initial,
            "changes": [
                {"path": path, "label": field_label(path), **entry.to_dict()}
                for path, entry in self.changes.items()
            ],
        }
