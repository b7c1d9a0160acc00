"""Timeline projection over a stored history."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

from ordertrack.ledger.diff import diff
from ordertrack.models.history import ChangeEvent, Diff, Snapshot
from ordertrack.models.orders import INTERESTING_FIELDS


class HistoryProjector:
    """Builds the change timeline shown for one order, newest first.

    Each snapshot is diffed against the one recorded just before it, not
    against the live record.  Changes outside the interesting paths are
    hidden, and a snapshot left with nothing to show is skipped.  The oldest
    snapshot is always emitted as the initial state.
    """

    def __init__(self, interesting_paths: Iterable[str] | None = None) -> None:
        self._interesting = frozenset(INTERESTING_FIELDS if interesting_paths is None else interesting_paths)

    @property
    def interesting_paths(self) -> frozenset[str]:
        return self._interesting

    def project(
        self,
        history: Sequence[Snapshot],
        interesting_paths: Iterable[str] | None = None,
    ) -> list[ChangeEvent]:
        """Return change events for *history*, most recent first.

        *interesting_paths* overrides the configured set for this call.
        """
        paths = self._interesting if interesting_paths is None else frozenset(interesting_paths)
        events: list[ChangeEvent] = []
        for snapshot, previous, changes in _transitions(history):
            relevant = {path: entry for path, entry in changes.items() if path in paths}
            if previous is not None and not relevant:
                continue
            events.append(ChangeEvent(timestamp=snapshot.timestamp, is_initial=previous is None, changes=relevant))
        return events

    def project_all_fields(self, history: Sequence[Snapshot]) -> list[ChangeEvent]:
        """Like ``project`` but unfiltered: every stored snapshot is emitted."""
        return [
            ChangeEvent(timestamp=snapshot.timestamp, is_initial=previous is None, changes=changes)
            for snapshot, previous, changes in _transitions(history)
        ]


def _transitions(history: Sequence[Snapshot]) -> Iterator[tuple[Snapshot, Snapshot | None, Diff]]:
    """Yield (snapshot, predecessor, diff) newest first; the oldest has no predecessor."""
    newest_first = list(reversed(history))
    for index, snapshot in enumerate(newest_first):
        previous = newest_first[index + 1] if index + 1 < len(newest_first) else None
        yield snapshot, previous, diff(previous.data if previous is not None else {}, snapshot.data)
