"""Record collection for ordertrack.

Exports:
    RecordSource        -- Abstract supplier of the latest order records.
    HttpOrderSource     -- httpx-based source for the owner API.
    OrderTracker        -- Refresh cycle feeding the reconciliation engine.
    UpstreamFetchError  -- Any failure to fetch records.
    UnauthorizedError   -- Upstream 401; ends the session.
"""

from ordertrack.collector.source import (
    HttpOrderSource,
    RecordSource,
    UnauthorizedError,
    UpstreamFetchError,
)
from ordertrack.collector.tracker import OrderTracker, RefreshResult

__all__ = [
    "HttpOrderSource",
    "OrderTracker",
    "RecordSource",
    "RefreshResult",
    "UnauthorizedError",
    "UpstreamFetchError",
]
