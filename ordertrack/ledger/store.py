"""Append-only per-order snapshot store.

Each order's history is one JSON array of ``{timestamp, data}`` objects held
in a key-value backend under ``history_storage_key(entity_key)``.  The store
assumes a single writer per key: ``append`` is a read-modify-write and is
not transactional.
"""

from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import quote, unquote

import structlog

from ordertrack.models.history import Snapshot
from ordertrack.observability.metrics import history_corrupted_total

_log = structlog.get_logger(component="ledger.store")

DEFAULT_KEY_PREFIX = "order-history-"
_FILE_SUFFIX = ".json"


class SnapshotStoreError(Exception):
    """Raised when the backing key-value store cannot be read or written."""

    def __init__(self, operation: str, key: str, cause: Exception) -> None:
        super().__init__(f"snapshot store {operation} failed for '{key}': {cause}")
        self.operation = operation
        self.key = key
        self.cause = cause


def history_storage_key(entity_key: str, prefix: str = DEFAULT_KEY_PREFIX) -> str:
    """Derive the backend key holding *entity_key*'s history."""
    if not entity_key:
        raise ValueError("entity_key must not be empty")
    return f"{prefix}{entity_key}"


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class KeyValueBackend(ABC):
    """Minimal string key-value store a SnapshotStore persists into."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the value stored under *key*, or None."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    def keys(self) -> list[str]:
        """Return every stored key."""


class InMemoryBackend(KeyValueBackend):
    """Dict-backed backend; contents are lost when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def keys(self) -> list[str]:
        return list(self._data)


class FileBackend(KeyValueBackend):
    """One file per key inside a directory.

    Keys are percent-encoded into file names.  Writes go to a temporary file
    that is then renamed over the target, so a crash mid-write leaves the
    previous value intact.
    """

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self._dir / f"{quote(key, safe='')}{_FILE_SUFFIX}"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self._dir, prefix=".tmp-", suffix=_FILE_SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def keys(self) -> list[str]:
        return sorted(
            unquote(path.name[: -len(_FILE_SUFFIX)])
            for path in self._dir.glob(f"*{_FILE_SUFFIX}")
            if not path.name.startswith(".tmp-")
        )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SnapshotStore:
    """Ordered, append-only snapshot histories keyed by entity."""

    def __init__(self, backend: KeyValueBackend, key_prefix: str = DEFAULT_KEY_PREFIX) -> None:
        self._backend = backend
        self._prefix = key_prefix

    def read(self, entity_key: str) -> list[Snapshot]:
        """Return *entity_key*'s full history, oldest first.

        A stored value that cannot be parsed is logged and treated as an
        empty history; the next reconciliation starts it afresh.
        """
        storage_key = history_storage_key(entity_key, self._prefix)
        try:
            raw = self._backend.get(storage_key)
        except UnicodeDecodeError as exc:
            return self._corrupted(entity_key, storage_key, exc)
        except Exception as exc:
            raise SnapshotStoreError("read", storage_key, exc) from exc
        if raw is None:
            return []

        try:
            parsed = json.loads(raw)
            if not isinstance(parsed, list):
                raise ValueError(f"history must be an array, got {type(parsed).__name__}")
            return [Snapshot.from_dict(item) for item in parsed]
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError subclass
            return self._corrupted(entity_key, storage_key, exc)

    def _corrupted(self, entity_key: str, storage_key: str, exc: Exception) -> list[Snapshot]:
        history_corrupted_total.inc()
        _log.warning(
            "history_corrupted",
            entity_key=entity_key,
            storage_key=storage_key,
            error=str(exc),
        )
        return []

    def append(self, entity_key: str, snapshot: Snapshot) -> None:
        """Append *snapshot* to the end of *entity_key*'s history."""
        history = self.read(entity_key)
        history.append(snapshot)
        self._write(entity_key, history)

    def initialize(self, entity_key: str, snapshot: Snapshot) -> None:
        """Start *entity_key*'s history with a single *snapshot*."""
        self._write(entity_key, [snapshot])

    def entity_keys(self) -> list[str]:
        """Return every entity key that has a stored history."""
        try:
            keys = self._backend.keys()
        except Exception as exc:
            raise SnapshotStoreError("list", self._prefix, exc) from exc
        prefix_len = len(self._prefix)
        return sorted(key[prefix_len:] for key in keys if key.startswith(self._prefix) and len(key) > prefix_len)

    def _write(self, entity_key: str, history: list[Snapshot]) -> None:
        storage_key = history_storage_key(entity_key, self._prefix)
        payload = json.dumps([snapshot.to_dict() for snapshot in history], ensure_ascii=False)
        try:
            self._backend.set(storage_key, payload)
        except Exception as exc:
            raise SnapshotStoreError("write", storage_key, exc) from exc
        _log.debug("history_written", entity_key=entity_key, snapshots=len(history))


def build_backend(kind: str, path: str) -> KeyValueBackend:
    """Create the backend named by configuration (``file`` or ``memory``)."""
    if kind == "memory":
        return InMemoryBackend()
    if kind == "file":
        return FileBackend(path)
    raise ValueError(f"Unknown store backend: {kind}")
