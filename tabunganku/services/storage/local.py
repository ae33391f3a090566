"""
Local Storage Implementations

JsonFileStorage keeps one file per key in a data directory. It is the
desktop counterpart of the browser localStorage the savings app started
with: cheap, single-writer, good enough for one school office.

InMemoryStorage and InMemoryAuditStorage exist for tests and for running
without any disk footprint.
"""

import os
import tempfile
from collections import deque
from pathlib import Path
from typing import Optional, Union

from tabunganku.models.audit import AuditEvent
from tabunganku.services.storage.interface import (
    AuditStorageInterface,
    StorageError,
    StorageInterface,
)


class JsonFileStorage(StorageInterface):
    """
    Stores each blob as `<data_dir>/<key>.json`.

    Writes go to a temporary file that is then renamed over the target,
    so a crash mid-write leaves the previous blob intact.
    """

    def __init__(self, data_dir: Union[str, Path]):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}.json"

    def load(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}")

    def save(self, key: str, blob: str) -> bool:
        path = self._path_for(key)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._data_dir, prefix=f".{key}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(blob)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
            return True
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}")


class InMemoryStorage(StorageInterface):
    """Dict-backed storage. Contents vanish with the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._blobs: dict[str, str] = dict(initial or {})
        self.save_count = 0

    def load(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    def save(self, key: str, blob: str) -> bool:
        self._blobs[key] = blob
        self.save_count += 1
        return True

    def keys(self) -> list[str]:
        return list(self._blobs)


class InMemoryAuditStorage(AuditStorageInterface):
    """Bounded in-memory audit trail (oldest events fall off)."""

    def __init__(self, max_events: int = 1000):
        self._events: deque[AuditEvent] = deque(maxlen=max_events)

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = list(self._events)
        events.reverse()
        return events[:limit]
