"""
Local Storage Implementations

DESIGN DECISION: The household keeps its data on the machine running the
app, the same way the browser version kept it in local storage:
- LocalFileStorage writes one JSON file per key inside a data directory
- InMemoryStorage keeps values in a dict (tests, throwaway sessions)
- InMemoryAuditStorage keeps a bounded in-process audit trail

TRADEOFFS:
- No sync between machines (single household, single device)
- Last write wins; there is exactly one writer per store
"""

import os
from collections import deque
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

from familysync.models.audit import AuditEvent
from familysync.services.storage.interface import (
    AuditStorageInterface,
    StateStorageInterface,
    StorageReadError,
    StorageWriteError,
)


class LocalFileStorage(StateStorageInterface):
    """
    Key/value storage backed by files in a directory.

    Each key maps to `<data_dir>/<key>.json`. Writes go to a temporary
    file first and are moved into place, so a crash mid-write leaves the
    previous snapshot intact.
    """

    def __init__(self, data_dir: Union[str, Path]):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path_for(self, key: str) -> Path:
        return self._data_dir / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageReadError(f"Cannot read {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageWriteError(f"Cannot write {path}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self._path_for(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageWriteError(f"Cannot remove {key}: {e}") from e


class InMemoryStorage(StateStorageInterface):
    """Dict-backed storage. Values live as long as the object."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class InMemoryAuditStorage(AuditStorageInterface):
    """
    Bounded in-process audit trail.

    Keeps the newest `max_events` events; older ones fall off.
    """

    def __init__(self, max_events: int = 500):
        self._events: deque[AuditEvent] = deque(maxlen=max_events)

    def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
