"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import threading

from calendar_sync.config import Settings, get_settings
from calendar_sync.storage import FileSnapshotStore, InMemorySnapshotStore, SnapshotStore

_snapshot_store: SnapshotStore | None = None
_store_lock = threading.Lock()


def build_store(settings: Settings) -> SnapshotStore:
    if settings.use_in_memory_store:
        return InMemorySnapshotStore(data_file=settings.data_file_name)
    return FileSnapshotStore(
        settings.data_dir,
        file_name=settings.data_file_name,
        lock_timeout=settings.lock_timeout_seconds,
    )


def get_snapshot_store() -> SnapshotStore:
    """
    Return the process-wide snapshot store, built once from settings.
    """
    global _snapshot_store
    if _snapshot_store is not None:
        return _snapshot_store

    with _store_lock:
        if _snapshot_store is None:
            _snapshot_store = build_store(get_settings())
    return _snapshot_store
