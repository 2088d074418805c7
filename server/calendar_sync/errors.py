"""
Error taxonomy shared by the snapshot store and the HTTP layer.
"""

from __future__ import annotations


class SyncStoreError(Exception):
    """Base class for snapshot store failures."""

    code = "io-failure"
    default_message = "Snapshot store failure"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class MissingDataError(SyncStoreError):
    code = "missing-data"
    default_message = "Missing data"


class InvalidDataError(SyncStoreError):
    code = "caller-error"
    default_message = "Data is not JSON serializable"


class InvalidSlotError(SyncStoreError):
    code = "invalid-slot"
    default_message = "Backup slot must be 0, 1 or 2"


class SnapshotNotFoundError(SyncStoreError):
    code = "not-found"
    default_message = "No data saved yet"


class BackupNotFoundError(SyncStoreError):
    code = "not-found"
    default_message = "Backup not found"


class SnapshotCorruptError(SyncStoreError):
    code = "corrupt"
    default_message = "Saved data is unreadable"


class StorageIOError(SyncStoreError):
    code = "io-failure"
    default_message = "Storage is unavailable"
