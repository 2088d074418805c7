"""
Snapshot storage: one current document plus three rotating backups.

The file-backed store keeps everything in a single directory:

    data.json        current snapshot
    data.json.bak0   state before the latest save
    data.json.bak1   two saves ago
    data.json.bak2   three saves ago

Every write goes to a temporary file in the same directory and is renamed
over its target, so readers see either the old or the new file in full.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager, suppress
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator, Optional, Protocol

from filelock import FileLock, Timeout

from calendar_sync.errors import (
    BackupNotFoundError,
    InvalidDataError,
    InvalidSlotError,
    MissingDataError,
    SnapshotCorruptError,
    SnapshotNotFoundError,
    StorageIOError,
)

logger = logging.getLogger(__name__)

BACKUP_SLOTS = 3
DEFAULT_FILE_NAME = "data.json"


@dataclass(frozen=True)
class Snapshot:
    data: Any
    saved_at: Optional[str]
    key: Optional[str] = None


@dataclass(frozen=True)
class BackupInfo:
    slot: int
    exists: bool
    saved_at: Optional[str] = None
    size_bytes: int = 0

    def as_dict(self) -> dict:
        return {
            "slot": self.slot,
            "exists": self.exists,
            "savedAt": self.saved_at,
            "sizeBytes": self.size_bytes,
        }


@dataclass(frozen=True)
class StoreStatus:
    has_data: bool
    saved_at: Optional[str]
    size_bytes: int
    data_file: str


class SnapshotStore(Protocol):
    """Defines the operations the API needs from snapshot storage."""

    def save(self, data: Any, key: Optional[str] = None) -> str:
        ...

    def load(self) -> Snapshot:
        ...

    def restore_backup(self, slot: int) -> None:
        ...

    def status(self) -> StoreStatus:
        ...

    def list_backups(self) -> list[BackupInfo]:
        ...


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def validate_slot(slot: Any) -> int:
    if isinstance(slot, bool) or not isinstance(slot, int):
        raise InvalidSlotError()
    if not 0 <= slot < BACKUP_SLOTS:
        raise InvalidSlotError()
    return slot


def _require_data(data: Any) -> None:
    if data is None or (isinstance(data, str) and not data):
        raise MissingDataError()


def encode_snapshot(data: Any, saved_at: str, key: Optional[str] = None) -> bytes:
    record: dict[str, Any] = {}
    if key is not None:
        record["key"] = key
    record["data"] = data
    record["savedAt"] = saved_at
    try:
        text = json.dumps(record, indent=2, ensure_ascii=False, allow_nan=False)
        # Lone surrogates survive json.loads but cannot be written as UTF-8.
        return text.encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise InvalidDataError(f"Data is not JSON serializable: {exc}") from exc


def decode_snapshot(raw: bytes) -> Snapshot:
    try:
        record = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise SnapshotCorruptError(f"Saved data is unreadable: {exc}") from exc
    if not isinstance(record, dict) or "data" not in record:
        raise SnapshotCorruptError("Saved data is missing its data field")
    saved_at = record.get("savedAt")
    return Snapshot(
        data=record["data"],
        saved_at=saved_at if isinstance(saved_at, str) else None,
        key=record.get("key"),
    )


def _saved_at_or_none(raw: bytes) -> Optional[str]:
    try:
        return decode_snapshot(raw).saved_at
    except SnapshotCorruptError:
        return None


class FileSnapshotStore:
    """
    Snapshot store backed by a local directory or mounted volume.

    Mutations are serialized by an in-process lock plus a lock file next to
    the data file, so several server workers can share one directory.
    """

    def __init__(
        self,
        data_dir: str,
        file_name: str = DEFAULT_FILE_NAME,
        lock_timeout: float = 10.0,
    ):
        try:
            os.makedirs(data_dir, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(
                f"Cannot create data directory {data_dir}: {exc}"
            ) from exc
        self.data_dir = data_dir
        self.data_path = os.path.join(data_dir, file_name)
        self._mutex = threading.Lock()
        self._file_lock = FileLock(self.data_path + ".lock", timeout=lock_timeout)

    def backup_path(self, slot: int) -> str:
        return f"{self.data_path}.bak{slot}"

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        with self._mutex:
            try:
                self._file_lock.acquire()
            except Timeout as exc:
                raise StorageIOError(
                    f"Timed out waiting for {self._file_lock.lock_file}"
                ) from exc
            try:
                yield
            finally:
                self._file_lock.release()

    def _write_atomic(self, path: str, payload: bytes) -> None:
        fd, temp_path = tempfile.mkstemp(
            dir=self.data_dir,
            prefix=f".{os.path.basename(path)}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        except BaseException:
            with suppress(FileNotFoundError):
                os.unlink(temp_path)
            raise

    def _copy_atomic(self, src: str, dest: str) -> None:
        with open(src, "rb") as f:
            payload = f.read()
        self._write_atomic(dest, payload)

    def _rotate_backups(self) -> None:
        # Oldest first so no generation is overwritten before it moves down.
        for slot in range(BACKUP_SLOTS - 1, 0, -1):
            src = self.backup_path(slot - 1)
            if os.path.exists(src):
                self._copy_atomic(src, self.backup_path(slot))
        if os.path.exists(self.data_path):
            self._copy_atomic(self.data_path, self.backup_path(0))

    def save(self, data: Any, key: Optional[str] = None) -> str:
        _require_data(data)
        with self._exclusive():
            saved_at = utc_timestamp()
            payload = encode_snapshot(data, saved_at, key)
            try:
                self._rotate_backups()
                self._write_atomic(self.data_path, payload)
            except OSError as exc:
                logger.exception("Save failed for %s", self.data_path)
                raise StorageIOError(f"Failed to save snapshot: {exc}") from exc
        logger.info("Saved %.1f KB to %s", len(payload) / 1024, self.data_path)
        return saved_at

    def load(self) -> Snapshot:
        try:
            with open(self.data_path, "rb") as f:
                raw = f.read()
        except FileNotFoundError:
            raise SnapshotNotFoundError() from None
        except OSError as exc:
            logger.exception("Load failed for %s", self.data_path)
            raise StorageIOError(f"Failed to read snapshot: {exc}") from exc
        snapshot = decode_snapshot(raw)
        logger.info("Loaded %.1f KB from %s", len(raw) / 1024, self.data_path)
        return snapshot

    def restore_backup(self, slot: int) -> None:
        validate_slot(slot)
        backup = self.backup_path(slot)
        with self._exclusive():
            payload = self._read_optional(backup)
            if payload is None:
                raise BackupNotFoundError(f"Backup {slot} not found")
            try:
                self._write_atomic(self.data_path, payload)
            except OSError as exc:
                logger.exception("Restore from %s failed", backup)
                raise StorageIOError(f"Failed to restore backup: {exc}") from exc
        logger.info("Restored %s from backup %d", self.data_path, slot)

    def _read_optional(self, path: str) -> Optional[bytes]:
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageIOError(f"Failed to read {path}: {exc}") from exc

    def status(self) -> StoreStatus:
        raw = self._read_optional(self.data_path)
        return StoreStatus(
            has_data=raw is not None,
            saved_at=_saved_at_or_none(raw) if raw is not None else None,
            size_bytes=len(raw) if raw is not None else 0,
            data_file=os.path.basename(self.data_path),
        )

    def list_backups(self) -> list[BackupInfo]:
        backups = []
        for slot in range(BACKUP_SLOTS):
            raw = self._read_optional(self.backup_path(slot))
            if raw is None:
                backups.append(BackupInfo(slot=slot, exists=False))
                continue
            backups.append(
                BackupInfo(
                    slot=slot,
                    exists=True,
                    saved_at=_saved_at_or_none(raw),
                    size_bytes=len(raw),
                )
            )
        return backups


@dataclass
class InMemorySnapshotStore:
    """Test double with the same rotation and error semantics as the file store."""

    data_file: str = DEFAULT_FILE_NAME
    current: Optional[bytes] = None
    backups: list = field(default_factory=lambda: [None] * BACKUP_SLOTS)

    def __post_init__(self):
        self._lock = threading.Lock()

    def save(self, data: Any, key: Optional[str] = None) -> str:
        _require_data(data)
        with self._lock:
            saved_at = utc_timestamp()
            payload = encode_snapshot(data, saved_at, key)
            if self.current is not None:
                self.backups = [self.current] + self.backups[: BACKUP_SLOTS - 1]
            self.current = payload
        return saved_at

    def load(self) -> Snapshot:
        stored = self.current
        if stored is None:
            raise SnapshotNotFoundError()
        return decode_snapshot(stored)

    def restore_backup(self, slot: int) -> None:
        validate_slot(slot)
        with self._lock:
            stored = self.backups[slot]
            if stored is None:
                raise BackupNotFoundError(f"Backup {slot} not found")
            self.current = stored

    def status(self) -> StoreStatus:
        stored = self.current
        return StoreStatus(
            has_data=stored is not None,
            saved_at=_saved_at_or_none(stored) if stored is not None else None,
            size_bytes=len(stored) if stored is not None else 0,
            data_file=self.data_file,
        )

    def list_backups(self) -> list[BackupInfo]:
        return [
            BackupInfo(
                slot=slot,
                exists=stored is not None,
                saved_at=_saved_at_or_none(stored) if stored is not None else None,
                size_bytes=len(stored) if stored is not None else 0,
            )
            for slot, stored in enumerate(self.backups)
        ]

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.current = None
            self.backups = [None] * BACKUP_SLOTS
