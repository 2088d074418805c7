"""
HTTP routes for the sync server.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends

from calendar_sync.auth import require_sync_password
from calendar_sync.dependencies import get_snapshot_store
from calendar_sync.errors import SnapshotNotFoundError
from calendar_sync.schemas import (
    BackupSlot,
    ListBackupsResponse,
    LoadMissingResponse,
    LoadResponse,
    RestoreBackupRequest,
    RestoreBackupResponse,
    SaveRequest,
    SaveResponse,
    StatusResponse,
)
from calendar_sync.storage import SnapshotStore

logger = logging.getLogger(__name__)

APP_NAME = "Calendar Sync Server"

router = APIRouter(dependencies=[Depends(require_sync_password)])


@router.get("/", response_model=StatusResponse)
def health(store: SnapshotStore = Depends(get_snapshot_store)):
    state = store.status()
    if state.has_data:
        data_file = f"{state.data_file} ({state.size_bytes / 1024:.1f} KB)"
    else:
        data_file = "no data saved yet"
    return StatusResponse(
        app=APP_NAME,
        hasData=state.has_data,
        savedAt=state.saved_at,
        dataFile=data_file,
        endpoints={
            "save": "POST /save",
            "load": "GET /load",
            "restore": "POST /restore-backup",
            "backups": "GET /backups",
        },
    )


@router.post("/save", response_model=SaveResponse)
def save(payload: SaveRequest, store: SnapshotStore = Depends(get_snapshot_store)):
    """
    Replace the shared state. The previous state moves into backup slot 0.
    """
    saved_at = store.save(payload.data, key=payload.key)
    return SaveResponse(savedAt=saved_at)


@router.get("/load", response_model=Union[LoadResponse, LoadMissingResponse])
def load(store: SnapshotStore = Depends(get_snapshot_store)):
    try:
        snapshot = store.load()
    except SnapshotNotFoundError as exc:
        # A fresh deployment has nothing saved; clients treat this as normal.
        return LoadMissingResponse(message=exc.message)
    return LoadResponse(data=snapshot.data, savedAt=snapshot.saved_at)


@router.post("/restore-backup", response_model=RestoreBackupResponse)
def restore_backup(
    payload: Optional[RestoreBackupRequest] = None,
    store: SnapshotStore = Depends(get_snapshot_store),
):
    slot = payload.slot if payload is not None and payload.slot is not None else 0
    store.restore_backup(slot)
    return RestoreBackupResponse(message=f"Restored from backup {slot}")


@router.get("/backups", response_model=ListBackupsResponse)
def list_backups(store: SnapshotStore = Depends(get_snapshot_store)):
    backups = [BackupSlot(**info.as_dict()) for info in store.list_backups()]
    return ListBackupsResponse(backups=backups)
