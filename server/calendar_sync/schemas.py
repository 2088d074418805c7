"""
Pydantic schemas for the sync server API.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class SaveRequest(BaseModel):
    # Presence is checked by the store so a missing field maps to missing-data.
    data: Any = None
    key: Optional[str] = Field(default=None, max_length=256)


class SaveResponse(BaseModel):
    ok: Literal[True] = True
    savedAt: str


class LoadResponse(BaseModel):
    ok: Literal[True] = True
    data: Any
    savedAt: Optional[str] = None


class LoadMissingResponse(BaseModel):
    ok: Literal[False] = False
    reason: Literal["not-found"] = "not-found"
    message: str


class RestoreBackupRequest(BaseModel):
    # Omitted or null slot restores the most recent backup.
    slot: Any = 0


class RestoreBackupResponse(BaseModel):
    ok: Literal[True] = True
    message: str


class BackupSlot(BaseModel):
    slot: int
    exists: bool
    savedAt: Optional[str] = None
    sizeBytes: int = 0


class ListBackupsResponse(BaseModel):
    ok: Literal[True] = True
    backups: list[BackupSlot]


class StatusResponse(BaseModel):
    status: Literal["online"] = "online"
    app: str
    hasData: bool
    savedAt: Optional[str] = None
    dataFile: str
    endpoints: dict[str, str]


class ErrorResponse(BaseModel):
    ok: Literal[False] = False
    error: str
    message: str
