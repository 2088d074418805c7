"""
FastAPI application entry point for the sync server.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from calendar_sync.auth import UnauthorizedError
from calendar_sync.config import Settings, get_settings
from calendar_sync.dependencies import get_snapshot_store
from calendar_sync.errors import (
    BackupNotFoundError,
    InvalidDataError,
    InvalidSlotError,
    MissingDataError,
    SnapshotCorruptError,
    SnapshotNotFoundError,
    StorageIOError,
    SyncStoreError,
)
from calendar_sync.middleware import BodySizeLimitMiddleware
from calendar_sync.routes import router
from calendar_sync.storage import SnapshotStore

logger = logging.getLogger(__name__)

STATUS_CODES: dict[type[SyncStoreError], int] = {
    MissingDataError: 400,
    InvalidDataError: 400,
    InvalidSlotError: 400,
    SnapshotNotFoundError: 404,
    BackupNotFoundError: 404,
    SnapshotCorruptError: 500,
    StorageIOError: 500,
}


def _error_body(code: str, message: str) -> dict:
    return {"ok": False, "error": code, "message": message}


def _status_for(exc: SyncStoreError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return 500


async def _store_error_handler(request: Request, exc: SyncStoreError) -> JSONResponse:
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=_error_body(exc.code, exc.message))


async def _unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
    return JSONResponse(status_code=401, content=_error_body(exc.code, exc.message))


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=_error_body("caller-error", "Malformed request body"),
    )


def create_app(
    settings: Optional[Settings] = None, store: Optional[SnapshotStore] = None
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Calendar Sync Server (FastAPI)", version="0.1.0")

    app.add_middleware(
        BodySizeLimitMiddleware, max_size=settings.max_payload_bytes
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SyncStoreError, _store_error_handler)
    app.add_exception_handler(UnauthorizedError, _unauthorized_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    app.include_router(router, prefix=settings.api_prefix)

    app.dependency_overrides[get_settings] = lambda: settings
    if store is not None:
        app.dependency_overrides[get_snapshot_store] = lambda: store
    return app


app = create_app()
