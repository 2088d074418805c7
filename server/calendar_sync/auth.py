"""
Optional shared-secret gate for the sync endpoints.
"""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from fastapi import Depends, Security
from fastapi.security import APIKeyHeader, APIKeyQuery

from calendar_sync.config import Settings, get_settings

logger = logging.getLogger(__name__)

password_header = APIKeyHeader(name="x-sync-password", auto_error=False)
password_query = APIKeyQuery(name="pw", auto_error=False)


class UnauthorizedError(Exception):
    code = "unauthorized"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)
        self.message = message


def require_sync_password(
    header_pw: Optional[str] = Security(password_header),
    query_pw: Optional[str] = Security(password_query),
    settings: Settings = Depends(get_settings),
) -> None:
    """FastAPI dependency enforcing SYNC_PASSWORD when one is configured."""
    if not settings.sync_password:
        return
    supplied = header_pw or query_pw or ""
    if not secrets.compare_digest(
        supplied.encode("utf-8"), settings.sync_password.encode("utf-8")
    ):
        logger.warning("Rejected request with missing or wrong sync password")
        raise UnauthorizedError()
