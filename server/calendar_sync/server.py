"""
Process entry point: resolve settings once, build the store, run uvicorn.
"""

from __future__ import annotations

import argparse
import logging
import os
from typing import Optional, Sequence

import uvicorn

from calendar_sync.app import create_app
from calendar_sync.config import Settings, get_settings
from calendar_sync.dependencies import build_store

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(name)s %(levelname)s %(asctime)s %(message)s"
LOG_DATEFMT = "%m/%d/%Y %I:%M:%S %p"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Calendar sync server")
    parser.add_argument("--host", type=str, default=None, help="Bind address")
    parser.add_argument("-p", "--port", type=int, default=None, help="Listen port")
    parser.add_argument(
        "-d",
        "--data-dir",
        type=str,
        default=None,
        help="Directory holding the snapshot and its backups",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ...)",
    )
    return parser


def resolve_settings(args: argparse.Namespace, base: Optional[Settings] = None) -> Settings:
    base = base or get_settings()
    overrides = {
        name: value
        for name, value in (
            ("host", args.host),
            ("port", args.port),
            ("data_dir", args.data_dir),
            ("log_level", args.log_level),
        )
        if value is not None
    }
    if not overrides:
        return base
    return base.model_copy(update=overrides)


def log_banner(settings: Settings) -> None:
    logger.info("Calendar Sync Server running on port %d", settings.port)
    if settings.use_in_memory_store:
        logger.info("Data file: in-memory (not persisted)")
    else:
        logger.info(
            "Data file: %s",
            os.path.abspath(os.path.join(settings.data_dir, settings.data_file_name)),
        )
    logger.info(
        "Password protection: %s", "YES" if settings.sync_password else "no"
    )
    prefix = settings.api_prefix
    logger.info("POST %s/save  save app data", prefix)
    logger.info("GET  %s/load  load app data", prefix)
    logger.info("POST %s/restore-backup  roll back to a backup slot", prefix)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = resolve_settings(args)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )

    store = build_store(settings)
    app = create_app(settings=settings, store=store)
    log_banner(settings)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
