"""
Operator tool to inspect or roll back the snapshot store without the server.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from calendar_sync.config import get_settings
from calendar_sync.errors import SyncStoreError
from calendar_sync.storage import FileSnapshotStore

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Calendar sync backup manager")
    parser.add_argument(
        "-d",
        "--data-dir",
        type=str,
        default=None,
        help="Snapshot directory (defaults to SYNC_DATA_DIR)",
    )
    parser.add_argument(
        "--restore",
        type=int,
        default=None,
        metavar="SLOT",
        help="Copy backup SLOT (0, 1 or 2) over the current snapshot",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()
    try:
        store = FileSnapshotStore(
            args.data_dir or settings.data_dir,
            file_name=settings.data_file_name,
            lock_timeout=settings.lock_timeout_seconds,
        )
        if args.restore is not None:
            store.restore_backup(args.restore)

        status = store.status()
        logger.info(
            "current: %s (saved %s, %d bytes)",
            status.data_file if status.has_data else "empty",
            status.saved_at or "-",
            status.size_bytes,
        )
        for backup in store.list_backups():
            if backup.exists:
                logger.info(
                    "bak%d: saved %s, %d bytes",
                    backup.slot,
                    backup.saved_at or "unreadable",
                    backup.size_bytes,
                )
            else:
                logger.info("bak%d: empty", backup.slot)
    except SyncStoreError as exc:
        logger.error("%s: %s", exc.code, exc.message)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
