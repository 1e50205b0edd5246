# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Post-upload cleanup.

Incremental backup files are staging copies and are deleted once the
whole batch is uploaded. Snapshot files are hard links owned by the
storage engine, so snapshots are released through nodetool instead.
"""

from typing import List

import structlog

from cassback.config import BackupConfig
from cassback.scanner import BackupFile
from cassback.snapshot.nodetool import clear_snapshot

logger = structlog.get_logger()


def clear_backup_files(files: List[BackupFile]) -> List[str]:
    """
    Delete uploaded incremental backup files.

    Best effort: a file that cannot be removed is logged and reported,
    and the remaining files are still processed. The backups/ directory
    itself is left for the storage engine.

    Returns:
        One error message per file that could not be deleted
    """
    errors: List[str] = []
    removed = 0

    for file in files:
        try:
            file.path.unlink(missing_ok=True)
            removed += 1
        except OSError as e:
            errors.append(f"{file.path}: {e}")
            logger.warning("backup_file_delete_failed", path=str(file.path), error=str(e))

    logger.info("backup_files_cleared", removed=removed, failed=len(errors))
    return errors


async def release_snapshot(config: BackupConfig, tag: str) -> None:
    """
    Release an uploaded snapshot via ``nodetool clearsnapshot``.

    Raises:
        ExternalToolError: If nodetool fails; the uploaded data is unaffected
    """
    await clear_snapshot(config, tag)
    logger.info("snapshot_released", tag=tag)
