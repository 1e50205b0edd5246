# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Cassback Scanner - Discovery of data files eligible for upload.

The data root is laid out as:

    <data_root>/<keyspace>/<table>/snapshots/<tag>/<file>
    <data_root>/<keyspace>/<table>/backups/<file>

An unreadable data root or keyspace directory is a configuration error.
A table without a snapshots/ or backups/ directory simply has nothing
to upload yet.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, List

import structlog

from cassback.errors import explain_unreadable_data_root, explain_unreadable_keyspace
from cassback.exceptions import ConfigurationError

logger = structlog.get_logger()

SNAPSHOTS_DIR = "snapshots"
BACKUPS_DIR = "backups"


class Category(str, Enum):
    """Kind of data file staged by the storage engine."""

    SNAPSHOT = "snapshot"
    BACKUP = "backup"


@dataclass(frozen=True)
class BackupFile:
    """A data file found under the data root."""

    path: Path
    keyspace: str
    table: str
    category: Category
    tag: str | None = None

    @property
    def name(self) -> str:
        return self.path.name


def _list_dir(path: Path) -> List[Path]:
    return list(path.iterdir())


def _iter_tables(data_root: Path, keyspace_filter: str = "") -> Iterator[tuple[str, Path]]:
    """Yield (keyspace, table_dir) pairs; raise on unreadable required levels."""
    try:
        keyspaces = _list_dir(data_root)
    except OSError as e:
        raise ConfigurationError(
            explain_unreadable_data_root(data_root, e),
            details={"data_root": str(data_root)},
        ) from e

    for keyspace_dir in keyspaces:
        if not keyspace_dir.is_dir():
            continue
        if keyspace_filter and keyspace_dir.name != keyspace_filter:
            continue

        try:
            tables = _list_dir(keyspace_dir)
        except OSError as e:
            raise ConfigurationError(
                explain_unreadable_keyspace(keyspace_dir, e),
                details={"keyspace": keyspace_dir.name},
            ) from e

        for table_dir in tables:
            if table_dir.is_dir():
                yield keyspace_dir.name, table_dir


def _regular_files(directory: Path) -> List[Path]:
    return [p for p in _list_dir(directory) if p.is_file()]


def scan_snapshot_files(data_root: Path, tag: str) -> List[BackupFile]:
    """
    Find every file of the snapshot named by tag.

    Keyspaces are not filtered here: the snapshot itself was taken for
    the requested keyspace only, so the tag bounds the result.

    Args:
        data_root: Storage engine data directory
        tag: Snapshot tag (directory name under each table's snapshots/)

    Returns:
        Files in filesystem enumeration order
    """
    if not tag:
        raise ConfigurationError("A snapshot tag is required to scan snapshot files")

    files: List[BackupFile] = []

    for keyspace, table_dir in _iter_tables(data_root):
        try:
            snapshots = _list_dir(table_dir / SNAPSHOTS_DIR)
        except OSError:
            # No snapshot history for this table
            continue

        for snapshot_dir in snapshots:
            if snapshot_dir.name != tag:
                continue
            try:
                paths = _regular_files(snapshot_dir)
            except OSError as e:
                raise ConfigurationError(
                    f"Cannot read snapshot directory {str(snapshot_dir)!r}: {e}",
                    details={"keyspace": keyspace, "table": table_dir.name, "tag": tag},
                ) from e
            files.extend(
                BackupFile(
                    path=path,
                    keyspace=keyspace,
                    table=table_dir.name,
                    category=Category.SNAPSHOT,
                    tag=tag,
                )
                for path in paths
            )

    logger.info("snapshot_files_scanned", data_root=str(data_root), tag=tag, count=len(files))
    return files


def scan_backup_files(data_root: Path, keyspace: str = "") -> List[BackupFile]:
    """
    Find every incremental backup file, optionally for one keyspace.

    Args:
        data_root: Storage engine data directory
        keyspace: Exact keyspace name, or "" for all keyspaces

    Returns:
        Files in filesystem enumeration order
    """
    files: List[BackupFile] = []

    for keyspace_name, table_dir in _iter_tables(data_root, keyspace):
        try:
            paths = _regular_files(table_dir / BACKUPS_DIR)
        except OSError:
            continue

        files.extend(
            BackupFile(
                path=path,
                keyspace=keyspace_name,
                table=table_dir.name,
                category=Category.BACKUP,
            )
            for path in paths
        )

    logger.info(
        "backup_files_scanned",
        data_root=str(data_root),
        keyspace=keyspace or None,
        count=len(files),
    )
    return files


def has_snapshot_tag(data_root: Path, tag: str) -> bool:
    """Return True if any table already holds a snapshot named tag."""
    return any(
        (table_dir / SNAPSHOTS_DIR / tag).exists()
        for _, table_dir in _iter_tables(data_root)
    )
