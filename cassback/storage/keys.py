# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Object key mapping between local data files and S3.

Keys have the shape ``YYYY/MM/DD/<keyspace>/<table>/<filename>`` where the
date is the UTC day the file was uploaded. On restore the fixed-width date
prefix is stripped and the remainder is placed under the restore root.
"""

import re
from datetime import datetime, timedelta, UTC
from pathlib import Path, PurePosixPath

from cassback.exceptions import KeyFormatError
from cassback.scanner import BackupFile

DATE_PREFIX_FORMAT = "%Y/%m/%d/"
DATE_PREFIX_LENGTH = len("YYYY/MM/DD/")

_DATE_PREFIX_RE = re.compile(r"^\d{4}/\d{2}/\d{2}/")


def date_prefix(moment: datetime) -> str:
    """Return the ``YYYY/MM/DD/`` prefix for the UTC date of moment."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(UTC)
    return moment.strftime(DATE_PREFIX_FORMAT)


def restore_date_prefix(moment: datetime, days: int) -> str:
    """Return the date prefix of the single day ``days`` before moment."""
    return date_prefix(moment - timedelta(days=days))


def relative_key(file: BackupFile) -> str:
    """Return ``keyspace/table/filename`` for a scanned file."""
    return f"{file.keyspace}/{file.table}/{file.name}"


def object_key(file: BackupFile, moment: datetime) -> str:
    """
    Build the object key a file is uploaded under.

    Args:
        file: Scanned data file
        moment: Upload time; only its UTC date is used

    Returns:
        ``YYYY/MM/DD/keyspace/table/filename``
    """
    return date_prefix(moment) + relative_key(file)


def strip_date_prefix(key: str) -> str:
    """Return the ``keyspace/table/filename`` part of an object key."""
    if not _DATE_PREFIX_RE.match(key):
        raise KeyFormatError(
            f"Object key does not start with a YYYY/MM/DD/ prefix: {key}",
            details={"key": key},
        )
    return key[DATE_PREFIX_LENGTH:]


def local_path(key: str, restore_root: Path) -> Path:
    """
    Map an object key to the local path it is restored to.

    Raises:
        KeyFormatError: If the key is malformed or would escape restore_root
    """
    remainder = PurePosixPath(strip_date_prefix(key))
    if remainder.is_absolute() or not remainder.parts or ".." in remainder.parts:
        raise KeyFormatError(
            f"Object key does not map inside the restore directory: {key}",
            details={"key": key, "restore_root": str(restore_root)},
        )
    return restore_root.joinpath(*remainder.parts)
