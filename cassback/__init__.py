# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
cassback - Streaming Cassandra data file backups to S3.

Uploads full snapshots or incremental backups as one compressed object
per data file under date-partitioned keys, and restores a single day's
objects, optionally for one keyspace.
"""

__version__ = "0.1.0"

from cassback.config import BackupConfig, BackupMode, Compression

from cassback.core import (
    BackupResult,
    RestoreResult,
    run_backup,
    run_full_snapshot,
    run_incremental_backup,
    run_restore,
)

from cassback.env import create_config_from_env

__all__ = [
    # Version
    "__version__",
    # Configuration
    "BackupConfig",
    "BackupMode",
    "Compression",
    "create_config_from_env",
    # Orchestration
    "BackupResult",
    "RestoreResult",
    "run_backup",
    "run_full_snapshot",
    "run_incremental_backup",
    "run_restore",
]
