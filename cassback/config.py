# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Cassback Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation and passed
explicitly to every component; there is no module-level flag state.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List
import re

MIB = 1024 * 1024

# S3 multipart limits
MIN_PART_SIZE = 5 * MIB
MAX_UPLOAD_PARTS = 10000


class Compression(str, Enum):
    """Codec applied to every uploaded object body."""

    GZIP = "gzip"
    ZSTD = "zstd"


class BackupMode(str, Enum):
    """Kind of backup run."""

    FULL = "full"  # nodetool snapshot, then clearsnapshot
    INCREMENTAL = "incremental"  # backups/ directories, then local delete


def _validate_bucket_name(bucket: str) -> bool:
    """
    Validate S3 bucket name according to AWS rules.

    Rules:
    - 3-63 characters
    - Lowercase letters, numbers, hyphens
    - Must start and end with letter or number
    - No consecutive periods
    - Not formatted as IP address
    """
    if not bucket or len(bucket) < 3 or len(bucket) > 63:
        return False

    if not re.match(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$", bucket):
        return False

    if ".." in bucket:
        return False

    if re.match(r"^\d+\.\d+\.\d+\.\d+$", bucket):
        return False

    return True


@dataclass(frozen=True)
class BackupConfig:
    """
    Immutable configuration for backup and restore runs.

    One instance describes a whole invocation: where the data lives,
    where it goes, and how it is streamed.
    """

    # Required: destination bucket
    bucket: str

    # AWS region and optional named profile / custom endpoint (MinIO etc.)
    region: str = "us-east-1"
    aws_profile: str | None = None
    endpoint_url: str | None = None

    # Storage engine data directory (<data_root>/<keyspace>/<table>/...)
    data_root: Path = field(default_factory=lambda: Path("/var/lib/cassandra/data"))

    # Where restored files are written
    restore_root: Path = field(default_factory=lambda: Path("./restore"))

    # Keyspace filter: exact match on backup, prefix match on restore
    keyspace: str = ""

    # Incremental (backups/ directories) instead of a full snapshot
    incremental: bool = False

    # Restore the objects uploaded this many days before today
    days: int = 0

    # Object body codec
    compression: Compression = Compression.GZIP
    compression_level: int = 6

    # Multipart upload bounds
    part_size: int = 128 * MIB
    max_upload_parts: int = MAX_UPLOAD_PARTS

    # Streaming pipe: bytes per chunk and chunks buffered between stages
    chunk_size: int = 1 * MIB
    pipe_capacity: int = 8

    # Keys per list_objects_v2 page during restore
    list_page_size: int = 1000

    # External snapshot tool and connection parameters forwarded to it
    nodetool_path: str = "nodetool"
    nodetool_host: str | None = None
    nodetool_port: int | None = None
    nodetool_username: str | None = None
    nodetool_password: str | None = None

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if not _validate_bucket_name(self.bucket):
            errors.append(f"Invalid bucket name: {self.bucket}")

        if self.days < 0:
            errors.append(f"days must be >= 0, got {self.days}")

        if not isinstance(self.compression, Compression):
            errors.append(f"Unknown compression: {self.compression!r}")
        elif self.compression == Compression.GZIP and not 0 <= self.compression_level <= 9:
            errors.append(
                f"gzip compression_level must be 0-9, got {self.compression_level}"
            )
        elif self.compression == Compression.ZSTD and not 1 <= self.compression_level <= 22:
            errors.append(
                f"zstd compression_level must be 1-22, got {self.compression_level}"
            )

        if self.part_size < MIN_PART_SIZE:
            errors.append(
                f"part_size must be >= {MIN_PART_SIZE} bytes, got {self.part_size}"
            )

        if not 1 <= self.max_upload_parts <= MAX_UPLOAD_PARTS:
            errors.append(
                f"max_upload_parts must be 1-{MAX_UPLOAD_PARTS}, got {self.max_upload_parts}"
            )

        if self.chunk_size < 1:
            errors.append(f"chunk_size must be >= 1, got {self.chunk_size}")

        if self.pipe_capacity < 1:
            errors.append(f"pipe_capacity must be >= 1, got {self.pipe_capacity}")

        if not 1 <= self.list_page_size <= 1000:
            errors.append(f"list_page_size must be 1-1000, got {self.list_page_size}")

        if self.keyspace and "/" in self.keyspace:
            errors.append(f"keyspace must not contain '/': {self.keyspace}")

        if not self.nodetool_path:
            errors.append("nodetool_path must not be empty")

        if errors:
            from cassback.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    def with_updates(self, **kwargs) -> "BackupConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import asdict

        current = asdict(self)
        current.update(kwargs)
        return BackupConfig(**current)
