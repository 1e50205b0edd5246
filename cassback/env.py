# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration helpers.

create_config_from_env() reads a small set of well-known environment
variables and merges explicit overrides (typically parsed command-line
flags) on top of them.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from cassback.config import MIB, BackupConfig, Compression
from cassback.errors import (
    explain_invalid_compression_env,
    explain_invalid_days_env,
    explain_invalid_integer_env,
    explain_missing_bucket_env,
)
from cassback.exceptions import ConfigurationError

_TRUTHY = {"1", "true", "yes", "on"}


def _parse_bool(value: str | None) -> bool:
    if not value:
        return False
    return value.strip().lower() in _TRUTHY


def _parse_days(value: str | None) -> int:
    if not value:
        return 0
    try:
        days = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_days_env(value)) from exc
    if days < 0:
        raise ConfigurationError(explain_invalid_days_env(value))
    return days


def _parse_compression(value: str | None) -> Compression:
    if not value:
        return Compression.GZIP
    try:
        return Compression(value.lower())
    except ValueError as exc:
        raise ConfigurationError(explain_invalid_compression_env(value)) from exc


def _parse_positive_int(name: str, value: str | None) -> int | None:
    if not value:
        return None
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(explain_invalid_integer_env(name, value)) from exc
    if number < 1:
        raise ConfigurationError(explain_invalid_integer_env(name, value))
    return number


def create_config_from_env(**overrides: Any) -> BackupConfig:
    """
    Create a BackupConfig from environment variables plus explicit overrides.

    Overrides whose value is None are ignored, so parsed command-line
    arguments can be passed through unchanged.

    Environment variables:
        - S3_BUCKET: destination bucket (required unless bucket= is given)
        - AWS_REGION: AWS region (default: us-east-1)
        - AWS_PROFILE: named credentials profile
        - S3_ENDPOINT_URL: custom S3 endpoint, e.g. MinIO
        - CASSBACK_DATA_DIR: data root (default: /var/lib/cassandra/data)
        - CASSBACK_RESTORE_DIR: restore root (default: ./restore)
        - CASSBACK_KEYSPACE: keyspace filter
        - CASSBACK_INCREMENTAL: 'true' to back up backups/ directories
        - CASSBACK_DAYS: restore offset in days (default: 0)
        - CASSBACK_COMPRESSION: 'gzip' | 'zstd' (default: gzip)
        - CASSBACK_PART_SIZE_MB: multipart part size in MiB (default: 128)
        - CASSBACK_NODETOOL: nodetool executable (default: nodetool)
        - CASSBACK_NODETOOL_HOST / _PORT / _USERNAME / _PASSWORD
    """

    values: dict[str, Any] = {
        "bucket": os.getenv("S3_BUCKET"),
        "region": os.getenv("AWS_REGION", "us-east-1"),
        "aws_profile": os.getenv("AWS_PROFILE"),
        "endpoint_url": os.getenv("S3_ENDPOINT_URL"),
        "keyspace": os.getenv("CASSBACK_KEYSPACE", ""),
        "incremental": _parse_bool(os.getenv("CASSBACK_INCREMENTAL")),
        "days": _parse_days(os.getenv("CASSBACK_DAYS")),
        "compression": _parse_compression(os.getenv("CASSBACK_COMPRESSION")),
        "nodetool_path": os.getenv("CASSBACK_NODETOOL", "nodetool"),
        "nodetool_host": os.getenv("CASSBACK_NODETOOL_HOST"),
        "nodetool_port": _parse_positive_int(
            "CASSBACK_NODETOOL_PORT", os.getenv("CASSBACK_NODETOOL_PORT")
        ),
        "nodetool_username": os.getenv("CASSBACK_NODETOOL_USERNAME"),
        "nodetool_password": os.getenv("CASSBACK_NODETOOL_PASSWORD"),
    }

    data_dir = os.getenv("CASSBACK_DATA_DIR")
    if data_dir:
        values["data_root"] = Path(data_dir)
    restore_dir = os.getenv("CASSBACK_RESTORE_DIR")
    if restore_dir:
        values["restore_root"] = Path(restore_dir)
    part_size_mb = _parse_positive_int(
        "CASSBACK_PART_SIZE_MB", os.getenv("CASSBACK_PART_SIZE_MB")
    )
    if part_size_mb:
        values["part_size"] = part_size_mb * MIB

    values.update({k: v for k, v in overrides.items() if v is not None})

    if not values.get("bucket"):
        raise ConfigurationError(explain_missing_bucket_env())

    # Unset optional strings stay None rather than ""
    return BackupConfig(**{k: v for k, v in values.items() if v is not None})
