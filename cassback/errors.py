# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for cassback.

These helpers centralize wording for common configuration errors so that
all modules present consistent, actionable messages.
"""

from pathlib import Path


def explain_missing_bucket_env() -> str:
    """
    Explain that the S3 bucket environment variable is missing.
    """

    return (
        "S3 bucket is not configured. "
        "Set the S3_BUCKET environment variable or pass --bucket."
    )


def explain_invalid_days_env(value: str | None) -> str:
    """
    Explain that CASSBACK_DAYS is invalid.
    """

    return (
        f"Invalid CASSBACK_DAYS value: {value!r}. "
        "It must be a non-negative integer number of days before today."
    )


def explain_invalid_compression_env(value: str | None) -> str:
    """
    Explain that CASSBACK_COMPRESSION is invalid.
    """

    return (
        f"Invalid CASSBACK_COMPRESSION value: {value!r}. "
        "Expected 'gzip' or 'zstd'."
    )


def explain_invalid_integer_env(name: str, value: str | None) -> str:
    """
    Explain that an integer-valued environment variable is invalid.
    """

    return f"Invalid {name} value: {value!r}. It must be a positive integer."


def explain_unreadable_data_root(data_root: Path, error: OSError) -> str:
    """
    Explain that the configured data root cannot be listed.
    """

    return (
        f"Cannot read data directory {str(data_root)!r}: {error.strerror or error}. "
        "Check --data-dir (CASSBACK_DATA_DIR) and that the process may read it."
    )


def explain_unreadable_keyspace(keyspace_dir: Path, error: OSError) -> str:
    """
    Explain that a keyspace directory under the data root cannot be listed.
    """

    return (
        f"Cannot read keyspace directory {str(keyspace_dir)!r}: "
        f"{error.strerror or error}."
    )


def explain_missing_nodetool(path: str) -> str:
    """
    Explain that the snapshot tool executable was not found.
    """

    return (
        f"Snapshot tool {path!r} was not found. "
        "Install nodetool or set --nodetool (CASSBACK_NODETOOL) to its full path."
    )


def explain_invalid_s3_client(error: Exception) -> str:
    """
    Explain that the S3 client could not be created from the AWS settings.
    """

    return (
        f"Cannot create S3 client: {error}. "
        "Check --aws-profile (AWS_PROFILE) and --endpoint-url (S3_ENDPOINT_URL)."
    )
