# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Restore index - which objects belong to a restore window.

Listing follows continuation tokens, so dates holding more objects than
one list_objects_v2 page are restored completely.
"""

from typing import Any, List

import structlog

from cassback.exceptions import TransferError
from cassback.storage.keys import DATE_PREFIX_LENGTH

logger = structlog.get_logger()


def matches_keyspace(key: str, keyspace_filter: str) -> bool:
    """
    Return True if a dated key passes the keyspace filter.

    This is a prefix match on the part after the date: a filter of
    "ks1" also selects a keyspace named "ks10".
    """
    if not keyspace_filter:
        return True
    return key[DATE_PREFIX_LENGTH:].startswith(keyspace_filter)


async def list_restore_keys(
    s3_client: Any,
    bucket: str,
    prefix: str,
    keyspace_filter: str = "",
    page_size: int = 1000,
) -> List[str]:
    """
    List the object keys to restore for one date prefix.

    Args:
        s3_client: aiobotocore S3 client
        bucket: Bucket to list
        prefix: ``YYYY/MM/DD/`` date prefix
        keyspace_filter: Keyspace prefix, or "" for everything
        page_size: Keys requested per page

    Returns:
        Keys in listing order
    """
    keys: List[str] = []
    listed = 0

    try:
        paginator = s3_client.get_paginator("list_objects_v2")
        async for page in paginator.paginate(
            Bucket=bucket,
            Prefix=prefix,
            PaginationConfig={"PageSize": page_size},
        ):
            for obj in page.get("Contents", []):
                key = obj["Key"]
                listed += 1
                if key.endswith("/"):
                    continue
                if matches_keyspace(key, keyspace_filter):
                    keys.append(key)
    except Exception as e:
        raise TransferError(
            f"Failed to list objects: {e}",
            details={"bucket": bucket, "prefix": prefix},
        ) from e

    logger.info(
        "restore_index_built",
        bucket=bucket,
        prefix=prefix,
        keyspace=keyspace_filter or None,
        listed=listed,
        selected=len(keys),
    )
    return keys
