# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Object storage layout - key mapping and restore listing.
"""

from cassback.storage.keys import (
    DATE_PREFIX_FORMAT,
    DATE_PREFIX_LENGTH,
    date_prefix,
    local_path,
    object_key,
    restore_date_prefix,
    strip_date_prefix,
)

from cassback.storage.index import (
    list_restore_keys,
    matches_keyspace,
)

__all__ = [
    # Keys
    "DATE_PREFIX_FORMAT",
    "DATE_PREFIX_LENGTH",
    "date_prefix",
    "local_path",
    "object_key",
    "restore_date_prefix",
    "strip_date_prefix",
    # Index
    "list_restore_keys",
    "matches_keyspace",
]
