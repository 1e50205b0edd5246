# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Snapshot lifecycle - nodetool invocation and post-upload cleanup.
"""

from cassback.snapshot.nodetool import (
    build_command,
    clear_snapshot,
    generate_tag,
    run_nodetool,
    take_snapshot,
)

from cassback.snapshot.cleanup import (
    clear_backup_files,
    release_snapshot,
)

__all__ = [
    # nodetool
    "build_command",
    "clear_snapshot",
    "generate_tag",
    "run_nodetool",
    "take_snapshot",
    # Cleanup
    "clear_backup_files",
    "release_snapshot",
]
