# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
nodetool adapter - create and release tagged snapshots.

The tool is run directly (no shell). Its stdout is logged, its stderr is
attached to the raised error, and a non-zero exit aborts the backup.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Callable, List

import structlog

from cassback.config import BackupConfig
from cassback.errors import explain_missing_nodetool
from cassback.exceptions import ConfigurationError, ExternalToolError
from cassback.scanner import has_snapshot_tag

logger = structlog.get_logger()

# Seconds-resolution tags: wait for the next second on collision
TAG_ATTEMPTS = 3


def build_command(config: BackupConfig, *args: str) -> List[str]:
    """Return the nodetool argv with connection options first."""
    command = [config.nodetool_path]
    if config.nodetool_host:
        command += ["-h", config.nodetool_host]
    if config.nodetool_port:
        command += ["-p", str(config.nodetool_port)]
    if config.nodetool_username:
        command += ["-u", config.nodetool_username]
    if config.nodetool_password:
        command += ["-pw", config.nodetool_password]
    return command + list(args)


def _redact(command: List[str]) -> str:
    shown = list(command)
    for i, arg in enumerate(shown[:-1]):
        if arg == "-pw":
            shown[i + 1] = "***"
    return " ".join(shown)


async def run_nodetool(config: BackupConfig, *args: str) -> str:
    """
    Run one nodetool command and return its stdout.

    Raises:
        ExternalToolError: If the tool is missing or exits non-zero
    """
    command = build_command(config, *args)
    printable = _redact(command)

    logger.info("nodetool_started", command=printable)

    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise ExternalToolError(
            explain_missing_nodetool(config.nodetool_path),
            details={"command": printable},
        ) from e
    except OSError as e:
        raise ExternalToolError(
            f"Failed to start nodetool: {e}",
            details={"command": printable},
        ) from e

    stdout, stderr = await proc.communicate()
    output = stdout.decode("utf-8", "replace").strip()

    if proc.returncode != 0:
        raise ExternalToolError(
            f"nodetool {args[0]} failed with exit code {proc.returncode}",
            details={
                "command": printable,
                "returncode": proc.returncode,
                "stderr": stderr.decode("utf-8", "replace").strip(),
            },
        )

    logger.info("nodetool_completed", command=printable, output=output)
    return output


async def generate_tag(
    data_root: Path,
    clock: Callable[[], datetime],
) -> str:
    """
    Generate a snapshot tag (Unix seconds) not yet used on disk.

    If a snapshot directory with the candidate tag already exists, wait
    for the next second and try again.
    """
    for _ in range(TAG_ATTEMPTS):
        moment = clock().timestamp()
        tag = str(int(moment))
        if not has_snapshot_tag(data_root, tag):
            return tag
        logger.warning("snapshot_tag_collision", tag=tag)
        await asyncio.sleep(1 - (moment % 1))

    raise ConfigurationError(
        f"Could not allocate an unused snapshot tag after {TAG_ATTEMPTS} attempts: "
        f"snapshot directories named {tag!r} already exist under {str(data_root)!r}. "
        "nodetool was not run.",
        details={"last_tag": tag, "data_root": str(data_root)},
    )


async def take_snapshot(config: BackupConfig, tag: str) -> str:
    """Snapshot config.keyspace (or every keyspace) under tag."""
    args = ["snapshot", "-t", tag]
    if config.keyspace:
        args.append(config.keyspace)
    return await run_nodetool(config, *args)


async def clear_snapshot(config: BackupConfig, tag: str) -> str:
    """Release the snapshot named tag."""
    return await run_nodetool(config, "clearsnapshot", "-t", tag)
