# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Streaming download: S3 object -> decompressor -> pipe -> local file.
"""

from pathlib import Path
from typing import Any, List

import aiofiles
import structlog

from cassback.config import BackupConfig
from cassback.exceptions import TransferError
from cassback.storage.keys import local_path
from cassback.transfer.compressor import (
    MAGIC_LENGTH,
    StreamDecompressor,
    detect_compression,
    run_codec,
)
from cassback.transfer.pipe import BoundedPipe, run_stages

logger = structlog.get_logger()


async def _decompress_body(stream: Any, pipe: BoundedPipe, chunk_size: int) -> None:
    """Producer stage: sniff the codec, then decompress into the pipe."""
    head = b""
    while len(head) < MAGIC_LENGTH:
        chunk = await stream.read(chunk_size)
        if not chunk:
            break
        head += chunk

    decompressor = StreamDecompressor(detect_compression(head))

    data = head
    while data:
        await pipe.write(await run_codec(decompressor.decompress, data))
        data = await stream.read(chunk_size)

    await pipe.write(decompressor.flush())
    if not decompressor.finished:
        raise TransferError(
            "Compressed object body is truncated",
            details={"compression": decompressor.compression.value},
        )
    await pipe.close()


async def _write_file(pipe: BoundedPipe, destination: Path, chunk_size: int) -> int:
    """Consumer stage: append fixed-size chunks to a freshly created file."""
    written = 0
    async with aiofiles.open(destination, "wb") as f:
        while True:
            chunk = await pipe.read(chunk_size)
            if not chunk:
                break
            await f.write(chunk)
            written += len(chunk)
    return written


async def download_object(
    s3_client: Any,
    config: BackupConfig,
    key: str,
    destination: Path,
) -> int:
    """
    Download one object and write its decompressed content to destination.

    Parent directories are created as needed; an existing file at
    destination is truncated.

    Returns:
        Decompressed size in bytes

    Raises:
        TransferError: If fetching, decompressing or writing fails
    """
    logger.info("object_download_started", key=key, path=str(destination))

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)

        response = await s3_client.get_object(Bucket=config.bucket, Key=key)
        async with response["Body"] as stream:
            pipe = BoundedPipe(config.pipe_capacity)
            _, written = await run_stages(
                _decompress_body(stream, pipe, config.chunk_size),
                _write_file(pipe, destination, config.chunk_size),
            )
    except TransferError as e:
        e.details.setdefault("key", key)
        raise
    except Exception as e:
        raise TransferError(
            f"Failed to restore {key}: {e}",
            details={"key": key, "path": str(destination)},
        ) from e

    logger.info("object_restored", key=key, path=str(destination), size=written)
    return written


async def download_objects(
    s3_client: Any,
    config: BackupConfig,
    keys: List[str],
    restore_root: Path,
) -> List[Path]:
    """
    Restore objects one after another, stopping at the first failure.

    Returns:
        Local paths written, in listing order
    """
    restored: List[Path] = []

    for index, key in enumerate(keys):
        try:
            destination = local_path(key, restore_root)
            await download_object(s3_client, config, key, destination)
        except TransferError as e:
            logger.error(
                "restore_batch_aborted",
                failed_key=key,
                restored=len(restored),
                not_attempted=len(keys) - index - 1,
                error=str(e),
            )
            raise
        restored.append(destination)

    return restored
