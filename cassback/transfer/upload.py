# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Streaming upload: local data file -> compressor -> pipe -> S3.

A producer task reads and compresses the file while a consumer task
cuts the compressed stream into parts and uploads them. Bodies that fit
in one part are sent with a single put_object, larger ones as a
multipart upload bounded by config.max_upload_parts.
"""

from datetime import datetime, UTC
from typing import Any, Callable, List

import aiofiles
import structlog

from cassback.config import BackupConfig
from cassback.exceptions import TransferError
from cassback.scanner import BackupFile
from cassback.storage.keys import object_key
from cassback.transfer.compressor import StreamCompressor, get_compression_stats, run_codec
from cassback.transfer.pipe import BoundedPipe, run_stages

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


async def _read_and_compress(
    file: BackupFile,
    compressor: StreamCompressor,
    pipe: BoundedPipe,
    chunk_size: int,
) -> int:
    """Producer stage. Returns the number of uncompressed bytes read."""
    bytes_read = 0
    async with aiofiles.open(file.path, "rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            bytes_read += len(chunk)
            await pipe.write(await run_codec(compressor.compress, chunk))

    await pipe.write(compressor.flush())
    await pipe.close()
    return bytes_read


async def _abort_multipart(s3_client: Any, bucket: str, key: str, upload_id: str) -> None:
    try:
        await s3_client.abort_multipart_upload(Bucket=bucket, Key=key, UploadId=upload_id)
    except Exception as e:
        logger.warning(
            "multipart_abort_failed",
            key=key,
            upload_id=upload_id,
            error=str(e),
        )


async def _upload_parts(
    s3_client: Any,
    config: BackupConfig,
    key: str,
    first_part: bytes,
    pipe: BoundedPipe,
) -> int:
    """Send the compressed stream as a multipart upload."""
    response = await s3_client.create_multipart_upload(Bucket=config.bucket, Key=key)
    upload_id = response["UploadId"]
    parts: List[dict] = []
    uploaded = 0

    try:
        part = first_part
        while part:
            part_number = len(parts) + 1
            if part_number > config.max_upload_parts:
                raise TransferError(
                    f"Upload exceeds {config.max_upload_parts} parts of {config.part_size} bytes",
                    details={"key": key, "part_size": config.part_size},
                )

            result = await s3_client.upload_part(
                Bucket=config.bucket,
                Key=key,
                PartNumber=part_number,
                UploadId=upload_id,
                Body=part,
            )
            parts.append({"ETag": result["ETag"], "PartNumber": part_number})
            uploaded += len(part)

            logger.debug("part_uploaded", key=key, part_number=part_number, size=len(part))

            part = await pipe.read(config.part_size)

        await s3_client.complete_multipart_upload(
            Bucket=config.bucket,
            Key=key,
            UploadId=upload_id,
            MultipartUpload={"Parts": parts},
        )
    except BaseException:
        await _abort_multipart(s3_client, config.bucket, key, upload_id)
        raise

    logger.debug("multipart_upload_completed", key=key, parts=len(parts))
    return uploaded


async def _send(s3_client: Any, config: BackupConfig, key: str, pipe: BoundedPipe) -> int:
    """Consumer stage. Returns the number of compressed bytes sent."""
    first_part = await pipe.read(config.part_size)
    if len(first_part) < config.part_size:
        await s3_client.put_object(Bucket=config.bucket, Key=key, Body=first_part)
        return len(first_part)
    return await _upload_parts(s3_client, config, key, first_part, pipe)


async def upload_file(
    s3_client: Any,
    config: BackupConfig,
    file: BackupFile,
    key: str,
) -> int:
    """
    Compress and upload one data file under key.

    Args:
        s3_client: aiobotocore S3 client
        config: Run configuration (bucket, codec, part and pipe sizes)
        file: File to upload
        key: Destination object key

    Returns:
        Compressed size in bytes

    Raises:
        TransferError: If reading, compressing or uploading fails
    """
    pipe = BoundedPipe(config.pipe_capacity)
    compressor = StreamCompressor(config.compression, config.compression_level)

    logger.info("file_upload_started", path=str(file.path), key=key)

    try:
        original_size, compressed_size = await run_stages(
            _read_and_compress(file, compressor, pipe, config.chunk_size),
            _send(s3_client, config, key, pipe),
        )
    except TransferError:
        raise
    except Exception as e:
        raise TransferError(
            f"Failed to upload {file.path}: {e}",
            details={"path": str(file.path), "key": key},
        ) from e

    logger.info(
        "file_uploaded",
        key=key,
        **get_compression_stats(original_size, compressed_size),
    )
    return compressed_size


async def upload_files(
    s3_client: Any,
    config: BackupConfig,
    files: List[BackupFile],
    clock: Clock = utc_now,
) -> List[str]:
    """
    Upload files one after another, stopping at the first failure.

    Each key is dated when that file's upload starts. Files uploaded
    before a failure stay uploaded; nothing is retried.

    Returns:
        Keys written, in upload order
    """
    uploaded: List[str] = []

    for index, file in enumerate(files):
        key = object_key(file, clock())
        try:
            await upload_file(s3_client, config, file, key)
        except TransferError as e:
            logger.error(
                "upload_batch_aborted",
                failed_path=str(file.path),
                uploaded=len(uploaded),
                not_attempted=len(files) - index - 1,
                error=str(e),
            )
            raise
        uploaded.append(key)

    return uploaded
