# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Cassback Core - Backup and restore orchestration.

This module sequences the components: scanner, snapshot tool, streaming
transfer and cleanup for backups; restore index and streaming transfer
for restores. Errors propagate to the caller; nothing here exits the
process or retries.
"""

import uuid
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, UTC
from pathlib import Path
from typing import Any, AsyncIterator, List

import structlog

from cassback.config import BackupConfig, BackupMode
from cassback.errors import explain_invalid_s3_client
from cassback.exceptions import ConfigurationError
from cassback.scanner import scan_backup_files, scan_snapshot_files
from cassback.snapshot import clear_backup_files, generate_tag, release_snapshot, take_snapshot
from cassback.storage import list_restore_keys, restore_date_prefix
from cassback.transfer import download_objects, upload_files
from cassback.transfer.upload import Clock, utc_now

logger = structlog.get_logger()


@dataclass
class BackupResult:
    """Result of a backup run."""

    operation_id: str
    mode: str
    files_found: int
    uploaded_keys: List[str]
    duration_seconds: float
    tag: str | None = None
    cleanup_errors: List[str] = field(default_factory=list)


@dataclass
class RestoreResult:
    """Result of a restore run."""

    operation_id: str
    date_prefix: str
    keyspace_filter: str
    restored_paths: List[Path]
    duration_seconds: float


@asynccontextmanager
async def open_s3_client(config: BackupConfig) -> AsyncIterator[Any]:
    """
    Create an S3 client for one run.

    Credentials come from the standard AWS chain, optionally narrowed to
    config.aws_profile.
    """
    from aiobotocore.session import AioSession
    from botocore.exceptions import BotoCoreError

    client_kwargs: dict = {"region_name": config.region}
    if config.endpoint_url:
        client_kwargs["endpoint_url"] = config.endpoint_url

    async with AsyncExitStack() as stack:
        try:
            session = AioSession(profile=config.aws_profile)
            s3_client = await stack.enter_async_context(
                session.create_client("s3", **client_kwargs)
            )
        except (BotoCoreError, ValueError) as e:
            raise ConfigurationError(
                explain_invalid_s3_client(e),
                details={"profile": config.aws_profile, "endpoint_url": config.endpoint_url},
            ) from e

        yield s3_client


def _new_operation_id() -> str:
    return uuid.uuid4().hex


async def run_incremental_backup(
    config: BackupConfig,
    s3_client: Any,
    clock: Clock = utc_now,
) -> BackupResult:
    """
    Upload every incremental backup file, then delete the local copies.

    Args:
        config: Run configuration; config.keyspace narrows the scan
        s3_client: aiobotocore S3 client
        clock: Source of "now" for object key dates

    Returns:
        BackupResult with uploaded keys and any cleanup failures
    """
    operation_id = _new_operation_id()
    log = logger.bind(operation_id=operation_id, mode=BackupMode.INCREMENTAL.value)
    start_time = datetime.now(UTC)

    log.info("backup_started", data_root=str(config.data_root), keyspace=config.keyspace or None)

    files = scan_backup_files(config.data_root, config.keyspace)
    uploaded_keys = await upload_files(s3_client, config, files, clock)
    cleanup_errors = clear_backup_files(files)

    duration = (datetime.now(UTC) - start_time).total_seconds()
    log.info(
        "backup_completed",
        uploaded=len(uploaded_keys),
        cleanup_errors=len(cleanup_errors),
        duration=duration,
    )

    return BackupResult(
        operation_id=operation_id,
        mode=BackupMode.INCREMENTAL.value,
        files_found=len(files),
        uploaded_keys=uploaded_keys,
        duration_seconds=duration,
        cleanup_errors=cleanup_errors,
    )


async def run_full_snapshot(
    config: BackupConfig,
    s3_client: Any,
    clock: Clock = utc_now,
) -> BackupResult:
    """
    Take a tagged snapshot, upload its files, then release it.

    The snapshot is only released after every file uploaded; on an upload
    failure it is left on disk for inspection.
    """
    operation_id = _new_operation_id()
    log = logger.bind(operation_id=operation_id, mode=BackupMode.FULL.value)
    start_time = datetime.now(UTC)

    tag = await generate_tag(config.data_root, clock)
    log = log.bind(tag=tag)
    log.info("backup_started", data_root=str(config.data_root), keyspace=config.keyspace or None)

    await take_snapshot(config, tag)

    files = scan_snapshot_files(config.data_root, tag)
    uploaded_keys = await upload_files(s3_client, config, files, clock)
    await release_snapshot(config, tag)

    duration = (datetime.now(UTC) - start_time).total_seconds()
    log.info("backup_completed", uploaded=len(uploaded_keys), duration=duration)

    return BackupResult(
        operation_id=operation_id,
        mode=BackupMode.FULL.value,
        files_found=len(files),
        uploaded_keys=uploaded_keys,
        duration_seconds=duration,
        tag=tag,
    )


async def run_backup(
    config: BackupConfig,
    s3_client: Any = None,
    clock: Clock = utc_now,
) -> BackupResult:
    """
    Run a full or incremental backup according to config.incremental.

    A client is created (and closed afterwards) when none is given.
    """
    runner = run_incremental_backup if config.incremental else run_full_snapshot

    if s3_client is not None:
        return await runner(config, s3_client, clock)

    async with open_s3_client(config) as client:
        return await runner(config, client, clock)


async def _restore(config: BackupConfig, s3_client: Any, clock: Clock) -> RestoreResult:
    operation_id = _new_operation_id()
    prefix = restore_date_prefix(clock(), config.days)
    log = logger.bind(operation_id=operation_id, prefix=prefix)
    start_time = datetime.now(UTC)

    log.info(
        "restore_started",
        restore_root=str(config.restore_root),
        keyspace=config.keyspace or None,
    )

    keys = await list_restore_keys(
        s3_client,
        config.bucket,
        prefix,
        config.keyspace,
        page_size=config.list_page_size,
    )
    restored = await download_objects(s3_client, config, keys, config.restore_root)

    duration = (datetime.now(UTC) - start_time).total_seconds()
    log.info("restore_completed", restored=len(restored), duration=duration)

    return RestoreResult(
        operation_id=operation_id,
        date_prefix=prefix,
        keyspace_filter=config.keyspace,
        restored_paths=restored,
        duration_seconds=duration,
    )


async def run_restore(
    config: BackupConfig,
    s3_client: Any = None,
    clock: Clock = utc_now,
) -> RestoreResult:
    """
    Restore every object uploaded on the day config.days before today.

    Args:
        config: Run configuration (bucket, days, keyspace, restore_root)
        s3_client: aiobotocore S3 client; created from config when None
        clock: Source of "now" for the restore date

    Returns:
        RestoreResult with the local paths written
    """
    if s3_client is not None:
        return await _restore(config, s3_client, clock)

    async with open_s3_client(config) as client:
        return await _restore(config, client, clock)
