# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Command-line entry point.

Usage:
    cassback backup [--incremental] [--keyspace KS] --bucket BUCKET
    cassback restore [--days N] [--keyspace KS] --restore-dir DIR --bucket BUCKET

Flags that are not given fall back to environment variables (see
cassback.env). This is the only place that turns errors into exit codes.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List

import structlog

from cassback import __version__
from cassback.config import MIB, Compression
from cassback.core import run_backup, run_restore
from cassback.env import create_config_from_env
from cassback.exceptions import (
    CassbackError,
    ConfigurationError,
    ExternalToolError,
    TransferError,
)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIGURATION = 2
EXIT_EXTERNAL_TOOL = 3
EXIT_TRANSFER = 4


def configure_logging(verbose: bool = False) -> None:
    """Configure structlog for console output on stderr."""
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cassback",
        description="Back up Cassandra data files to S3 and restore them by date",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("mode", choices=["backup", "restore"], help="Operation to run")

    parser.add_argument("--incremental", action="store_true", default=None,
                        help="Upload backups/ directories instead of taking a snapshot")
    parser.add_argument("--keyspace", help="Keyspace to back up, or keyspace prefix to restore")
    parser.add_argument("--days", type=int, help="Restore the objects uploaded N days ago")
    parser.add_argument("--data-dir", type=Path, dest="data_root", help="Cassandra data directory")
    parser.add_argument("--restore-dir", type=Path, dest="restore_root",
                        help="Directory restored files are written to")

    parser.add_argument("--bucket", help="S3 bucket name")
    parser.add_argument("--region", help="AWS region")
    parser.add_argument("--aws-profile", help="AWS credentials profile")
    parser.add_argument("--endpoint-url", help="S3 endpoint URL (for MinIO)")
    parser.add_argument("--compression", choices=[c.value for c in Compression],
                        help="Codec for uploaded objects (default: gzip)")
    parser.add_argument("--part-size-mb", type=int, help="Multipart part size in MiB")

    parser.add_argument("--nodetool", dest="nodetool_path", help="nodetool executable")
    parser.add_argument("--host", dest="nodetool_host", help="Host passed to nodetool")
    parser.add_argument("--port", dest="nodetool_port", type=int, help="JMX port passed to nodetool")
    parser.add_argument("--username", dest="nodetool_username", help="JMX username passed to nodetool")
    parser.add_argument("--password", dest="nodetool_password", help="JMX password passed to nodetool")

    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    return parser


def exit_code_for(error: BaseException) -> int:
    """Map an error to the process exit code."""
    if isinstance(error, ConfigurationError):
        return EXIT_CONFIGURATION
    if isinstance(error, ExternalToolError):
        return EXIT_EXTERNAL_TOOL
    if isinstance(error, TransferError):
        return EXIT_TRANSFER
    return EXIT_FAILURE


def main(argv: List[str] | None = None) -> int:
    """CLI entry point; returns the exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = create_config_from_env(
            bucket=args.bucket,
            region=args.region,
            aws_profile=args.aws_profile,
            endpoint_url=args.endpoint_url,
            data_root=args.data_root,
            restore_root=args.restore_root,
            keyspace=args.keyspace,
            incremental=args.incremental,
            days=args.days,
            compression=Compression(args.compression) if args.compression else None,
            part_size=args.part_size_mb * MIB if args.part_size_mb else None,
            nodetool_path=args.nodetool_path,
            nodetool_host=args.nodetool_host,
            nodetool_port=args.nodetool_port,
            nodetool_username=args.nodetool_username,
            nodetool_password=args.nodetool_password,
        )

        if args.mode == "backup":
            backup = asyncio.run(run_backup(config))
            print(f"Backup completed ({backup.mode})")
            if backup.tag:
                print(f"  Snapshot tag: {backup.tag}")
            print(f"  Files uploaded: {len(backup.uploaded_keys)}")
            print(f"  Duration: {backup.duration_seconds:.1f}s")
            for error in backup.cleanup_errors:
                print(f"  Cleanup warning: {error}")
        else:
            restore = asyncio.run(run_restore(config))
            print("Restore completed")
            print(f"  Date: {restore.date_prefix.rstrip('/')}")
            print(f"  Files restored: {len(restore.restored_paths)}")
            print(f"  Duration: {restore.duration_seconds:.1f}s")

    except CassbackError as e:
        print(f"{args.mode.capitalize()} failed: {e}", file=sys.stderr)
        return exit_code_for(e)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
