# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Configuration, environment and command-line tests.
"""

from pathlib import Path

import pytest
import structlog

import cassback.cli as cli
from cassback.config import MIB, MIN_PART_SIZE, BackupConfig, Compression
from cassback.core import BackupResult, RestoreResult
from cassback.env import create_config_from_env
from cassback.exceptions import ConfigurationError, ExternalToolError, KeyFormatError, TransferError

ENV_VARS = [
    "S3_BUCKET",
    "AWS_REGION",
    "AWS_PROFILE",
    "S3_ENDPOINT_URL",
    "CASSBACK_DATA_DIR",
    "CASSBACK_RESTORE_DIR",
    "CASSBACK_KEYSPACE",
    "CASSBACK_INCREMENTAL",
    "CASSBACK_DAYS",
    "CASSBACK_COMPRESSION",
    "CASSBACK_PART_SIZE_MB",
    "CASSBACK_NODETOOL",
    "CASSBACK_NODETOOL_HOST",
    "CASSBACK_NODETOOL_PORT",
    "CASSBACK_NODETOOL_USERNAME",
    "CASSBACK_NODETOOL_PASSWORD",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ============================================================================
# BackupConfig
# ============================================================================

def test_defaults():
    config = BackupConfig(bucket="my-backups")

    assert config.region == "us-east-1"
    assert config.data_root == Path("/var/lib/cassandra/data")
    assert config.compression == Compression.GZIP
    assert config.part_size == 128 * MIB
    assert config.max_upload_parts == 10000
    assert config.incremental is False


def test_validation_collects_every_error():
    with pytest.raises(ConfigurationError) as exc_info:
        BackupConfig(bucket="Bad_Bucket", days=-1, part_size=MIB, pipe_capacity=0)

    errors = exc_info.value.details["errors"]
    assert len(errors) == 4
    assert any("bucket" in e for e in errors)
    assert any("days" in e for e in errors)


@pytest.mark.parametrize("bucket", ["ab", "UPPER", "a..b", "192.168.1.1", "-leading"])
def test_invalid_bucket_names(bucket):
    with pytest.raises(ConfigurationError):
        BackupConfig(bucket=bucket)


@pytest.mark.parametrize(
    "compression,level",
    [(Compression.GZIP, 10), (Compression.GZIP, -1), (Compression.ZSTD, 0), (Compression.ZSTD, 23)],
)
def test_compression_level_bounds(compression, level):
    with pytest.raises(ConfigurationError):
        BackupConfig(bucket="my-backups", compression=compression, compression_level=level)


def test_part_limits():
    BackupConfig(bucket="my-backups", part_size=MIN_PART_SIZE)

    with pytest.raises(ConfigurationError):
        BackupConfig(bucket="my-backups", part_size=MIN_PART_SIZE - 1)
    with pytest.raises(ConfigurationError):
        BackupConfig(bucket="my-backups", max_upload_parts=10001)


def test_keyspace_must_be_single_segment():
    with pytest.raises(ConfigurationError):
        BackupConfig(bucket="my-backups", keyspace="ks1/tbl1")


def test_with_updates_returns_new_validated_config():
    config = BackupConfig(bucket="my-backups")

    updated = config.with_updates(incremental=True, keyspace="ks1")

    assert updated.incremental is True
    assert updated.keyspace == "ks1"
    assert config.incremental is False
    with pytest.raises(ConfigurationError):
        config.with_updates(days=-3)


# ============================================================================
# Environment
# ============================================================================

def test_env_requires_bucket(clean_env):
    with pytest.raises(ConfigurationError, match="S3_BUCKET"):
        create_config_from_env()


def test_env_reads_all_variables(clean_env):
    clean_env.setenv("S3_BUCKET", "env-bucket")
    clean_env.setenv("AWS_REGION", "eu-west-1")
    clean_env.setenv("AWS_PROFILE", "backup")
    clean_env.setenv("S3_ENDPOINT_URL", "http://localhost:9000")
    clean_env.setenv("CASSBACK_DATA_DIR", "/data/cassandra")
    clean_env.setenv("CASSBACK_RESTORE_DIR", "/tmp/restore")
    clean_env.setenv("CASSBACK_KEYSPACE", "ks1")
    clean_env.setenv("CASSBACK_INCREMENTAL", "yes")
    clean_env.setenv("CASSBACK_DAYS", "3")
    clean_env.setenv("CASSBACK_COMPRESSION", "ZSTD")
    clean_env.setenv("CASSBACK_PART_SIZE_MB", "64")
    clean_env.setenv("CASSBACK_NODETOOL", "/opt/cassandra/bin/nodetool")
    clean_env.setenv("CASSBACK_NODETOOL_HOST", "10.0.0.5")
    clean_env.setenv("CASSBACK_NODETOOL_PORT", "7199")
    clean_env.setenv("CASSBACK_NODETOOL_USERNAME", "cassandra")
    clean_env.setenv("CASSBACK_NODETOOL_PASSWORD", "secret")

    config = create_config_from_env()

    assert config.bucket == "env-bucket"
    assert config.region == "eu-west-1"
    assert config.aws_profile == "backup"
    assert config.endpoint_url == "http://localhost:9000"
    assert config.data_root == Path("/data/cassandra")
    assert config.restore_root == Path("/tmp/restore")
    assert config.keyspace == "ks1"
    assert config.incremental is True
    assert config.days == 3
    assert config.compression == Compression.ZSTD
    assert config.part_size == 64 * MIB
    assert config.nodetool_path == "/opt/cassandra/bin/nodetool"
    assert config.nodetool_host == "10.0.0.5"
    assert config.nodetool_port == 7199
    assert config.nodetool_username == "cassandra"
    assert config.nodetool_password == "secret"


def test_overrides_win_and_none_is_ignored(clean_env):
    clean_env.setenv("S3_BUCKET", "env-bucket")
    clean_env.setenv("CASSBACK_KEYSPACE", "ks1")

    config = create_config_from_env(bucket="flag-bucket", keyspace=None, days=2)

    assert config.bucket == "flag-bucket"
    assert config.keyspace == "ks1"
    assert config.days == 2


@pytest.mark.parametrize(
    "name,value",
    [
        ("CASSBACK_DAYS", "-1"),
        ("CASSBACK_DAYS", "yesterday"),
        ("CASSBACK_COMPRESSION", "lz4"),
        ("CASSBACK_PART_SIZE_MB", "0"),
        ("CASSBACK_NODETOOL_PORT", "jmx"),
    ],
)
def test_invalid_env_values(clean_env, name, value):
    clean_env.setenv("S3_BUCKET", "env-bucket")
    clean_env.setenv(name, value)

    with pytest.raises(ConfigurationError, match=name):
        create_config_from_env()


# ============================================================================
# Command line
# ============================================================================

def test_parser_maps_flags():
    args = cli.build_parser().parse_args(
        ["backup", "--incremental", "--keyspace", "ks1", "--data-dir", "/data", "--port", "7199"]
    )

    assert args.mode == "backup"
    assert args.incremental is True
    assert args.keyspace == "ks1"
    assert args.data_root == Path("/data")
    assert args.nodetool_port == 7199


def test_parser_leaves_unset_flags_for_env():
    args = cli.build_parser().parse_args(["restore"])

    assert args.incremental is None
    assert args.days is None
    assert args.bucket is None


@pytest.mark.parametrize(
    "error,code",
    [
        (ConfigurationError("bad"), cli.EXIT_CONFIGURATION),
        (ExternalToolError("nodetool"), cli.EXIT_EXTERNAL_TOOL),
        (TransferError("upload"), cli.EXIT_TRANSFER),
        (KeyFormatError("key"), cli.EXIT_TRANSFER),
        (RuntimeError("other"), cli.EXIT_FAILURE),
    ],
)
def test_exit_codes(error, code):
    assert cli.exit_code_for(error) == code


def test_main_without_bucket_exits_with_configuration_code(clean_env, capsys):
    assert cli.main(["restore"]) == cli.EXIT_CONFIGURATION
    assert "Restore failed: S3 bucket is not configured" in capsys.readouterr().err


def test_main_rejects_small_part_size(clean_env):
    assert cli.main(["backup", "--bucket", "my-backups", "--part-size-mb", "1"]) == cli.EXIT_CONFIGURATION


def test_main_restore_passes_flags_through(clean_env, monkeypatch, capsys):
    seen = {}

    async def fake_restore(config):
        seen["config"] = config
        return RestoreResult(
            operation_id="op",
            date_prefix="2025/01/01/",
            keyspace_filter=config.keyspace,
            restored_paths=[Path("/restore/ks1/tbl1/a.db")],
            duration_seconds=0.5,
        )

    monkeypatch.setattr(cli, "run_restore", fake_restore)

    code = cli.main(
        ["restore", "--bucket", "my-backups", "--days", "1", "--keyspace", "ks1", "--restore-dir", "/restore"]
    )

    assert code == cli.EXIT_OK
    config = seen["config"]
    assert (config.days, config.keyspace, config.restore_root) == (1, "ks1", Path("/restore"))
    out = capsys.readouterr().out
    assert "Date: 2025/01/01" in out
    assert "Files restored: 1" in out


def test_main_backup_failure_maps_to_exit_code(clean_env, monkeypatch, capsys):
    async def failing_backup(config):
        raise ExternalToolError("nodetool snapshot failed with exit code 1")

    monkeypatch.setattr(cli, "run_backup", failing_backup)

    assert cli.main(["backup", "--bucket", "my-backups"]) == cli.EXIT_EXTERNAL_TOOL
    assert "Backup failed: nodetool snapshot failed" in capsys.readouterr().err


def test_main_backup_reports_cleanup_warnings(clean_env, monkeypatch, capsys):
    async def fake_backup(config):
        return BackupResult(
            operation_id="op",
            mode="incremental",
            files_found=1,
            uploaded_keys=["2025/01/02/ks1/tbl1/a.db"],
            duration_seconds=0.1,
            cleanup_errors=["/data/ks1/tbl1/backups/a.db: Permission denied"],
        )

    monkeypatch.setattr(cli, "run_backup", fake_backup)

    assert cli.main(["backup", "--bucket", "my-backups", "--incremental"]) == cli.EXIT_OK
    out = capsys.readouterr().out
    assert "Backup completed (incremental)" in out
    assert "Cleanup warning: /data/ks1/tbl1/backups/a.db: Permission denied" in out


@pytest.fixture
def isolated_aws(clean_env, temp_dir: Path):
    """Point botocore at empty config files and static credentials."""
    clean_env.setenv("AWS_CONFIG_FILE", str(temp_dir / "aws-config"))
    clean_env.setenv("AWS_SHARED_CREDENTIALS_FILE", str(temp_dir / "aws-credentials"))
    clean_env.setenv("AWS_ACCESS_KEY_ID", "testing")
    clean_env.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    clean_env.setenv("AWS_EC2_METADATA_DISABLED", "true")
    return clean_env


def test_main_unknown_aws_profile_is_configuration_error(isolated_aws, data_root: Path, capsys):
    code = cli.main(
        ["backup", "--incremental", "--bucket", "my-backups", "--data-dir", str(data_root), "--aws-profile", "nosuch"]
    )

    assert code == cli.EXIT_CONFIGURATION
    err = capsys.readouterr().err
    assert "Backup failed: Cannot create S3 client" in err
    assert "nosuch" in err


def test_main_malformed_endpoint_is_configuration_error(isolated_aws, temp_dir: Path, capsys):
    code = cli.main(
        ["restore", "--bucket", "my-backups", "--restore-dir", str(temp_dir / "restore"), "--endpoint-url", "not a url"]
    )

    assert code == cli.EXIT_CONFIGURATION
    assert "Restore failed: Cannot create S3 client" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_open_s3_client_wraps_profile_errors(isolated_aws):
    from cassback.core import open_s3_client

    config = BackupConfig(bucket="my-backups", aws_profile="nosuch")

    with pytest.raises(ConfigurationError) as exc_info:
        async with open_s3_client(config):
            pass

    assert exc_info.value.details == {"profile": "nosuch", "endpoint_url": None}


def test_logging_configuration_does_not_leak_between_tests():
    # Runs after the command-line tests above, which configure structlog
    assert not structlog.is_configured()
    structlog.get_logger().info("logging_after_cli_run")
