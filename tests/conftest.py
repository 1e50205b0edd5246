# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for cassback tests.

Provides an in-memory S3 client with the aiobotocore call surface used by
cassback, a fixed clock, data-tree helpers and test configuration.
"""

import tempfile
from datetime import datetime, UTC
from pathlib import Path
from typing import Dict, Generator, List, Set

import pytest
import structlog
from botocore.exceptions import ClientError

from cassback.config import MIN_PART_SIZE

FIXED_NOW = datetime(2025, 1, 2, 12, 30, 0, tzinfo=UTC)


def fixed_clock() -> datetime:
    return FIXED_NOW


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeStreamingBody:
    """Async body like aiobotocore's StreamingBody."""

    def __init__(self, data: bytes, max_read: int | None = None):
        self._data = data
        self._pos = 0
        # Simulates short network reads
        self._max_read = max_read

    async def __aenter__(self) -> "FakeStreamingBody":
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    async def read(self, amt: int | None = None) -> bytes:
        end = len(self._data) if amt is None else self._pos + amt
        if self._max_read is not None:
            end = min(end, self._pos + self._max_read)
        chunk = self._data[self._pos:end]
        self._pos += len(chunk)
        return chunk


class FakePaginator:
    def __init__(self, client: "FakeS3Client"):
        self._client = client

    async def paginate(self, Bucket: str, Prefix: str = "", PaginationConfig: dict | None = None):
        self._client.calls.append(("list_objects_v2", Prefix))
        page_size = (PaginationConfig or {}).get("PageSize", 1000)
        keys = sorted(k for k in self._client.objects if k.startswith(Prefix))
        if not keys:
            yield {"KeyCount": 0}
            return
        for start in range(0, len(keys), page_size):
            page = keys[start:start + page_size]
            self._client.pages_served += 1
            yield {
                "KeyCount": len(page),
                "Contents": [{"Key": k, "Size": len(self._client.objects[k])} for k in page],
            }


class FakeS3Client:
    """
    In-memory S3 client.

    Keys listed in fail_keys raise a ClientError on any write, which lets
    tests fail one file in the middle of a batch.
    """

    def __init__(self, max_read: int | None = None):
        self.objects: Dict[str, bytes] = {}
        self.calls: List[tuple] = []
        self.fail_keys: Set[str] = set()
        self.fail_list = False
        self.multipart: Dict[str, dict] = {}
        self.aborted: List[str] = []
        self.pages_served = 0
        self._max_read = max_read
        self._next_upload_id = 0

    def _check(self, key: str, operation: str) -> None:
        if key in self.fail_keys:
            raise _client_error("InternalError", operation)

    async def put_object(self, Bucket: str, Key: str, Body: bytes) -> dict:
        self.calls.append(("put_object", Key))
        self._check(Key, "PutObject")
        self.objects[Key] = bytes(Body)
        return {"ETag": '"etag"'}

    async def create_multipart_upload(self, Bucket: str, Key: str) -> dict:
        self.calls.append(("create_multipart_upload", Key))
        self._check(Key, "CreateMultipartUpload")
        self._next_upload_id += 1
        upload_id = f"upload-{self._next_upload_id}"
        self.multipart[upload_id] = {"key": Key, "parts": {}}
        return {"UploadId": upload_id}

    async def upload_part(self, Bucket: str, Key: str, PartNumber: int, UploadId: str, Body: bytes) -> dict:
        self.calls.append(("upload_part", Key, PartNumber, len(Body)))
        self.multipart[UploadId]["parts"][PartNumber] = bytes(Body)
        return {"ETag": f'"part-{PartNumber}"'}

    async def complete_multipart_upload(self, Bucket: str, Key: str, UploadId: str, MultipartUpload: dict) -> dict:
        self.calls.append(("complete_multipart_upload", Key))
        upload = self.multipart.pop(UploadId)
        numbers = [p["PartNumber"] for p in MultipartUpload["Parts"]]
        self.objects[Key] = b"".join(upload["parts"][n] for n in numbers)
        return {"Key": Key}

    async def abort_multipart_upload(self, Bucket: str, Key: str, UploadId: str) -> dict:
        self.calls.append(("abort_multipart_upload", Key))
        self.multipart.pop(UploadId, None)
        self.aborted.append(Key)
        return {}

    async def get_object(self, Bucket: str, Key: str) -> dict:
        self.calls.append(("get_object", Key))
        if Key not in self.objects:
            raise _client_error("NoSuchKey", "GetObject")
        return {"Body": FakeStreamingBody(self.objects[Key], self._max_read)}

    def get_paginator(self, operation: str) -> FakePaginator:
        if self.fail_list:
            raise _client_error("AccessDenied", "ListObjectsV2")
        return FakePaginator(self)

    def calls_named(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo structlog.configure() calls made by the command-line entry point."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def data_root(temp_dir: Path) -> Path:
    root = temp_dir / "data"
    root.mkdir()
    return root


@pytest.fixture
def test_config(temp_dir: Path, data_root: Path):
    """Create a test configuration with small streaming buffers."""
    from cassback.config import BackupConfig

    return BackupConfig(
        bucket="test-bucket",
        region="us-east-1",
        data_root=data_root,
        restore_root=temp_dir / "restore",
        part_size=MIN_PART_SIZE,
        chunk_size=64 * 1024,
        pipe_capacity=2,
        nodetool_path="/usr/bin/nodetool",
    )


def write_file(path: Path, content: bytes = b"data") -> Path:
    """Create a file and any missing parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def make_backup_file(data_root: Path, keyspace: str, table: str, name: str, content: bytes = b"data") -> Path:
    return write_file(data_root / keyspace / table / "backups" / name, content)


def make_snapshot_file(
    data_root: Path, keyspace: str, table: str, tag: str, name: str, content: bytes = b"data"
) -> Path:
    return write_file(data_root / keyspace / table / "snapshots" / tag / name, content)
