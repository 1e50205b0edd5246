# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Cassback Compressor - Incremental codecs for streamed object bodies.

Every object body is one compressed data file. gzip is the default and
matches objects written by earlier releases; zstd is optional. On restore
the codec is detected from the stream's magic bytes, so a bucket may hold
both.
"""

import asyncio
import zlib
from concurrent.futures import ThreadPoolExecutor

import zstandard as zstd

from cassback.config import Compression
from cassback.exceptions import TransferError

# Thread pool for CPU-bound chunk (de)compression
_executor = ThreadPoolExecutor(max_workers=2)

# Chunks above this size are (de)compressed off the event loop
OFFLOAD_THRESHOLD = 256 * 1024

GZIP_MAGIC = b"\x1f\x8b"
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"
MAGIC_LENGTH = max(len(GZIP_MAGIC), len(ZSTD_MAGIC))

# zlib window bits selecting the gzip container
_GZIP_WBITS = zlib.MAX_WBITS | 16


class StreamCompressor:
    """Incremental compressor: feed chunks, then flush once."""

    def __init__(self, compression: Compression, level: int):
        self.compression = compression
        if compression == Compression.ZSTD:
            self._obj = zstd.ZstdCompressor(level=level).compressobj()
        else:
            self._obj = zlib.compressobj(level, zlib.DEFLATED, _GZIP_WBITS)

    def compress(self, data: bytes) -> bytes:
        return self._obj.compress(data)

    def flush(self) -> bytes:
        return self._obj.flush()


class StreamDecompressor:
    """Incremental decompressor; concatenated gzip members are supported."""

    def __init__(self, compression: Compression):
        self.compression = compression
        self._obj = self._new_obj()

    def _new_obj(self):
        if self.compression == Compression.ZSTD:
            return zstd.ZstdDecompressor().decompressobj()
        return zlib.decompressobj(wbits=_GZIP_WBITS)

    def decompress(self, data: bytes) -> bytes:
        chunks = [self._obj.decompress(data)]
        if self.compression == Compression.GZIP:
            while self._obj.eof and self._obj.unused_data:
                rest = self._obj.unused_data
                self._obj = self._new_obj()
                chunks.append(self._obj.decompress(rest))
        return b"".join(chunks)

    def flush(self) -> bytes:
        if self.compression == Compression.GZIP:
            return self._obj.flush()
        return b""

    @property
    def finished(self) -> bool:
        """True once a complete compressed stream has been consumed."""
        return self._obj.eof


def detect_compression(head: bytes) -> Compression:
    """
    Identify the codec of a compressed stream from its first bytes.

    Raises:
        TransferError: If the bytes match no supported codec
    """
    if head.startswith(ZSTD_MAGIC):
        return Compression.ZSTD
    if head.startswith(GZIP_MAGIC):
        return Compression.GZIP
    raise TransferError(
        "Object body is not a gzip or zstd stream",
        details={"head": head[:MAGIC_LENGTH].hex()},
    )


async def run_codec(func, data: bytes) -> bytes:
    """
    Apply a (de)compression step to one chunk.

    Large chunks run in the thread pool so the other pipe stage keeps
    moving bytes meanwhile.
    """
    if len(data) > OFFLOAD_THRESHOLD:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(_executor, func, data)
    return func(data)


def get_compression_stats(
    original_size: int,
    compressed_size: int,
) -> dict:
    """
    Calculate compression statistics.

    Args:
        original_size: Original data size in bytes
        compressed_size: Compressed data size in bytes

    Returns:
        Dict with compression statistics
    """
    if compressed_size == 0:
        return {
            "original_size": original_size,
            "compressed_size": compressed_size,
            "compression_ratio": 0,
        }

    return {
        "original_size": original_size,
        "compressed_size": compressed_size,
        "compression_ratio": round(original_size / compressed_size, 2),
    }
