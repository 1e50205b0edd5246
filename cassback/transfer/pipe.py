# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Bounded in-memory pipe joining a producer stage to a consumer stage.

The writer blocks once ``capacity`` chunks are queued, so memory held by
the pipe is bounded by capacity x chunk size regardless of file size.
"""

import asyncio
from typing import Any, Awaitable, Tuple


class BoundedPipe:
    """Backpressured byte channel between two asyncio tasks."""

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._queue: asyncio.Queue[bytes | None] = asyncio.Queue(maxsize=capacity)
        self._buffer = bytearray()
        self._closed = False
        self._eof = False

    async def write(self, data: bytes) -> None:
        """Queue data for the reader; waits while the pipe is full."""
        if self._closed:
            raise RuntimeError("write to closed pipe")
        if data:
            await self._queue.put(bytes(data))

    async def close(self) -> None:
        """Signal end of stream to the reader."""
        if not self._closed:
            self._closed = True
            await self._queue.put(None)

    async def read(self, size: int) -> bytes:
        """
        Read exactly size bytes, or fewer only at end of stream.

        Returns b"" once the stream is exhausted.
        """
        while len(self._buffer) < size and not self._eof:
            chunk = await self._queue.get()
            if chunk is None:
                self._eof = True
            else:
                self._buffer.extend(chunk)

        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data


async def run_stages(producer: Awaitable[Any], consumer: Awaitable[Any]) -> Tuple[Any, Any]:
    """
    Run a producer and a consumer concurrently.

    If either stage raises, the other is cancelled and the error
    propagates, so a failed reader never leaves a writer blocked on a
    full pipe (or the reverse).

    Returns:
        Tuple of (producer result, consumer result)
    """
    tasks = [asyncio.ensure_future(producer), asyncio.ensure_future(consumer)]
    try:
        produced, consumed = await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return produced, consumed
