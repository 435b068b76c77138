"""Single-consumption async byte streams returned by get_object."""

import asyncio
import inspect
from typing import AsyncIterator, Awaitable, Callable

from file_manager.exceptions import UsageError

DEFAULT_CHUNK_SIZE = 64 * 1024


class ObjectStream:
    """
    Wrap an async chunk iterator so it can be drained or closed exactly once.

    Iterate with `async for chunk in stream`, or call `await stream.read()`
    to collect everything. A second read raises UsageError. `aclose()` runs
    the optional close callback once, whatever state the stream is in.
    """

    def __init__(
        self,
        chunks: AsyncIterator[bytes],
        close: Callable[[], Awaitable[None] | None] | None = None,
    ) -> None:
        self._chunks = chunks
        self._close = close
        self._consumed = False
        self._closed = False

    @classmethod
    def from_bytes(cls, data: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE) -> "ObjectStream":
        async def _gen() -> AsyncIterator[bytes]:
            for start in range(0, len(data), chunk_size):
                yield data[start:start + chunk_size]

        return cls(_gen())

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._consumed or self._closed:
            raise UsageError("Object stream has already been consumed or closed.")
        self._consumed = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._chunks:
                yield chunk
        finally:
            await self.aclose()

    async def read(self) -> bytes:
        parts = [chunk async for chunk in self]
        return b"".join(parts)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._chunks, "aclose", None)
        if aclose is not None:
            await aclose()
        if self._close is not None:
            result = self._close()
            if inspect.isawaitable(result):
                await result

    async def __aenter__(self) -> "ObjectStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


async def iter_body(body) -> AsyncIterator[bytes]:
    """Yield chunks from a put body: bytes-like, sync iterable or async iterable of bytes."""
    if isinstance(body, (bytes, bytearray, memoryview)):
        yield bytes(body)
        return
    if hasattr(body, "__aiter__"):
        async for chunk in body:
            yield bytes(chunk)
        return
    if hasattr(body, "read"):
        while True:
            chunk = await asyncio.to_thread(body.read, DEFAULT_CHUNK_SIZE)
            if not chunk:
                return
            yield bytes(chunk)
    for chunk in body:
        yield bytes(chunk)


async def read_body(body) -> bytes:
    """Collect a put body into memory, for SDKs that only accept whole payloads."""
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    return b"".join([chunk async for chunk in iter_body(body)])
