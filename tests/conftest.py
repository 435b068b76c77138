import asyncio

import pytest

from file_manager.core.streams import ObjectStream, read_body
from file_manager.exceptions import BackendWriteError, NotFoundError
from file_manager.schemas.storage import (
    GetObjectResult,
    ListObjectsResult,
    PutObjectInput,
    PutObjectResult,
    SignedUrlOptions,
)
from file_manager.services.file_manager import FileManagerService
from file_manager.storage.base import DEFAULT_LIST_LIMIT, StorageEngine


class FakeStorageEngine(StorageEngine):
    """In-memory engine recording every call, for service tests."""

    def __init__(self, public_base_url: str | None = None) -> None:
        self.objects: dict[str, bytes] = {}
        self.puts: list[PutObjectInput] = []
        self.signed: list[SignedUrlOptions] = []
        self.calls: list[str] = []
        self.public_base_url = public_base_url
        self.fail_copy = False

    async def put_object(self, input: PutObjectInput) -> PutObjectResult:
        self.calls.append("put_object")
        self.puts.append(input)
        data = await read_body(input.body)
        self.objects[input.key] = data
        return PutObjectResult(key=input.key, size=len(data), url=self.resolve_public_url(input.key))

    async def get_object(self, key: str) -> GetObjectResult:
        self.calls.append("get_object")
        if key not in self.objects:
            raise NotFoundError(key)
        data = self.objects[key]
        return GetObjectResult(stream=ObjectStream.from_bytes(data), size=len(data))

    async def delete_object(self, key: str) -> None:
        self.calls.append("delete_object")
        self.objects.pop(key, None)

    async def delete_directory(self, prefix: str) -> None:
        self.calls.append("delete_directory")
        for key in [k for k in self.objects if k.startswith(prefix)]:
            del self.objects[key]

    async def copy_object(self, src_key: str, dest_key: str) -> None:
        self.calls.append("copy_object")
        if self.fail_copy:
            raise BackendWriteError("copy refused")
        if src_key not in self.objects:
            raise NotFoundError(src_key)
        self.objects[dest_key] = self.objects[src_key]

    async def exists(self, key: str) -> bool:
        self.calls.append("exists")
        return key in self.objects

    async def list(
        self,
        prefix: str,
        cursor: str | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> ListObjectsResult:
        self.calls.append("list")
        keys = sorted(k for k in self.objects if k.startswith(prefix))
        start = int(cursor) if cursor else 0
        end = start + limit
        return ListObjectsResult(keys=keys[start:end], next_cursor=str(end) if end < len(keys) else None)

    async def get_signed_url(self, opts: SignedUrlOptions) -> str:
        self.calls.append(f"sign_{opts.action}")
        self.signed.append(opts)
        return f"https://signed.example/{opts.action}/{opts.key}"

    def resolve_public_url(self, key: str) -> str | None:
        if not self.public_base_url:
            return None
        return f"{self.public_base_url}/{key}"


class SlowStorageEngine(FakeStorageEngine):
    """Engine that tracks how many calls are in flight at once."""

    def __init__(self, delay: float = 0.01) -> None:
        super().__init__()
        self.delay = delay
        self.in_flight = 0
        self.peak = 0

    async def exists(self, key: str) -> bool:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return key in self.objects
        finally:
            self.in_flight -= 1


@pytest.fixture
def fake_engine() -> FakeStorageEngine:
    return FakeStorageEngine(public_base_url="https://cdn.example")


@pytest.fixture
def file_manager(fake_engine: FakeStorageEngine) -> FileManagerService:
    return FileManagerService(fake_engine)
