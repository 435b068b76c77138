"""FileManagerService: the single entry point callers use to reach a storage engine."""

import logging
from typing import Awaitable, Callable, TypeVar

from file_manager.core.keys import make_storage_key
from file_manager.core.semaphore import AsyncSemaphore
from file_manager.schemas.requests import MAX_LIST_LIMIT, MIN_LIST_LIMIT, ListQuery
from file_manager.schemas.storage import (
    FileManagerOptions,
    GetObjectResult,
    ListObjectsResult,
    PutObjectInput,
    PutObjectResult,
    PutRequest,
    SignedUrlOptions,
)
from file_manager.storage.base import DEFAULT_LIST_LIMIT, StorageEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")


def clamp_list_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIST_LIMIT
    return max(MIN_LIST_LIMIT, min(MAX_LIST_LIMIT, int(limit)))


class FileManagerService:
    """
    Apply defaults and route every storage call through the concurrency gate.

    The engine is borrowed, not owned: the service never closes it. Engine
    errors are not retried or translated; they reach the caller unchanged.
    """

    def __init__(self, engine: StorageEngine, options: FileManagerOptions | None = None) -> None:
        self.engine = engine
        self.options = options or FileManagerOptions()
        self._semaphore: AsyncSemaphore | None = None
        if self.options.max_concurrent_ops is not None:
            self._semaphore = AsyncSemaphore(self.options.max_concurrent_ops)

    @property
    def semaphore(self) -> AsyncSemaphore | None:
        return self._semaphore

    def make_key(self, prefix: str | None = None, original_name: str | None = None) -> str:
        return make_storage_key(prefix or self.options.default_prefix or "uploads", original_name)

    async def put(self, request: PutRequest) -> PutObjectResult:
        key = request.key if request.key is not None else self.make_key(request.prefix, request.original_name)
        acl_public = request.acl_public
        if acl_public is None:
            acl_public = self.options.public_read_by_default
        payload = PutObjectInput(
            key=key,
            body=request.body,
            content_type=request.content_type,
            metadata=request.metadata,
            acl_public=acl_public,
        )
        logger.debug("put %s (public=%s)", key, acl_public)
        return await self._run(lambda: self.engine.put_object(payload))

    async def get(self, key: str) -> GetObjectResult:
        logger.debug("get %s", key)
        return await self._run(lambda: self.engine.get_object(key))

    async def delete(self, key: str) -> None:
        logger.debug("delete %s", key)
        await self._run(lambda: self.engine.delete_object(key))

    async def delete_directory(self, prefix: str) -> None:
        logger.debug("delete_directory %s", prefix)
        await self._run(lambda: self.engine.delete_directory(prefix))

    async def move(self, src_key: str, dest_key: str) -> None:
        logger.debug("move %s -> %s", src_key, dest_key)
        await self._run(lambda: self.engine.move_object(src_key, dest_key))

    async def copy(self, src_key: str, dest_key: str) -> None:
        logger.debug("copy %s -> %s", src_key, dest_key)
        await self._run(lambda: self.engine.copy_object(src_key, dest_key))

    async def exists(self, key: str) -> bool:
        return await self._run(lambda: self.engine.exists(key))

    async def list(
        self,
        prefix: str,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> ListObjectsResult:
        limit = clamp_list_limit(limit)
        logger.debug("list %s (cursor=%s, limit=%d)", prefix, cursor, limit)
        return await self._run(lambda: self.engine.list(prefix, cursor, limit))

    async def list_query(self, query: ListQuery) -> ListObjectsResult:
        return await self.list(query.prefix, query.cursor, query.limit)

    async def signed_url(self, opts: SignedUrlOptions) -> str:
        logger.debug("signed_url %s %s", opts.action, opts.key)
        return await self._run(lambda: self.engine.get_signed_url(opts))

    def public_url(self, key: str) -> str | None:
        return self.engine.resolve_public_url(key)

    async def _run(self, task: Callable[[], Awaitable[T]]) -> T:
        if self._semaphore is None:
            return await task()
        return await self._semaphore.run(task)
