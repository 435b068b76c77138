"""Supabase Storage backend."""

import asyncio
import logging
import mimetypes

from storage3.exceptions import StorageApiError
from supabase import Client, create_client

from file_manager.core.streams import ObjectStream, read_body
from file_manager.exceptions import (
    BackendError,
    BackendReadError,
    BackendSigningError,
    BackendWriteError,
    ConfigurationError,
    NotFoundError,
    UsageError,
)
from file_manager.schemas.storage import (
    GetObjectResult,
    ListObjectsResult,
    PutObjectInput,
    PutObjectResult,
    SignedUrlOptions,
)
from file_manager.storage.base import DEFAULT_LIST_LIMIT, DEFAULT_SIGNED_URL_TTL, StorageEngine

logger = logging.getLogger(__name__)

# Supabase caps a single list call at this many entries
_LIST_PAGE = 1000


def _is_not_found(e: StorageApiError) -> bool:
    status = str(getattr(e, "status", "") or "")
    message = str(getattr(e, "message", "") or e).lower()
    return status == "404" or "not found" in message


class SupabaseStorageEngine(StorageEngine):
    """
    Store files in a Supabase Storage bucket.

    Public access is a bucket-level setting in Supabase, so acl_public on a
    put cannot change it; resolve_public_url only answers when the bucket was
    declared public. The SDK is synchronous and runs on the default thread pool.
    """

    def __init__(
        self,
        url: str | None = None,
        service_role_key: str | None = None,
        bucket: str = "uploads",
        public: bool = False,
        client: Client | None = None,
        signed_url_ttl: int = DEFAULT_SIGNED_URL_TTL,
    ) -> None:
        if client is None:
            if not url or not service_role_key:
                raise ConfigurationError(
                    "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set when STORAGE_BACKEND=supabase"
                )
            client = create_client(url, service_role_key)
        self.client = client
        self.bucket = bucket
        self.public = public
        self.signed_url_ttl = signed_url_ttl

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    async def put_object(self, input: PutObjectInput) -> PutObjectResult:
        data = await read_body(input.body)
        opts: dict = {"upsert": "true"}
        if input.content_type:
            opts["content-type"] = input.content_type
        if input.metadata:
            opts["metadata"] = dict(input.metadata)
        if input.acl_public and not self.public:
            logger.debug("acl_public ignored for private Supabase bucket %s", self.bucket)
        try:
            await asyncio.to_thread(self._bucket().upload, input.key, data, opts)
        except StorageApiError as e:
            raise BackendWriteError(f"Supabase upload failed for {input.key}: {e}") from e
        return PutObjectResult(key=input.key, size=len(data), url=self.resolve_public_url(input.key))

    async def get_object(self, key: str) -> GetObjectResult:
        try:
            data = await asyncio.to_thread(self._bucket().download, key)
        except StorageApiError as e:
            if _is_not_found(e):
                raise NotFoundError(key) from e
            raise BackendReadError(f"Supabase download failed for {key}: {e}") from e
        content_type, _ = mimetypes.guess_type(key)
        return GetObjectResult(
            stream=ObjectStream.from_bytes(data),
            content_type=content_type,
            size=len(data),
        )

    async def delete_object(self, key: str) -> None:
        # remove() reports success for paths that do not exist
        try:
            await asyncio.to_thread(self._bucket().remove, [key])
        except StorageApiError as e:
            if _is_not_found(e):
                return
            raise BackendWriteError(f"Supabase delete failed for {key}: {e}") from e

    async def delete_directory(self, prefix: str) -> None:
        keys = await self._walk(prefix.strip("/"))
        for start in range(0, len(keys), _LIST_PAGE):
            batch = keys[start:start + _LIST_PAGE]
            try:
                await asyncio.to_thread(self._bucket().remove, batch)
            except StorageApiError as e:
                raise BackendWriteError(f"Supabase delete failed under {prefix}: {e}") from e
        logger.info("Deleted %d objects under %s/%s", len(keys), self.bucket, prefix)

    async def _walk(self, folder: str) -> list[str]:
        """Every file key below folder. Supabase lists one level at a time; folders have no id."""
        keys: list[str] = []
        offset = 0
        while True:
            entries = await self._list_page(folder, offset, _LIST_PAGE)
            for entry in entries:
                path = f"{folder}/{entry['name']}" if folder else entry["name"]
                if entry.get("id") is None:
                    keys.extend(await self._walk(path))
                else:
                    keys.append(path)
            if len(entries) < _LIST_PAGE:
                return keys
            offset += _LIST_PAGE

    async def _list_page(self, folder: str, offset: int, limit: int) -> list[dict]:
        try:
            return await asyncio.to_thread(
                self._bucket().list,
                folder,
                {"limit": limit, "offset": offset, "sortBy": {"column": "name", "order": "asc"}},
            )
        except StorageApiError as e:
            raise BackendReadError(f"Supabase list failed for {folder}: {e}") from e

    async def copy_object(self, src_key: str, dest_key: str) -> None:
        try:
            await asyncio.to_thread(self._bucket().copy, src_key, dest_key)
        except StorageApiError as e:
            if _is_not_found(e):
                raise NotFoundError(src_key) from e
            raise BackendWriteError(f"Supabase copy failed {src_key} -> {dest_key}: {e}") from e

    async def move_object(self, src_key: str, dest_key: str) -> None:
        try:
            await asyncio.to_thread(self._bucket().move, src_key, dest_key)
        except StorageApiError as e:
            if _is_not_found(e):
                raise NotFoundError(src_key) from e
            raise BackendWriteError(f"Supabase move failed {src_key} -> {dest_key}: {e}") from e

    async def exists(self, key: str) -> bool:
        try:
            return bool(await asyncio.to_thread(self._bucket().exists, key))
        except StorageApiError as e:
            if _is_not_found(e):
                return False
            raise BackendError(f"Supabase exists check failed for {key}: {e}") from e

    async def list(
        self,
        prefix: str,
        cursor: str | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> ListObjectsResult:
        """One folder level under prefix; sub-folders end with "/". Cursor is a numeric offset."""
        folder = (prefix or "").strip("/")
        try:
            offset = int(cursor) if cursor else 0
        except ValueError as e:
            raise UsageError(f"Invalid list cursor: {cursor!r}") from e
        limit = min(limit, _LIST_PAGE)
        # Ask for one extra entry to learn whether another page exists; at the
        # server cap a full page is taken to mean there may be more
        request = min(limit + 1, _LIST_PAGE)
        entries = await self._list_page(folder, offset, request)
        keys = []
        for entry in entries[:limit]:
            path = f"{folder}/{entry['name']}" if folder else entry["name"]
            keys.append(path + "/" if entry.get("id") is None else path)
        has_more = len(entries) > limit or (request == limit and len(entries) == limit)
        next_cursor = str(offset + limit) if has_more else None
        return ListObjectsResult(keys=keys, next_cursor=next_cursor)

    async def get_signed_url(self, opts: SignedUrlOptions) -> str:
        try:
            if opts.action == "get":
                resp = await asyncio.to_thread(
                    self._bucket().create_signed_url,
                    opts.key,
                    opts.expires_in_seconds or self.signed_url_ttl,
                )
                url = resp.get("signedURL") or resp.get("signedUrl")
            else:
                # Upload URLs have a fixed lifetime on Supabase's side
                resp = await asyncio.to_thread(self._bucket().create_signed_upload_url, opts.key)
                url = resp.get("signed_url") or resp.get("signedUrl")
        except StorageApiError as e:
            raise BackendSigningError(f"Supabase signing failed for {opts.key}: {e}") from e
        if not url:
            raise BackendSigningError(f"Supabase returned no signed URL for {opts.key}")
        return url

    def resolve_public_url(self, key: str) -> str | None:
        if not self.public:
            return None
        return self._bucket().get_public_url(key)
