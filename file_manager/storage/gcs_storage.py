"""Google Cloud Storage backend."""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Optional

from google.api_core.exceptions import GoogleAPIError, NotFound
from google.auth.exceptions import DefaultCredentialsError, GoogleAuthError
from google.cloud import storage

from file_manager.core.streams import DEFAULT_CHUNK_SIZE, ObjectStream, read_body
from file_manager.exceptions import (
    BackendError,
    BackendReadError,
    BackendSigningError,
    BackendWriteError,
    ConfigurationError,
    NotFoundError,
)
from file_manager.schemas.storage import (
    GetObjectResult,
    ListObjectsResult,
    PutObjectInput,
    PutObjectResult,
    SignedUrlOptions,
)
from file_manager.storage.base import DEFAULT_LIST_LIMIT, DEFAULT_SIGNED_URL_TTL, StorageEngine
from file_manager.storage.gcs_auth import load_gcs_credentials

logger = logging.getLogger(__name__)

# Keys per delete_blobs call
_DELETE_BATCH = 1000


class GcsStorageEngine(StorageEngine):
    """
    google-cloud-storage backed StorageEngine.

    Credentials come from a key file, key-file JSON (raw or base64) or an
    inline client_email/private_key pair; with none of these the client uses
    Application Default Credentials. The SDK is blocking, so every call runs on
    the default thread pool.
    """

    def __init__(
        self,
        bucket: str,
        project: Optional[str] = None,
        public_base_url: Optional[str] = None,
        key_filename: Optional[str] = None,
        key_file_json: Optional[str] = None,
        client_email: Optional[str] = None,
        private_key: Optional[str] = None,
        client: Any = None,
        signed_url_ttl: int = DEFAULT_SIGNED_URL_TTL,
    ) -> None:
        bucket = (bucket or "").strip()
        if not bucket:
            raise ConfigurationError("GCS_BUCKET is required for GCS storage engine")
        self.public_base_url = (public_base_url or "").rstrip("/") or None
        self.signed_url_ttl = signed_url_ttl

        if client is None:
            credentials = load_gcs_credentials(key_filename, key_file_json, client_email, private_key)
            project = project or getattr(credentials, "project_id", None)
            try:
                client = storage.Client(project=project or None, credentials=credentials)
            except (DefaultCredentialsError, OSError) as e:
                raise ConfigurationError(f"Could not create GCS client: {e}") from e
        self.client = client
        self.bucket = client.bucket(bucket)

    async def put_object(self, input: PutObjectInput) -> PutObjectResult:
        data = await read_body(input.body)
        blob = self.bucket.blob(input.key)
        if input.metadata:
            blob.metadata = {str(k): str(v) for k, v in input.metadata.items()}
        try:
            await asyncio.to_thread(
                blob.upload_from_string,
                data,
                content_type=input.content_type or "application/octet-stream",
                predefined_acl="publicRead" if input.acl_public else None,
            )
        except GoogleAPIError as e:
            raise BackendWriteError(f"GCS upload failed for {input.key}: {e}") from e
        return PutObjectResult(
            key=input.key,
            etag=blob.etag,
            size=len(data),
            checksum=blob.crc32c or blob.md5_hash,
            url=self.resolve_public_url(input.key),
        )

    async def get_object(self, key: str) -> GetObjectResult:
        try:
            # get_blob fetches metadata and returns None for a missing object
            blob = await asyncio.to_thread(self.bucket.get_blob, key)
            if blob is None:
                raise NotFoundError(key)
            reader = await asyncio.to_thread(blob.open, "rb")
        except NotFound as e:
            raise NotFoundError(key) from e
        except GoogleAPIError as e:
            raise BackendReadError(f"GCS get failed for {key}: {e}") from e

        async def _chunks():
            while True:
                chunk = await asyncio.to_thread(reader.read, DEFAULT_CHUNK_SIZE)
                if not chunk:
                    return
                yield chunk

        return GetObjectResult(
            stream=ObjectStream(_chunks(), close=reader.close),
            content_type=blob.content_type,
            size=blob.size,
            metadata=blob.metadata or {},
            last_modified=blob.updated,
        )

    async def delete_object(self, key: str) -> None:
        try:
            await asyncio.to_thread(self.bucket.blob(key).delete)
        except NotFound:
            logger.debug("Delete of missing GCS object ignored: %s", key)
        except GoogleAPIError as e:
            raise BackendWriteError(f"GCS delete failed for {key}: {e}") from e

    async def delete_directory(self, prefix: str) -> None:
        try:
            blobs = await asyncio.to_thread(
                lambda: list(self.client.list_blobs(self.bucket, prefix=prefix or None))
            )
            for start in range(0, len(blobs), _DELETE_BATCH):
                # on_error is only called for blobs that are already gone
                await asyncio.to_thread(
                    self.bucket.delete_blobs,
                    blobs[start:start + _DELETE_BATCH],
                    on_error=lambda blob: None,
                )
        except GoogleAPIError as e:
            raise BackendWriteError(f"GCS delete failed under {prefix}: {e}") from e
        logger.info("Deleted %d objects under gs://%s/%s", len(blobs), self.bucket.name, prefix)

    async def copy_object(self, src_key: str, dest_key: str) -> None:
        try:
            await asyncio.to_thread(self.bucket.copy_blob, self.bucket.blob(src_key), self.bucket, dest_key)
        except NotFound as e:
            raise NotFoundError(src_key) from e
        except GoogleAPIError as e:
            raise BackendWriteError(f"GCS copy failed {src_key} -> {dest_key}: {e}") from e

    async def move_object(self, src_key: str, dest_key: str) -> None:
        try:
            await asyncio.to_thread(self.bucket.rename_blob, self.bucket.blob(src_key), dest_key)
        except NotFound as e:
            raise NotFoundError(src_key) from e
        except GoogleAPIError as e:
            raise BackendWriteError(f"GCS move failed {src_key} -> {dest_key}: {e}") from e

    async def exists(self, key: str) -> bool:
        try:
            return bool(await asyncio.to_thread(self.bucket.blob(key).exists))
        except GoogleAPIError as e:
            raise BackendError(f"GCS exists check failed for {key}: {e}") from e

    async def list(
        self,
        prefix: str,
        cursor: str | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> ListObjectsResult:
        def _first_page():
            iterator = self.client.list_blobs(
                self.bucket,
                prefix=prefix or None,
                max_results=limit,
                page_token=cursor or None,
            )
            page = next(iterator.pages, None)
            names = [blob.name for blob in page] if page is not None else []
            return names, iterator.next_page_token

        try:
            keys, next_cursor = await asyncio.to_thread(_first_page)
        except GoogleAPIError as e:
            raise BackendReadError(f"GCS list failed for {prefix}: {e}") from e
        return ListObjectsResult(keys=keys, next_cursor=next_cursor or None)

    async def get_signed_url(self, opts: SignedUrlOptions) -> str:
        blob = self.bucket.blob(opts.key)
        kwargs: dict[str, Any] = {
            "version": "v4",
            "expiration": timedelta(seconds=max(1, opts.expires_in_seconds or self.signed_url_ttl)),
            "method": "GET" if opts.action == "get" else "PUT",
        }
        if opts.action == "put" and opts.content_type:
            kwargs["content_type"] = opts.content_type
        try:
            return await asyncio.to_thread(blob.generate_signed_url, **kwargs)
        except (GoogleAPIError, GoogleAuthError) as e:
            raise BackendSigningError(f"GCS signing failed for {opts.key}: {e}") from e

    def resolve_public_url(self, key: str) -> str | None:
        if not self.public_base_url:
            return None
        return f"{self.public_base_url}/{key}"
