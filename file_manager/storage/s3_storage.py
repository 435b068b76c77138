"""S3 (and S3-compatible, e.g. MinIO) storage backend."""

import asyncio
import logging
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

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

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound", "NoSuchObject")
# delete_objects accepts at most this many keys per call
_DELETE_BATCH = 1000


def _error_code(e: ClientError) -> str:
    return str(e.response.get("Error", {}).get("Code", ""))


class S3StorageEngine(StorageEngine):
    """
    boto3-backed StorageEngine.

    Credentials follow the normal boto3 resolution chain (env, profile, IRSA).
    boto3 is blocking, so every call runs on the default thread pool.
    S3 has no rename: move_object is the inherited copy-then-delete.
    """

    def __init__(
        self,
        bucket: str,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
        client: Any = None,
        signed_url_ttl: int = DEFAULT_SIGNED_URL_TTL,
    ) -> None:
        bucket = (bucket or "").strip()
        if not bucket:
            raise ConfigurationError("S3_BUCKET is required for S3 storage engine")
        self.bucket = bucket
        self.public_base_url = (public_base_url or "").rstrip("/") or None
        self.signed_url_ttl = signed_url_ttl

        if client is None:
            cfg = Config(region_name=region or None)
            client = boto3.client("s3", endpoint_url=endpoint_url or None, config=cfg)
        self.s3 = client

    async def put_object(self, input: PutObjectInput) -> PutObjectResult:
        data = await read_body(input.body)
        kwargs: Dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": input.key,
            "Body": data,
            "ContentType": input.content_type or "application/octet-stream",
        }
        if input.metadata:
            # S3 metadata keys must be strings
            kwargs["Metadata"] = {str(k): str(v) for k, v in input.metadata.items()}
        if input.acl_public:
            kwargs["ACL"] = "public-read"
        try:
            resp = await asyncio.to_thread(self.s3.put_object, **kwargs)
        except (ClientError, BotoCoreError) as e:
            raise BackendWriteError(f"S3 put failed for {input.key}: {e}") from e
        return PutObjectResult(
            key=input.key,
            etag=resp.get("ETag"),
            size=len(data),
            checksum=resp.get("ChecksumSHA256") or resp.get("ChecksumCRC32"),
            url=self.resolve_public_url(input.key),
        )

    async def get_object(self, key: str) -> GetObjectResult:
        try:
            resp = await asyncio.to_thread(self.s3.get_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise NotFoundError(key) from e
            raise BackendReadError(f"S3 get failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise BackendReadError(f"S3 get failed for {key}: {e}") from e

        body = resp["Body"]

        async def _chunks():
            while True:
                chunk = await asyncio.to_thread(body.read, DEFAULT_CHUNK_SIZE)
                if not chunk:
                    return
                yield chunk

        return GetObjectResult(
            stream=ObjectStream(_chunks(), close=body.close),
            content_type=resp.get("ContentType"),
            size=resp.get("ContentLength"),
            metadata=resp.get("Metadata") or {},
            last_modified=resp.get("LastModified"),
        )

    async def delete_object(self, key: str) -> None:
        # S3 DeleteObject succeeds for missing keys
        try:
            await asyncio.to_thread(self.s3.delete_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return
            raise BackendWriteError(f"S3 delete failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise BackendWriteError(f"S3 delete failed for {key}: {e}") from e

    async def delete_directory(self, prefix: str) -> None:
        cursor = None
        deleted = 0
        while True:
            page = await self.list(prefix, cursor, _DELETE_BATCH)
            if page.keys:
                try:
                    resp = await asyncio.to_thread(
                        self.s3.delete_objects,
                        Bucket=self.bucket,
                        Delete={"Objects": [{"Key": k} for k in page.keys], "Quiet": True},
                    )
                except (ClientError, BotoCoreError) as e:
                    raise BackendWriteError(f"S3 delete failed under {prefix}: {e}") from e
                # Quiet mode still answers 200 and lists per-key failures
                errors = resp.get("Errors") or []
                if errors:
                    failed = ", ".join(f"{err.get('Key')} ({err.get('Code')})" for err in errors)
                    raise BackendWriteError(f"S3 delete failed under {prefix} for: {failed}")
                deleted += len(page.keys)
            if not page.next_cursor:
                break
            cursor = page.next_cursor
        logger.info("Deleted %d objects under s3://%s/%s", deleted, self.bucket, prefix)

    async def copy_object(self, src_key: str, dest_key: str) -> None:
        try:
            await asyncio.to_thread(
                self.s3.copy_object,
                Bucket=self.bucket,
                CopySource={"Bucket": self.bucket, "Key": src_key},
                Key=dest_key,
            )
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise NotFoundError(src_key) from e
            raise BackendWriteError(f"S3 copy failed {src_key} -> {dest_key}: {e}") from e
        except BotoCoreError as e:
            raise BackendWriteError(f"S3 copy failed {src_key} -> {dest_key}: {e}") from e

    async def exists(self, key: str) -> bool:
        try:
            await asyncio.to_thread(self.s3.head_object, Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return False
            raise BackendError(f"S3 head failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise BackendError(f"S3 head failed for {key}: {e}") from e

    async def list(
        self,
        prefix: str,
        cursor: str | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> ListObjectsResult:
        kwargs: Dict[str, Any] = {"Bucket": self.bucket, "Prefix": prefix or "", "MaxKeys": limit}
        if cursor:
            kwargs["ContinuationToken"] = cursor
        try:
            resp = await asyncio.to_thread(self.s3.list_objects_v2, **kwargs)
        except (ClientError, BotoCoreError) as e:
            raise BackendReadError(f"S3 list failed for {prefix}: {e}") from e
        keys = [obj["Key"] for obj in resp.get("Contents") or []]
        next_cursor = resp.get("NextContinuationToken") if resp.get("IsTruncated") else None
        return ListObjectsResult(keys=keys, next_cursor=next_cursor)

    async def get_signed_url(self, opts: SignedUrlOptions) -> str:
        params: Dict[str, Any] = {"Bucket": self.bucket, "Key": opts.key}
        if opts.action == "put" and opts.content_type:
            params["ContentType"] = opts.content_type
        try:
            return await asyncio.to_thread(
                self.s3.generate_presigned_url,
                ClientMethod="get_object" if opts.action == "get" else "put_object",
                Params=params,
                ExpiresIn=max(1, opts.expires_in_seconds or self.signed_url_ttl),
            )
        except (ClientError, BotoCoreError) as e:
            raise BackendSigningError(f"S3 presign failed for {opts.key}: {e}") from e

    def resolve_public_url(self, key: str) -> str | None:
        if not self.public_base_url:
            return None
        return f"{self.public_base_url}/{key}"
