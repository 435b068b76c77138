"""Local filesystem storage."""

import asyncio
import logging
import mimetypes
import shutil
import stat
from datetime import datetime, timezone
from pathlib import Path

import aiofiles
import aiofiles.os

from file_manager.core.streams import DEFAULT_CHUNK_SIZE, ObjectStream, iter_body
from file_manager.exceptions import (
    BackendReadError,
    BackendWriteError,
    InvalidKeyError,
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
from file_manager.storage.base import DEFAULT_LIST_LIMIT, StorageEngine

logger = logging.getLogger(__name__)


class LocalStorageEngine(StorageEngine):
    """Store files on local disk under base_dir. Public URLs are {public_base_url}/{key}."""

    def __init__(self, base_dir: str | Path, public_base_url: str | None = None) -> None:
        self.root = Path(base_dir).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = (public_base_url or "").rstrip("/") or None

    def _path(self, key: str) -> Path:
        """Resolve key under root. Prevent path traversal."""
        key = (key or "").lstrip("/")
        if ".." in key.split("/"):
            raise InvalidKeyError(f"Invalid storage key: {key!r}")
        resolved = (self.root / key).resolve()
        if resolved != self.root and not resolved.is_relative_to(self.root):
            raise InvalidKeyError(f"Invalid storage key: {key!r}")
        return resolved

    async def put_object(self, input: PutObjectInput) -> PutObjectResult:
        path = self._path(input.key)
        size = 0
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                async for chunk in iter_body(input.body):
                    size += len(chunk)
                    await f.write(chunk)
        except OSError as e:
            raise BackendWriteError(f"Failed to write {input.key}: {e}") from e
        return PutObjectResult(key=input.key, size=size, url=self.resolve_public_url(input.key))

    async def get_object(self, key: str) -> GetObjectResult:
        path = self._path(key)
        try:
            st = await aiofiles.os.stat(path)
            if not stat.S_ISREG(st.st_mode):
                raise NotFoundError(key)
            f = await aiofiles.open(path, "rb")
        except FileNotFoundError as e:
            raise NotFoundError(key) from e
        except OSError as e:
            raise BackendReadError(f"Failed to open {key}: {e}") from e

        async def _chunks():
            while True:
                chunk = await f.read(DEFAULT_CHUNK_SIZE)
                if not chunk:
                    return
                yield chunk

        content_type, _ = mimetypes.guess_type(key)
        return GetObjectResult(
            stream=ObjectStream(_chunks(), close=f.close),
            content_type=content_type,
            size=st.st_size,
            last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    async def delete_object(self, key: str) -> None:
        path = self._path(key)
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            logger.debug("Delete of missing local object ignored: %s", key)
        except OSError as e:
            raise BackendWriteError(f"Failed to delete {key}: {e}") from e

    async def delete_directory(self, prefix: str) -> None:
        path = self._path(prefix)
        try:
            if path == self.root:
                # Empty prefix: clear contents, keep the root itself
                for child in await aiofiles.os.listdir(path):
                    await asyncio.to_thread(_remove_tree, path / child)
            else:
                await asyncio.to_thread(_remove_tree, path)
        except OSError as e:
            raise BackendWriteError(f"Failed to delete directory {prefix}: {e}") from e

    async def copy_object(self, src_key: str, dest_key: str) -> None:
        src = self._path(src_key)
        dest = self._path(dest_key)
        if not await aiofiles.os.path.isfile(src):
            raise NotFoundError(src_key)
        try:
            await aiofiles.os.makedirs(dest.parent, exist_ok=True)
            await asyncio.to_thread(shutil.copyfile, src, dest)
        except OSError as e:
            raise BackendWriteError(f"Failed to copy {src_key} to {dest_key}: {e}") from e

    async def move_object(self, src_key: str, dest_key: str) -> None:
        src = self._path(src_key)
        dest = self._path(dest_key)
        if not await aiofiles.os.path.isfile(src):
            raise NotFoundError(src_key)
        try:
            await aiofiles.os.makedirs(dest.parent, exist_ok=True)
            await aiofiles.os.replace(src, dest)
        except OSError as e:
            raise BackendWriteError(f"Failed to move {src_key} to {dest_key}: {e}") from e

    async def exists(self, key: str) -> bool:
        return await aiofiles.os.path.isfile(self._path(key))

    async def list(
        self,
        prefix: str,
        cursor: str | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> ListObjectsResult:
        """
        List the direct children of prefix. Sub-directories come back with a
        trailing slash. The cursor is the numeric offset of the next entry.
        """
        prefix = (prefix or "").strip("/")
        path = self._path(prefix)
        try:
            names = sorted(await aiofiles.os.listdir(path))
        except (FileNotFoundError, NotADirectoryError):
            names = []
        items = []
        for name in names:
            rel = f"{prefix}/{name}" if prefix else name
            if await aiofiles.os.path.isdir(path / name):
                rel += "/"
            items.append(rel)

        try:
            start = int(cursor) if cursor else 0
        except ValueError as e:
            raise UsageError(f"Invalid list cursor: {cursor!r}") from e
        end = start + limit
        next_cursor = str(end) if end < len(items) else None
        return ListObjectsResult(keys=items[start:end], next_cursor=next_cursor)

    async def get_signed_url(self, opts: SignedUrlOptions) -> str:
        if not self.public_base_url:
            raise UsageError("Local engine cannot sign URLs without a public base URL.")
        return f"{self.public_base_url}/{opts.key.lstrip('/')}"

    def resolve_public_url(self, key: str) -> str | None:
        if not self.public_base_url:
            return None
        return f"{self.public_base_url}/{key.lstrip('/')}"


def _remove_tree(path: Path) -> None:
    if path.is_dir():
        shutil.rmtree(path, ignore_errors=False)
    elif path.exists():
        path.unlink()
