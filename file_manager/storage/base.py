"""Abstract storage engine."""

from abc import ABC, abstractmethod

from file_manager.schemas.storage import (
    GetObjectResult,
    ListObjectsResult,
    PutObjectInput,
    PutObjectResult,
    SignedUrlOptions,
)

DEFAULT_LIST_LIMIT = 100
DEFAULT_SIGNED_URL_TTL = 900


class StorageEngine(ABC):
    """Interface every backend (local disk, Supabase, S3, ...) implements."""

    @abstractmethod
    async def put_object(self, input: PutObjectInput) -> PutObjectResult:
        """
        Store an object and return metadata about the write.
        Raises BackendWriteError on transport or permission failure.
        """
        ...

    @abstractmethod
    async def get_object(self, key: str) -> GetObjectResult:
        """
        Open an object as a single-use stream.
        Raises NotFoundError for a missing key, BackendReadError otherwise.
        """
        ...

    @abstractmethod
    async def delete_object(self, key: str) -> None:
        """Remove an object. Deleting a missing key is not an error."""
        ...

    @abstractmethod
    async def delete_directory(self, prefix: str) -> None:
        """Remove every object whose key starts with prefix. Succeeds when nothing matches."""
        ...

    @abstractmethod
    async def copy_object(self, src_key: str, dest_key: str) -> None:
        ...

    async def move_object(self, src_key: str, dest_key: str) -> None:
        """
        Copy then delete the source. If the copy fails the source is left
        alone; if the delete fails the object exists under both keys.
        Backends with an atomic rename override this.
        """
        await self.copy_object(src_key, dest_key)
        await self.delete_object(src_key)

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """True when key exists. Only raises on a genuine backend failure."""
        ...

    @abstractmethod
    async def list(
        self,
        prefix: str,
        cursor: str | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> ListObjectsResult:
        """Return at most limit keys under prefix. The cursor is backend specific."""
        ...

    @abstractmethod
    async def get_signed_url(self, opts: SignedUrlOptions) -> str:
        """Return a time-boxed URL: read access for "get", write access for "put"."""
        ...

    def resolve_public_url(self, key: str) -> str | None:
        """Public URL for key, or None when the backend has none configured."""
        return None
