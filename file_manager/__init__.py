"""Uniform async object-storage facade over pluggable storage engines."""

from file_manager.core.keys import make_storage_key, safe_slug
from file_manager.core.semaphore import AsyncSemaphore
from file_manager.core.streams import ObjectStream
from file_manager.exceptions import (
    BackendError,
    BackendReadError,
    BackendSigningError,
    BackendWriteError,
    ConfigurationError,
    FileManagerError,
    InvalidKeyError,
    NotFoundError,
    StorageError,
    UsageError,
)
from file_manager.schemas.requests import ListQuery, UploadRequest
from file_manager.schemas.storage import (
    FileManagerOptions,
    GetObjectResult,
    ListObjectsResult,
    PutObjectInput,
    PutObjectResult,
    PutRequest,
    SignedUrlOptions,
)
from file_manager.services.file_manager import FileManagerService
from file_manager.services.registry import (
    create_file_manager,
    get_file_manager,
    register_file_manager,
    unregister_file_manager,
)
from file_manager.storage import StorageEngine, create_storage_engine

__all__ = [
    "AsyncSemaphore",
    "BackendError",
    "BackendReadError",
    "BackendSigningError",
    "BackendWriteError",
    "ConfigurationError",
    "FileManagerError",
    "FileManagerOptions",
    "FileManagerService",
    "GetObjectResult",
    "InvalidKeyError",
    "ListObjectsResult",
    "ListQuery",
    "NotFoundError",
    "ObjectStream",
    "PutObjectInput",
    "PutObjectResult",
    "PutRequest",
    "SignedUrlOptions",
    "StorageEngine",
    "StorageError",
    "UploadRequest",
    "UsageError",
    "create_file_manager",
    "create_storage_engine",
    "get_file_manager",
    "make_storage_key",
    "register_file_manager",
    "safe_slug",
    "unregister_file_manager",
]
