"""Pydantic shapes exchanged between the file manager and storage engines."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from file_manager.core.semaphore import coerce_max
from file_manager.core.streams import ObjectStream

SignedAction = Literal["put", "get"]


class PutObjectInput(BaseModel):
    """Payload accepted by storage engines to persist a single object."""

    key: str
    body: Any = Field(..., description="bytes, or a sync/async iterable of byte chunks")
    content_type: Optional[str] = None
    metadata: Optional[dict[str, str]] = None
    acl_public: Optional[bool] = None

    model_config = {"arbitrary_types_allowed": True}


class PutRequest(BaseModel):
    """What callers hand to FileManagerService.put; key is filled in when absent."""

    body: Any
    key: Optional[str] = None
    prefix: Optional[str] = None
    original_name: Optional[str] = None
    content_type: Optional[str] = None
    metadata: Optional[dict[str, str]] = None
    acl_public: Optional[bool] = None

    model_config = {"arbitrary_types_allowed": True}


class PutObjectResult(BaseModel):
    """Result returned after successfully storing an object."""

    key: str
    etag: Optional[str] = None
    size: Optional[int] = None
    checksum: Optional[str] = None
    url: Optional[str] = None

    model_config = {"frozen": True}


class GetObjectResult(BaseModel):
    """Object contents as a single-use stream, plus what the backend knows about it."""

    stream: ObjectStream
    content_type: Optional[str] = None
    size: Optional[int] = None
    metadata: dict[str, str] = Field(default_factory=dict)
    last_modified: Optional[datetime] = None

    model_config = {"arbitrary_types_allowed": True}


class ListObjectsResult(BaseModel):
    """One page of keys; next_cursor is None on the last page."""

    keys: list[str] = Field(default_factory=list)
    next_cursor: Optional[str] = None


class SignedUrlOptions(BaseModel):
    """Request for a time-boxed URL authorising a direct upload (put) or download (get)."""

    key: str
    action: SignedAction
    expires_in_seconds: Optional[int] = None
    content_type: Optional[str] = None


class FileManagerOptions(BaseModel):
    """Service-level defaults, fixed for the lifetime of a FileManagerService."""

    default_prefix: str = "uploads"
    public_read_by_default: bool = False
    max_concurrent_ops: Optional[int] = None

    model_config = {"frozen": True}

    @field_validator("max_concurrent_ops", mode="before")
    @classmethod
    def check_max_concurrent_ops(cls, v):
        # ConfigurationError is not a ValueError, so pydantic lets it through unwrapped
        return None if v is None else coerce_max(v)
