"""Pydantic schemas for validating caller input before it reaches the service."""

from typing import Any, Optional

from pydantic import BaseModel, Field

from file_manager.schemas.storage import PutRequest, SignedAction, SignedUrlOptions

MIN_LIST_LIMIT = 1
MAX_LIST_LIMIT = 1000


class UploadRequest(BaseModel):
    """Upload parameters as submitted by a client (form fields or query string)."""

    prefix: Optional[str] = Field(default=None, max_length=128)
    content_type: Optional[str] = None
    original_name: Optional[str] = None
    action: Optional[SignedAction] = None

    def to_put_request(self, body: Any, **extra: Any) -> PutRequest:
        return PutRequest(
            body=body,
            prefix=self.prefix,
            original_name=self.original_name,
            content_type=self.content_type,
            **extra,
        )

    def to_signed_url_options(self, key: str, expires_in_seconds: int | None = None) -> SignedUrlOptions:
        """Signed URL for key; action defaults to "put" since this is an upload."""
        return SignedUrlOptions(
            key=key,
            action=self.action or "put",
            expires_in_seconds=expires_in_seconds,
            content_type=self.content_type,
        )


class ListQuery(BaseModel):
    """Listing parameters; limit is bounded to 1..1000 and defaults to 100."""

    prefix: str = ""
    cursor: Optional[str] = None
    limit: int = Field(default=100, ge=MIN_LIST_LIMIT, le=MAX_LIST_LIMIT)
