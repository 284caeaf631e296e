"""Taiga Attachment Data Models

Pydantic models for Taiga attachments (files attached to issues, user stories
and tasks).
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime

from .item import ItemReference


class Attachment(BaseModel):
    """Taiga attachment record as returned by the attachments endpoints."""

    model_config = ConfigDict(extra="allow")

    id: int = Field(description="Unique attachment ID (read-only)")
    name: Optional[str] = Field(default=None, description="Original file name")
    size: Optional[int] = Field(default=None, description="File size in bytes")
    url: Optional[str] = Field(default=None, description="Download URL")
    description: Optional[str] = Field(default=None, description="Attachment description")
    object_id: Optional[int] = Field(default=None, description="Owning item ID")
    project: Optional[int] = Field(default=None, description="Owning project ID")
    is_deprecated: Optional[bool] = Field(default=None, description="Whether the attachment is deprecated")
    created_date: Optional[datetime] = Field(default=None, description="Upload timestamp (read-only)")
    modified_date: Optional[datetime] = Field(default=None, description="Last modification timestamp")


class AttachmentPayload(BaseModel):
    """A fully materialized upload: binary content plus its metadata.

    Built immediately before a single upload call and not reused.
    """

    content: bytes = Field(description="Decoded file content")
    file_name: str = Field(description="File name with extension")
    content_type: str = Field(description="MIME type sent for the file part")
    item: ItemReference = Field(description="Item the attachment belongs to")
    description: Optional[str] = Field(default=None, description="Attachment description")
    project: Optional[int] = Field(default=None, description="Owning project ID, when known")

    @field_validator("file_name")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        """Validate filename is not empty."""
        if not v or len(v.strip()) == 0:
            raise ValueError("Filename cannot be empty")
        return v

    @property
    def size(self) -> int:
        return len(self.content)


class DownloadResult(BaseModel):
    """Where a downloaded attachment was written."""

    filename: str
    saved_path: str
    size: Optional[int] = None
