"""Taiga MCP Server Data Models

This package contains Pydantic models for Taiga entities.
"""

from .item import ItemReference, ItemCreate
from .attachment import Attachment, AttachmentPayload, DownloadResult

__all__ = [
    "ItemReference",
    "ItemCreate",
    "Attachment",
    "AttachmentPayload",
    "DownloadResult",
]
