"""Taiga MCP Server - Attachment Operations Tools

This module contains all attachment operation MCP tools for Taiga:
- Upload from base64 content or from a local file path
- List, download and delete attachments of issues, user stories and tasks
"""

import logging
import os
from pathlib import Path
from typing import Optional, Dict, Any, List

from mcp.server.fastmcp import Context
from pydantic import ValidationError as PydanticValidationError

from ..constants import ATTACHMENT_ENDPOINTS
from ..models.attachment import Attachment, AttachmentPayload, DownloadResult
from ..utils.attachments import (
    decode_base64_payload,
    detect_mime_type,
    lookup_owning_project,
    read_file_as_base64,
    resolve_upload_path,
    upload_payload,
    write_stream,
)
from ..utils.errors import ValidationError
from ..utils.validation import item_reference, parse_item_kind

logger = logging.getLogger(__name__)


async def taiga_upload_attachment(
    ctx: Context,
    item_type: str,
    item_id: int,
    file_data: str,
    file_name: str,
    mime_type: Optional[str] = None,
    description: Optional[str] = None
) -> Dict[str, Any]:
    """Upload a file to an issue, user story or task.

    Args:
        ctx: MCP context with Taiga client
        item_type: "issue", "user_story" or "task"
        item_id: Item ID
        file_data: Base64 content, optionally as a data URI
            (``data:image/png;base64,...``)
        file_name: File name with extension
        mime_type: Content type; inferred from the extension when omitted
        description: Optional attachment description

    Returns:
        The attachment record created by Taiga

    Raises:
        ValidationError: If the item, file name or payload is invalid
        InvalidPayloadError: If file_data is not valid base64
        PayloadTooLargeError: If Taiga rejects the upload size
    """
    item = item_reference(item_type, item_id)
    if not isinstance(file_name, str) or not file_name.strip():
        raise ValidationError("Invalid file name: file_name must be a non-empty string")

    content = decode_base64_payload(file_data)
    if not content:
        raise ValidationError("File content is empty", details={"file_name": file_name})

    content_type = mime_type or detect_mime_type(file_name)
    logger.info(f"Uploading attachment '{file_name}' to {item.kind.value} #{item.id}")

    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    try:
        payload = AttachmentPayload(
            content=content,
            file_name=file_name,
            content_type=content_type,
            item=item,
            description=description,
            project=lookup_owning_project(taiga_client, item),
        )
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid attachment for {item.kind.value} #{item.id}",
            details={"file_name": file_name, "errors": e.errors()}
        ) from e
    attachment = upload_payload(taiga_client, payload)
    logger.info(f"Uploaded attachment '{file_name}' ({payload.size} bytes)")
    return attachment


async def taiga_upload_attachment_from_path(
    ctx: Context,
    item_type: str,
    item_id: int,
    file_path: str,
    description: Optional[str] = None
) -> Dict[str, Any]:
    """Upload a local file to an issue, user story or task.

    Relative paths are looked up under the working directory, the home
    directory, ~/Desktop and ~/Downloads, in that order.

    Raises:
        AttachmentFileNotFoundError: If the file is in none of those places
    """
    item = item_reference(item_type, item_id)
    resolved = resolve_upload_path(file_path)
    logger.info(f"Uploading file from path: {resolved}")

    return await taiga_upload_attachment(
        ctx,
        item_type=item.kind.value,
        item_id=item.id,
        file_data=read_file_as_base64(resolved),
        file_name=resolved.name,
        mime_type=detect_mime_type(resolved.name),
        description=description,
    )


async def taiga_list_attachments(
    ctx: Context,
    item_type: str,
    item_id: int,
    project: Optional[int] = None
) -> List[Dict[str, Any]]:
    """List the attachments of an issue, user story or task."""
    item = item_reference(item_type, item_id)
    logger.info(f"Listing attachments for {item.kind.value} #{item.id}")

    params: Dict[str, Any] = {"object_id": item.id}
    if project is not None:
        params["project"] = project

    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return taiga_client.get(item.attachment_endpoint, params=params).data or []


def _download_destination(download_path: Optional[str], filename: str) -> Path:
    if not download_path:
        return Path(os.getcwd()) / filename
    destination = Path(download_path).expanduser()
    if destination.is_dir():
        return destination / filename
    return destination


async def taiga_download_attachment(
    ctx: Context,
    attachment_id: int,
    download_path: Optional[str] = None,
    item_type: str = "issue"
) -> Dict[str, Any]:
    """Download an attachment to local disk.

    Args:
        ctx: MCP context with Taiga client
        attachment_id: Attachment ID
        download_path: Target file or directory; the working directory when omitted
        item_type: Kind of item the attachment belongs to (default "issue")

    Returns:
        {"filename", "saved_path", "size"}
    """
    endpoint = ATTACHMENT_ENDPOINTS[parse_item_kind(item_type)]
    logger.info(f"Downloading attachment {attachment_id}")

    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    metadata = taiga_client.get(f"{endpoint}/{attachment_id}").data
    try:
        attachment = Attachment.model_validate(metadata)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Unexpected metadata for attachment {attachment_id}",
            details={"attachment_id": attachment_id, "errors": e.errors()}
        ) from e

    url = attachment.url
    if not url:
        raise ValidationError(
            f"Attachment {attachment_id} has no download URL",
            details={"attachment_id": attachment_id}
        )

    filename = attachment.name or f"attachment_{attachment_id}"
    destination = _download_destination(download_path, filename)

    response = taiga_client.get(url, stream=True).data
    written = write_stream(response, destination)
    logger.info(f"Saved attachment {attachment_id} to {destination} ({written} bytes)")

    return DownloadResult(filename=filename, saved_path=str(destination), size=written).model_dump()


async def taiga_delete_attachment(
    ctx: Context,
    attachment_id: int,
    item_type: str = "issue"
) -> Dict[str, Any]:
    """Delete an attachment. This cannot be undone."""
    endpoint = ATTACHMENT_ENDPOINTS[parse_item_kind(item_type)]
    logger.info(f"Deleting attachment {attachment_id}")

    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    taiga_client.delete(f"{endpoint}/{attachment_id}")
    return {"success": True, "attachment_id": attachment_id}
