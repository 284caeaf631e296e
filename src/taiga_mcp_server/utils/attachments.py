"""Attachment Pipeline Utilities

Turns caller-supplied file content (base64 text, possibly a data URI, or a
path on the local disk) into a multipart upload, and streams downloads back
to disk.
"""

import base64
import binascii
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union, TYPE_CHECKING

import requests

from ..constants import MIME_TYPES, DEFAULT_CONTENT_TYPE, HOME_SEARCH_SUBDIRS
from ..models.attachment import AttachmentPayload
from ..models.item import ItemReference
from .errors import (
    TaigaError,
    ValidationError,
    InvalidPayloadError,
    AttachmentFileNotFoundError,
)

if TYPE_CHECKING:
    from ..client import TaigaClient

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024

PathLike = Union[str, os.PathLike]


def detect_mime_type(file_name: str) -> str:
    """Infer a content type from the file extension.

    Unknown or missing extensions map to application/octet-stream.
    """
    if not file_name or "." not in file_name:
        return DEFAULT_CONTENT_TYPE
    extension = file_name.rsplit(".", 1)[-1].lower()
    return MIME_TYPES.get(extension, DEFAULT_CONTENT_TYPE)


def strip_data_uri(file_data: str) -> str:
    """Drop a leading ``data:<mime>;base64,`` header if present."""
    if "," in file_data:
        return file_data.split(",", 1)[1]
    return file_data


def decode_base64_payload(file_data: Any) -> bytes:
    """Decode base64 text (optionally a data URI) to bytes.

    Whitespace and missing padding are tolerated.

    Raises:
        ValidationError: If file_data is not a non-empty string
        InvalidPayloadError: If the text is not valid base64
    """
    if not isinstance(file_data, str) or not file_data:
        raise ValidationError("Invalid file data: file_data must be a non-empty base64 encoded string")

    encoded = "".join(strip_data_uri(file_data).split())
    encoded += "=" * (-len(encoded) % 4)

    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidPayloadError(
            f"Invalid base64 data: {e}",
            details={"length": len(file_data)}
        ) from e


def candidate_paths(
    file_path: str,
    cwd: Optional[PathLike] = None,
    home: Optional[PathLike] = None
) -> List[Path]:
    """Locations probed for an upload path, in priority order.

    An absolute path (after ``~`` expansion) is its own only candidate. A
    relative path is looked up under the working directory, the home
    directory, then home/Desktop and home/Downloads.
    """
    path = Path(file_path).expanduser()
    if path.is_absolute():
        return [path]

    base_cwd = Path(cwd) if cwd is not None else Path.cwd()
    base_home = Path(home) if home is not None else Path.home()

    candidates = [base_cwd / path, base_home / path]
    candidates.extend(base_home / subdir / path for subdir in HOME_SEARCH_SUBDIRS)
    return [Path(os.path.abspath(candidate)) for candidate in candidates]


def resolve_upload_path(
    file_path: str,
    cwd: Optional[PathLike] = None,
    home: Optional[PathLike] = None
) -> Path:
    """Find the file a caller meant to upload.

    The first existing candidate wins.

    Raises:
        ValidationError: If file_path is empty
        AttachmentFileNotFoundError: If no candidate exists; lists every path tried
    """
    if not isinstance(file_path, str) or not file_path.strip():
        raise ValidationError(f"Invalid file path: {file_path!r}")

    candidates = candidate_paths(file_path, cwd=cwd, home=home)
    for candidate in candidates:
        if candidate.is_file():
            logger.debug(f"Resolved upload path {file_path!r} to {candidate}")
            return candidate

    raise AttachmentFileNotFoundError(file_path, [str(c) for c in candidates])


def read_file_as_base64(path: PathLike) -> str:
    """Read a whole file and return its content as base64 text."""
    return base64.b64encode(Path(path).read_bytes()).decode("ascii")


def lookup_owning_project(client: "TaigaClient", item: ItemReference) -> Optional[int]:
    """Best-effort lookup of the project that owns an item.

    Returns None, with a warning logged, when the item can't be read or has
    no project; the upload goes ahead without it.
    """
    try:
        response = client.get(item.path)
    except (TaigaError, requests.exceptions.RequestException) as e:
        logger.warning(f"Could not look up project for {item.kind.value} #{item.id}: {e}")
        return None

    data = response.data if isinstance(response.data, dict) else {}
    project = data.get("project")
    if isinstance(project, dict):
        project = project.get("id")
    if project is None:
        logger.warning(f"{item.kind.value} #{item.id} has no project; uploading without it")
        return None
    if isinstance(project, int) and not isinstance(project, bool):
        return project
    if isinstance(project, str) and project.strip().isdigit():
        return int(project)
    logger.warning(f"{item.kind.value} #{item.id} has unusable project {project!r}; uploading without it")
    return None


def build_multipart(payload: AttachmentPayload) -> Tuple[Dict[str, str], Dict[str, Tuple[str, bytes, str]]]:
    """Assemble the form fields and file part for an attachment upload.

    Returns:
        ``(data, files)`` suitable for ``requests`` multipart encoding
    """
    data = {"object_id": str(payload.item.id)}
    if payload.description:
        data["description"] = payload.description
    if payload.project is not None:
        data["project"] = str(payload.project)

    files = {"attached_file": (payload.file_name, payload.content, payload.content_type)}
    return data, files


def upload_payload(client: "TaigaClient", payload: AttachmentPayload) -> Dict[str, Any]:
    """POST a materialized attachment to the owning item's attachment endpoint.

    No size cap is applied locally; an oversize body comes back from Taiga as
    PayloadTooLargeError.
    """
    data, files = build_multipart(payload)
    logger.info(
        f"Uploading {payload.file_name} ({payload.size} bytes, {payload.content_type}) "
        f"to {payload.item.kind.value} #{payload.item.id}"
    )
    response = client.post(payload.item.attachment_endpoint, data=data, files=files)
    return response.data


def write_stream(response: requests.Response, destination: PathLike) -> int:
    """Write a streamed response body to disk and return the bytes written.

    Only returns once the file is fully written and closed; any OS error
    while writing propagates.
    """
    written = 0
    try:
        with open(destination, "wb") as handle:
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    handle.write(chunk)
                    written += len(chunk)
    finally:
        response.close()
    return written
