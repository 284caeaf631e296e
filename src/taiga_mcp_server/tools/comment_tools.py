"""Taiga MCP Server - Comment Tools

Comments in Taiga live in an item's history:
- Adding one is a version-guarded update of the item carrying ``comment``
- Listing, editing and deleting go through ``/history/{object_type}/{id}``
"""
import logging
from typing import Dict, Any, List, Union

from mcp.server.fastmcp import Context
from ..constants import Endpoints, ItemKind
from ..utils.errors import (
    TaigaError,
    ValidationError,
    VersionConflictError,
    PermissionError,
    NotFoundError,
)
from ..utils.validation import item_reference
from ..utils.versioning import versioned_item_update

logger = logging.getLogger(__name__)


def _require_text(comment: str) -> str:
    if not isinstance(comment, str) or not comment.strip():
        raise ValidationError("Comment text is required")
    return comment


def _history_path(item_type: Union[str, ItemKind], item_id: int) -> str:
    item = item_reference(item_type, item_id)
    return f"{Endpoints.HISTORY}/{item.history_object_type}/{item.id}"


async def taiga_add_comment(
    ctx: Context,
    item_type: str,
    item_id: int,
    comment: str
) -> Dict[str, Any]:
    """Add a comment to an issue, user story or task.

    Args:
        ctx: MCP context with Taiga client
        item_type: "issue", "user_story" or "task"
        item_id: Item ID
        comment: Comment text (Markdown)

    Returns:
        The updated item

    Raises:
        ValidationError: If the item reference or comment is invalid
        VersionConflictError: If the item was modified concurrently
        PermissionError: If the user cannot comment on the item
        NotFoundError: If the item doesn't exist
    """
    item = item_reference(item_type, item_id)
    _require_text(comment)
    logger.info(f"Adding comment to {item.kind.value} #{item.id}")

    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    try:
        return versioned_item_update(taiga_client, item, {"comment": comment})
    except VersionConflictError as e:
        raise VersionConflictError(
            "Failed to add comment: version parameter is invalid. "
            "The item may have been modified by another user.",
            details=e.details
        ) from e
    except PermissionError as e:
        raise PermissionError(
            "Failed to add comment: permission denied. Check your access rights.",
            details=e.details
        ) from e
    except NotFoundError as e:
        raise NotFoundError(
            f"Failed to add comment: {item.kind.value} #{item.id} not found.",
            details=e.details
        ) from e
    except ValidationError as e:
        raise ValidationError(
            f"Failed to add comment: bad request - {e.message}",
            details=e.details
        ) from e


async def taiga_get_item_history(ctx: Context, item_type: str, item_id: int) -> List[Dict[str, Any]]:
    """Get the full change history of an issue, user story or task."""
    path = _history_path(item_type, item_id)
    logger.info(f"Getting history: {path}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return taiga_client.get(path).data or []


async def taiga_list_comments(ctx: Context, item_type: str, item_id: int) -> List[Dict[str, Any]]:
    """List the comments on an item, oldest first as returned by Taiga.

    Returns:
        History entries that carry a non-empty, non-deleted comment
    """
    history = await taiga_get_item_history(ctx, item_type, item_id)
    comments = [
        entry for entry in history
        if (entry.get("comment") or "").strip() and not entry.get("delete_comment_date")
    ]
    logger.info(f"Found {len(comments)} comments on {item_type} #{item_id}")
    return comments


async def taiga_edit_comment(
    ctx: Context,
    item_type: str,
    item_id: int,
    comment_id: str,
    comment: str
) -> Dict[str, Any]:
    """Replace the text of an existing comment.

    Args:
        item_type: "issue", "user_story" or "task"
        item_id: ID of the item the comment belongs to
        comment_id: History entry ID of the comment
        comment: New comment text
    """
    path = _history_path(item_type, item_id)
    _require_text(comment)
    if not comment_id:
        raise ValidationError("Comment ID is required")

    logger.info(f"Editing comment {comment_id} on {item_type} #{item_id}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    try:
        taiga_client.post(f"{path}/edit_comment", json={"comment": comment}, params={"id": comment_id})
    except TaigaError as e:
        logger.error(f"Failed to edit comment {comment_id}: {e}")
        raise

    return {"success": True, "comment_id": comment_id, "comment": comment}


async def taiga_delete_comment(
    ctx: Context,
    item_type: str,
    item_id: int,
    comment_id: str
) -> Dict[str, Any]:
    """Delete a comment. Taiga keeps the history entry but marks it deleted."""
    path = _history_path(item_type, item_id)
    if not comment_id:
        raise ValidationError("Comment ID is required")

    logger.info(f"Deleting comment {comment_id} on {item_type} #{item_id}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    try:
        taiga_client.post(f"{path}/delete_comment", params={"id": comment_id})
    except TaigaError as e:
        logger.error(f"Failed to delete comment {comment_id}: {e}")
        raise

    return {"success": True, "comment_id": comment_id}
