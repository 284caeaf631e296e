"""Taiga MCP Server - Write Operations Tools

This module contains all write operation MCP tools for Taiga:
- Create user stories, tasks, issues, sprints, epics and wiki pages
- Version-guarded updates (issues, epics, wiki pages, sprint and epic linkage)
- Batch creation with abort-on-failure behavior
"""
from typing import Optional, Dict, Any, List, Union, Callable, Awaitable
import logging

from mcp.server.fastmcp import Context
from ..constants import Endpoints, MAX_BATCH_SIZE
from ..models.item import ItemCreate
from ..utils.errors import ValidationError
from ..utils.validation import resolve_project_id, resolve_wiki_page_id, find_id_by_name, is_numeric_id
from ..utils.versioning import versioned_update

logger = logging.getLogger(__name__)


def _create(taiga_client, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """POST a new resource. Never retried."""
    return taiga_client.post(endpoint, json=payload).data


def _option_id(taiga_client, endpoint: str, project_id: int, value: Optional[Union[int, str]]) -> Optional[int]:
    """Accept an option as an ID or as a name looked up in the project's options."""
    if value is None or value == "":
        return None
    if is_numeric_id(value):
        return int(value)
    options = taiga_client.get(endpoint, params={"project": project_id}).data
    return find_id_by_name(options, value)


def _merge_fields(fields: Optional[Dict[str, Any]], additional_fields: Dict[str, Any]) -> Dict[str, Any]:
    all_fields: Dict[str, Any] = {}
    if fields:
        all_fields.update(fields)
    if additional_fields:
        all_fields.update(additional_fields)
    return all_fields


# ============================================================================
# Creation
# ============================================================================

async def taiga_create_user_story(
    ctx: Context,
    project: Union[int, str],
    subject: str,
    description: Optional[str] = None,
    status: Optional[Union[int, str]] = None,
    tags: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Create a user story.

    Args:
        ctx: MCP context with Taiga client
        project: Project ID or slug
        subject: User story title
        description: Optional description
        status: Optional status ID or name (e.g. "In progress")
        tags: Optional tags

    Returns:
        Created user story
    """
    logger.info(f"Creating user story: project={project}, subject='{subject}'")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)

    payload = ItemCreate(project=project_id, subject=subject, description=description, tags=tags).to_payload()
    status_id = _option_id(taiga_client, Endpoints.USER_STORY_STATUSES, project_id, status)
    if status_id is not None:
        payload["status"] = status_id

    created = _create(taiga_client, Endpoints.USER_STORIES, payload)
    logger.info(f"Created user story: id={created.get('id')}, ref={created.get('ref')}")
    return created


async def taiga_create_task(
    ctx: Context,
    project: Union[int, str],
    subject: str,
    description: Optional[str] = None,
    user_story: Optional[int] = None,
    status: Optional[Union[int, str]] = None,
    tags: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Create a task, optionally under a user story."""
    logger.info(f"Creating task: project={project}, subject='{subject}', user_story={user_story}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)

    payload = ItemCreate(project=project_id, subject=subject, description=description, tags=tags).to_payload()
    if user_story is not None:
        payload["user_story"] = user_story
    status_id = _option_id(taiga_client, Endpoints.TASK_STATUSES, project_id, status)
    if status_id is not None:
        payload["status"] = status_id

    created = _create(taiga_client, Endpoints.TASKS, payload)
    logger.info(f"Created task: id={created.get('id')}, ref={created.get('ref')}")
    return created


async def taiga_create_issue(
    ctx: Context,
    project: Union[int, str],
    subject: str,
    description: Optional[str] = None,
    status: Optional[Union[int, str]] = None,
    priority: Optional[Union[int, str]] = None,
    severity: Optional[Union[int, str]] = None,
    type: Optional[Union[int, str]] = None,
    assigned_to: Optional[int] = None,
    tags: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Create an issue.

    Status, priority, severity and type may each be given as an ID or as the
    option's name in the project.
    """
    logger.info(f"Creating issue: project={project}, subject='{subject}'")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)

    payload = ItemCreate(project=project_id, subject=subject, description=description, tags=tags).to_payload()
    lookups = {
        "status": (Endpoints.ISSUE_STATUSES, status),
        "priority": (Endpoints.PRIORITIES, priority),
        "severity": (Endpoints.SEVERITIES, severity),
        "type": (Endpoints.ISSUE_TYPES, type),
    }
    for field_name, (endpoint, value) in lookups.items():
        option_id = _option_id(taiga_client, endpoint, project_id, value)
        if option_id is not None:
            payload[field_name] = option_id
    if assigned_to is not None:
        payload["assigned_to"] = assigned_to

    logger.debug(f"Issue payload fields: {sorted(payload)}")
    created = _create(taiga_client, Endpoints.ISSUES, payload)
    logger.info(f"Created issue: id={created.get('id')}, ref={created.get('ref')}")
    return created


async def taiga_create_milestone(
    ctx: Context,
    project: Union[int, str],
    name: str,
    estimated_start: Optional[str] = None,
    estimated_finish: Optional[str] = None
) -> Dict[str, Any]:
    """Create a sprint. Dates are YYYY-MM-DD."""
    logger.info(f"Creating milestone: project={project}, name='{name}'")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)

    payload = {"project": project_id, "name": name}
    if estimated_start:
        payload["estimated_start"] = estimated_start
    if estimated_finish:
        payload["estimated_finish"] = estimated_finish

    return _create(taiga_client, Endpoints.MILESTONES, payload)


async def taiga_create_epic(
    ctx: Context,
    project: Union[int, str],
    subject: str,
    description: Optional[str] = None,
    color: Optional[str] = None,
    tags: Optional[List[str]] = None
) -> Dict[str, Any]:
    """Create an epic. ``color`` is a hex code such as #FF5733."""
    logger.info(f"Creating epic: project={project}, subject='{subject}'")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)

    payload = ItemCreate(project=project_id, subject=subject, description=description, tags=tags).to_payload()
    if color:
        payload["color"] = color

    return _create(taiga_client, Endpoints.EPICS, payload)


async def taiga_create_wiki_page(
    ctx: Context,
    project: Union[int, str],
    slug: str,
    content: str,
    watchers: Optional[List[int]] = None
) -> Dict[str, Any]:
    """Create a wiki page. Content is Markdown."""
    logger.info(f"Creating wiki page: project={project}, slug='{slug}'")
    if not slug or not slug.strip():
        raise ValidationError("Wiki page slug is required")

    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)

    payload: Dict[str, Any] = {"project": project_id, "slug": slug.strip(), "content": content}
    if watchers is not None:
        payload["watchers"] = watchers

    return _create(taiga_client, Endpoints.WIKI, payload)


# ============================================================================
# Version-guarded updates
# ============================================================================

async def taiga_update_issue(
    ctx: Context,
    issue_id: int,
    fields: Optional[Dict[str, Any]] = None,
    **additional_fields
) -> Dict[str, Any]:
    """Update an issue, guarded by its current version.

    Args:
        ctx: MCP context with Taiga client
        issue_id: Issue ID to update
        fields: Dictionary of fields to update (alternative to kwargs)
        **additional_fields: Fields to update as keyword arguments

    Returns:
        Updated issue

    Raises:
        ValidationError: If no fields provided
        VersionConflictError: If the issue was modified concurrently
        NotFoundError: If issue doesn't exist

    Example:
        await taiga_update_issue(ctx=context, issue_id=42, status=2)
    """
    all_fields = _merge_fields(fields, additional_fields)
    logger.info(f"Updating issue: issue_id={issue_id}, fields={list(all_fields.keys())}")

    if not all_fields:
        raise ValidationError(
            "At least one field must be provided for update",
            details={"issue_id": issue_id}
        )

    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return versioned_update(taiga_client, Endpoints.ISSUES, issue_id, all_fields)


async def taiga_update_issue_status(
    ctx: Context,
    issue_id: int,
    status: Union[int, str]
) -> Dict[str, Any]:
    """Change an issue's status, given as a status ID or name."""
    logger.info(f"Updating issue status: issue_id={issue_id}, status={status}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]

    if is_numeric_id(status):
        status_id = int(status)
    else:
        issue = taiga_client.get(f"{Endpoints.ISSUES}/{issue_id}").data
        status_id = _option_id(taiga_client, Endpoints.ISSUE_STATUSES, issue["project"], status)
        if status_id is None:
            raise ValidationError("Status is required", details={"issue_id": issue_id})

    return versioned_update(taiga_client, Endpoints.ISSUES, issue_id, {"status": status_id})


async def taiga_assign_issue(
    ctx: Context,
    issue_id: int,
    assigned_to: Optional[int]
) -> Dict[str, Any]:
    """Assign an issue to a user ID; None unassigns it."""
    logger.info(f"Assigning issue: issue_id={issue_id}, assigned_to={assigned_to}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return versioned_update(taiga_client, Endpoints.ISSUES, issue_id, {"assigned_to": assigned_to})


async def taiga_add_issue_to_milestone(
    ctx: Context,
    issue_id: int,
    milestone_id: Optional[int]
) -> Dict[str, Any]:
    """Move an issue into a sprint; None removes it from its sprint."""
    logger.info(f"Adding issue to milestone: issue_id={issue_id}, milestone={milestone_id}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return versioned_update(taiga_client, Endpoints.ISSUES, issue_id, {"milestone": milestone_id})


async def taiga_assign_user_story_to_milestone(
    ctx: Context,
    user_story_id: int,
    milestone_id: Optional[int]
) -> Dict[str, Any]:
    """Move a user story into a sprint; None removes it from its sprint."""
    logger.info(f"Assigning user story to milestone: user_story={user_story_id}, milestone={milestone_id}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return versioned_update(taiga_client, Endpoints.USER_STORIES, user_story_id, {"milestone": milestone_id})


async def taiga_update_epic(
    ctx: Context,
    epic_id: int,
    fields: Optional[Dict[str, Any]] = None,
    **additional_fields
) -> Dict[str, Any]:
    """Update an epic (subject, description, color, status, tags, ...)."""
    all_fields = _merge_fields(fields, additional_fields)
    logger.info(f"Updating epic: epic_id={epic_id}, fields={list(all_fields.keys())}")

    if not all_fields:
        raise ValidationError(
            "At least one field must be provided for update",
            details={"epic_id": epic_id}
        )

    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return versioned_update(taiga_client, Endpoints.EPICS, epic_id, all_fields)


async def taiga_link_story_to_epic(ctx: Context, user_story_id: int, epic_id: int) -> Dict[str, Any]:
    """Link a user story to an epic."""
    logger.info(f"Linking user story {user_story_id} to epic {epic_id}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return versioned_update(taiga_client, Endpoints.USER_STORIES, user_story_id, {"epic": epic_id})


async def taiga_unlink_story_from_epic(ctx: Context, user_story_id: int) -> Dict[str, Any]:
    """Remove a user story's epic link."""
    logger.info(f"Unlinking user story {user_story_id} from its epic")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return versioned_update(taiga_client, Endpoints.USER_STORIES, user_story_id, {"epic": None})


async def taiga_update_wiki_page(
    ctx: Context,
    project: Union[int, str],
    identifier: Union[int, str],
    content: Optional[str] = None,
    watchers: Optional[List[int]] = None
) -> Dict[str, Any]:
    """Update a wiki page's content and/or watchers. ``identifier`` is an ID or slug."""
    logger.info(f"Updating wiki page: project={project}, identifier={identifier}")

    changes: Dict[str, Any] = {}
    if content is not None:
        changes["content"] = content
    if watchers is not None:
        changes["watchers"] = watchers
    if not changes:
        raise ValidationError(
            "At least one of content or watchers must be provided",
            details={"identifier": identifier}
        )

    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = None if is_numeric_id(identifier) else resolve_project_id(taiga_client, project)
    page_id = resolve_wiki_page_id(taiga_client, project_id, identifier)
    return versioned_update(taiga_client, Endpoints.WIKI, page_id, changes)


async def taiga_delete_wiki_page(
    ctx: Context,
    project: Union[int, str],
    identifier: Union[int, str]
) -> Dict[str, Any]:
    """Delete a wiki page. This cannot be undone."""
    logger.info(f"Deleting wiki page: project={project}, identifier={identifier}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = None if is_numeric_id(identifier) else resolve_project_id(taiga_client, project)
    page_id = resolve_wiki_page_id(taiga_client, project_id, identifier)

    taiga_client.delete(f"{Endpoints.WIKI}/{page_id}")
    logger.info(f"Deleted wiki page {page_id}")
    return {"success": True, "wiki_page_id": page_id}


async def taiga_watch_wiki_page(
    ctx: Context,
    project: Union[int, str],
    identifier: Union[int, str],
    watch: bool = True
) -> Dict[str, Any]:
    """Watch (or unwatch) a wiki page for change notifications."""
    logger.info(f"{'Watching' if watch else 'Unwatching'} wiki page: project={project}, identifier={identifier}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = None if is_numeric_id(identifier) else resolve_project_id(taiga_client, project)
    page_id = resolve_wiki_page_id(taiga_client, project_id, identifier)

    action = "watch" if watch else "unwatch"
    taiga_client.post(f"{Endpoints.WIKI}/{page_id}/{action}")
    return {"success": True, "wiki_page_id": page_id, "watching": watch}


# ============================================================================
# Batch creation
# ============================================================================

async def _batch_create(
    ctx: Context,
    items: List[Dict[str, Any]],
    create: Callable[..., Awaitable[Dict[str, Any]]],
    label: str
) -> Dict[str, Any]:
    """Create items one at a time, stopping at the first failure.

    Items created before a failure are NOT rolled back.
    """
    logger.info(f"Batch creating {len(items)} {label}")

    if len(items) > MAX_BATCH_SIZE:
        raise ValueError(
            f"Batch size ({len(items)}) exceeds maximum of {MAX_BATCH_SIZE} items. "
            f"Please split into multiple batches."
        )

    created_items = []
    failed_item = None

    for index, item_spec in enumerate(items):
        try:
            if not item_spec.get("subject"):
                raise ValueError(f"Item at index {index} missing required 'subject' field")
            logger.debug(f"Creating batch {label} {index + 1}/{len(items)}: '{item_spec['subject']}'")
            created_items.append(await create(ctx=ctx, **item_spec))
        except Exception as e:
            logger.error(f"Batch failed at index {index}: {e}")
            failed_item = {
                "index": index,
                "error": str(e),
                "item_data": item_spec
            }
            break

    result = {
        "total": len(items),
        "succeeded": len(created_items),
        "failed": 1 if failed_item else 0,
        "created_items": created_items,
        "errors": [failed_item] if failed_item else []
    }

    logger.info(f"Batch create complete: {result['succeeded']}/{result['total']} succeeded")
    if failed_item:
        logger.warning(f"Batch aborted at item {failed_item['index']} due to: {failed_item['error']}")

    return result


async def taiga_batch_create_issues(ctx: Context, items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Create up to 100 issues. Each item takes the taiga_create_issue arguments."""
    return await _batch_create(ctx, items, taiga_create_issue, "issues")


async def taiga_batch_create_user_stories(ctx: Context, items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Create up to 100 user stories. Each item takes the taiga_create_user_story arguments."""
    return await _batch_create(ctx, items, taiga_create_user_story, "user stories")


async def taiga_batch_create_tasks(ctx: Context, items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Create up to 100 tasks. Each item takes the taiga_create_task arguments."""
    return await _batch_create(ctx, items, taiga_create_task, "tasks")
