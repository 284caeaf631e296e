"""Taiga MCP Server - Read Operations Tools

This module contains all read-only MCP tools for Taiga:
- Projects, members and per-project option lists (statuses, priorities, ...)
- User stories, issues, sprints (milestones), epics and wiki pages

Listings go through the pagination engine and return every item.
"""
import asyncio
import logging
from typing import Optional, Dict, Any, List, Union

from mcp.server.fastmcp import Context

from ..constants import Endpoints
from ..utils.pagination import fetch_all_pages
from ..utils.validation import resolve_project, resolve_project_id, resolve_wiki_page_id, is_numeric_id

logger = logging.getLogger(__name__)


def list_all(client, endpoint: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Fetch every page of a listing endpoint."""
    def fetch_page(page_params: Dict[str, Any]):
        return client.get(endpoint, params=page_params)

    return fetch_all_pages(fetch_page, initial_params=params)


def _project_options(ctx: Context, endpoint: str, project: Union[int, str]) -> List[Dict[str, Any]]:
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)
    return taiga_client.get(endpoint, params={"project": project_id}).data


# ============================================================================
# Users and projects
# ============================================================================

async def taiga_get_current_user(ctx: Context) -> Dict[str, Any]:
    """Get the authenticated user's profile."""
    logger.info("Getting current user")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return taiga_client.get(Endpoints.USERS_ME).data


async def taiga_list_projects(ctx: Context) -> List[Dict[str, Any]]:
    """List every project the authenticated user is a member of.

    Args:
        ctx: MCP context with Taiga client

    Returns:
        All member projects, across all pages
    """
    logger.info("Listing projects")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]

    current_user = taiga_client.get(Endpoints.USERS_ME).data
    projects = list_all(taiga_client, Endpoints.PROJECTS, {"member": current_user["id"]})
    logger.info(f"Found {len(projects)} projects for user {current_user['id']}")
    return projects


async def taiga_get_project(ctx: Context, project: Union[int, str]) -> Dict[str, Any]:
    """Get a project by numeric ID or slug."""
    logger.info(f"Getting project: {project}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return resolve_project(taiga_client, project)


async def taiga_get_project_members(ctx: Context, project: Union[int, str]) -> List[Dict[str, Any]]:
    """List memberships of a project (used to find assignees)."""
    logger.info(f"Getting project members: {project}")
    return _project_options(ctx, Endpoints.MEMBERSHIPS, project)


# ============================================================================
# User stories and tasks
# ============================================================================

async def taiga_list_user_stories(ctx: Context, project: Union[int, str]) -> List[Dict[str, Any]]:
    """List all user stories in a project."""
    logger.info(f"Listing user stories: project={project}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)
    return list_all(taiga_client, Endpoints.USER_STORIES, {"project": project_id})


async def taiga_get_user_story(ctx: Context, user_story_id: int) -> Dict[str, Any]:
    """Get a user story by ID."""
    logger.info(f"Getting user story: {user_story_id}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return taiga_client.get(f"{Endpoints.USER_STORIES}/{user_story_id}").data


async def taiga_get_user_story_statuses(ctx: Context, project: Union[int, str]) -> List[Dict[str, Any]]:
    """List user story statuses for a project."""
    return _project_options(ctx, Endpoints.USER_STORY_STATUSES, project)


async def taiga_get_task_statuses(ctx: Context, project: Union[int, str]) -> List[Dict[str, Any]]:
    """List task statuses for a project."""
    return _project_options(ctx, Endpoints.TASK_STATUSES, project)


# ============================================================================
# Issues
# ============================================================================

async def taiga_list_issues(ctx: Context, project: Union[int, str]) -> List[Dict[str, Any]]:
    """List all issues in a project."""
    logger.info(f"Listing issues: project={project}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)
    return list_all(taiga_client, Endpoints.ISSUES, {"project": project_id})


async def taiga_get_issue(ctx: Context, issue_id: int) -> Dict[str, Any]:
    """Get an issue by ID."""
    logger.info(f"Getting issue: {issue_id}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return taiga_client.get(f"{Endpoints.ISSUES}/{issue_id}").data


async def taiga_get_issue_by_ref(ctx: Context, ref: int, project: Union[int, str]) -> Dict[str, Any]:
    """Get an issue by its project-scoped reference number (the #123 shown in Taiga)."""
    logger.info(f"Getting issue by ref: ref={ref}, project={project}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)
    return taiga_client.get(Endpoints.ISSUE_BY_REF, params={"ref": ref, "project": project_id}).data


async def taiga_get_issue_statuses(ctx: Context, project: Union[int, str]) -> List[Dict[str, Any]]:
    return _project_options(ctx, Endpoints.ISSUE_STATUSES, project)


async def taiga_get_issue_priorities(ctx: Context, project: Union[int, str]) -> List[Dict[str, Any]]:
    return _project_options(ctx, Endpoints.PRIORITIES, project)


async def taiga_get_issue_severities(ctx: Context, project: Union[int, str]) -> List[Dict[str, Any]]:
    return _project_options(ctx, Endpoints.SEVERITIES, project)


async def taiga_get_issue_types(ctx: Context, project: Union[int, str]) -> List[Dict[str, Any]]:
    return _project_options(ctx, Endpoints.ISSUE_TYPES, project)


# ============================================================================
# Sprints (milestones)
# ============================================================================

async def taiga_list_milestones(ctx: Context, project: Union[int, str]) -> List[Dict[str, Any]]:
    """List all sprints in a project."""
    logger.info(f"Listing milestones: project={project}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)
    return list_all(taiga_client, Endpoints.MILESTONES, {"project": project_id})


async def taiga_get_milestone(ctx: Context, milestone_id: int) -> Dict[str, Any]:
    """Get a sprint by ID, including its user stories."""
    logger.info(f"Getting milestone: {milestone_id}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return taiga_client.get(f"{Endpoints.MILESTONES}/{milestone_id}").data


async def taiga_get_milestone_stats(ctx: Context, milestone_id: int) -> Dict[str, Any]:
    """Get progress statistics for a sprint."""
    logger.info(f"Getting milestone stats: {milestone_id}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return taiga_client.get(f"{Endpoints.MILESTONES}/{milestone_id}/stats").data


async def taiga_get_milestone_with_stats(ctx: Context, milestone_id: int) -> Dict[str, Any]:
    """Get a sprint and its statistics.

    The two reads are independent, so they are issued concurrently.

    Returns:
        {"milestone": {...}, "stats": {...}}
    """
    logger.info(f"Getting milestone with stats: {milestone_id}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]

    milestone, stats = await asyncio.gather(
        asyncio.to_thread(taiga_client.get, f"{Endpoints.MILESTONES}/{milestone_id}"),
        asyncio.to_thread(taiga_client.get, f"{Endpoints.MILESTONES}/{milestone_id}/stats"),
    )
    return {"milestone": milestone.data, "stats": stats.data}


async def taiga_get_issues_by_milestone(
    ctx: Context,
    project: Union[int, str],
    milestone_id: int
) -> Dict[str, Any]:
    """Get a sprint together with every issue assigned to it.

    Returns:
        {"milestone": {...}, "issues": [...]}
    """
    logger.info(f"Getting issues by milestone: project={project}, milestone={milestone_id}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)

    milestone, issues = await asyncio.gather(
        asyncio.to_thread(taiga_client.get, f"{Endpoints.MILESTONES}/{milestone_id}"),
        asyncio.to_thread(
            list_all, taiga_client, Endpoints.ISSUES, {"project": project_id, "milestone": milestone_id}
        ),
    )
    return {"milestone": milestone.data, "issues": issues}


# ============================================================================
# Epics and wiki
# ============================================================================

async def taiga_list_epics(ctx: Context, project: Union[int, str]) -> List[Dict[str, Any]]:
    """List all epics in a project."""
    logger.info(f"Listing epics: project={project}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)
    return list_all(taiga_client, Endpoints.EPICS, {"project": project_id})


async def taiga_get_epic(ctx: Context, epic_id: int) -> Dict[str, Any]:
    """Get an epic by ID."""
    logger.info(f"Getting epic: {epic_id}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    return taiga_client.get(f"{Endpoints.EPICS}/{epic_id}").data


async def taiga_list_wiki_pages(ctx: Context, project: Union[int, str]) -> List[Dict[str, Any]]:
    """List all wiki pages in a project."""
    logger.info(f"Listing wiki pages: project={project}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]
    project_id = resolve_project_id(taiga_client, project)
    return list_all(taiga_client, Endpoints.WIKI, {"project": project_id})


async def taiga_get_wiki_page(
    ctx: Context,
    project: Union[int, str],
    identifier: Union[int, str]
) -> Dict[str, Any]:
    """Get a wiki page by numeric ID or by slug within a project."""
    logger.info(f"Getting wiki page: project={project}, identifier={identifier}")
    taiga_client = ctx.request_context.lifespan_context["taiga_client"]

    if is_numeric_id(identifier):
        return taiga_client.get(f"{Endpoints.WIKI}/{int(identifier)}").data

    project_id = resolve_project_id(taiga_client, project)
    page_id = resolve_wiki_page_id(taiga_client, project_id, identifier)
    return taiga_client.get(f"{Endpoints.WIKI}/{page_id}").data
