import sys
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from typing import Optional, Union, Any
import logging

from mcp.server.fastmcp import FastMCP, Context
from .client import TaigaClient
from .config import TaigaSettings
from .utils.errors import CredentialsError
from .tools import read_tools, write_tools, comment_tools, attachment_tools

# Configure basic logging FIRST
logging.basicConfig(level=logging.INFO, format='%(asctime)s - SERVER - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


@asynccontextmanager
async def taiga_lifespan(server: FastMCP) -> AsyncIterator[dict]:
    """
    Manages the TaigaClient lifecycle: reads settings from the environment,
    obtains a bearer token and yields the client to every tool call.
    """
    taiga_client = None
    try:
        settings = TaigaSettings.from_env()
        logger.info(f"Connecting to Taiga at {settings.api_url} (SSL verify: {settings.verify_ssl})")
        taiga_client = TaigaClient.from_settings(settings)
        logger.info("Successfully configured TaigaClient.")

        yield {"taiga_client": taiga_client}

    except CredentialsError as e:
        logger.error(f"Failed to obtain Taiga credentials: {e}")
        raise  # Re-raise to prevent server start
    except Exception as e:
        logger.error(f"Failed during TaigaClient initialization: {e}")
        raise
    finally:
        if taiga_client is not None:
            taiga_client.close()
        logger.info("Taiga lifespan context manager exiting.")


# Instantiate the FastMCP server with the lifespan manager
mcp = FastMCP(
    "Taiga MCP Server",
    lifespan=taiga_lifespan,
)

# --- Projects ---

@mcp.tool()
async def taiga_get_current_user(ctx: Context) -> dict:
    """Get the authenticated Taiga user's profile."""
    return await read_tools.taiga_get_current_user(ctx)


@mcp.tool()
async def taiga_list_projects(ctx: Context) -> list[dict]:
    """
    Lists every Taiga project the authenticated user is a member of.

    Returns:
        A list of dictionaries representing projects.
    """
    return await read_tools.taiga_list_projects(ctx)


@mcp.tool()
async def taiga_get_project(project: Union[int, str], ctx: Context) -> dict:
    """
    Retrieves a project by numeric ID or slug.

    Args:
        project: Project ID (e.g. 123) or slug (e.g. "my-project").
    """
    return await read_tools.taiga_get_project(ctx, project)


@mcp.tool()
async def taiga_get_project_members(project: Union[int, str], ctx: Context) -> list[dict]:
    """Lists the members of a project. Use the user IDs to assign work."""
    return await read_tools.taiga_get_project_members(ctx, project)


# --- User stories and tasks ---

@mcp.tool()
async def taiga_list_user_stories(project: Union[int, str], ctx: Context) -> list[dict]:
    """Lists all user stories in a project (every page)."""
    return await read_tools.taiga_list_user_stories(ctx, project)


@mcp.tool()
async def taiga_get_user_story(user_story_id: int, ctx: Context) -> dict:
    """Retrieves a user story by ID."""
    return await read_tools.taiga_get_user_story(ctx, user_story_id)


@mcp.tool()
async def taiga_get_user_story_statuses(project: Union[int, str], ctx: Context) -> list[dict]:
    """Lists the user story statuses available in a project."""
    return await read_tools.taiga_get_user_story_statuses(ctx, project)


@mcp.tool()
async def taiga_create_user_story(
    project: Union[int, str],
    subject: str,
    ctx: Context,
    description: Optional[str] = None,
    status: Optional[Union[int, str]] = None,
    tags: Optional[list[str]] = None
) -> dict:
    """
    Creates a user story.

    Args:
        project: Project ID or slug.
        subject: User story title.
        description: Optional description (Markdown).
        status: Optional status ID or name (e.g. "New").
        tags: Optional list of tags.
    """
    return await write_tools.taiga_create_user_story(ctx, project, subject, description, status, tags)


@mcp.tool()
async def taiga_assign_user_story_to_milestone(
    user_story_id: int,
    ctx: Context,
    milestone_id: Optional[int] = None
) -> dict:
    """Moves a user story into a sprint. Omit milestone_id to remove it from its sprint."""
    return await write_tools.taiga_assign_user_story_to_milestone(ctx, user_story_id, milestone_id)


@mcp.tool()
async def taiga_get_task_statuses(project: Union[int, str], ctx: Context) -> list[dict]:
    """Lists the task statuses available in a project."""
    return await read_tools.taiga_get_task_statuses(ctx, project)


@mcp.tool()
async def taiga_create_task(
    project: Union[int, str],
    subject: str,
    ctx: Context,
    description: Optional[str] = None,
    user_story: Optional[int] = None,
    status: Optional[Union[int, str]] = None,
    tags: Optional[list[str]] = None
) -> dict:
    """
    Creates a task, optionally under a user story.

    Args:
        project: Project ID or slug.
        subject: Task title.
        description: Optional description.
        user_story: Optional parent user story ID.
        status: Optional status ID or name.
        tags: Optional list of tags.
    """
    return await write_tools.taiga_create_task(ctx, project, subject, description, user_story, status, tags)


# --- Issues ---

@mcp.tool()
async def taiga_list_issues(project: Union[int, str], ctx: Context) -> list[dict]:
    """Lists all issues in a project (every page)."""
    return await read_tools.taiga_list_issues(ctx, project)


@mcp.tool()
async def taiga_get_issue(issue_id: int, ctx: Context) -> dict:
    """Retrieves an issue by ID."""
    return await read_tools.taiga_get_issue(ctx, issue_id)


@mcp.tool()
async def taiga_get_issue_by_ref(ref: int, project: Union[int, str], ctx: Context) -> dict:
    """Retrieves an issue by its reference number within a project (the #123 shown in Taiga)."""
    return await read_tools.taiga_get_issue_by_ref(ctx, ref, project)


@mcp.tool()
async def taiga_get_issue_statuses(project: Union[int, str], ctx: Context) -> list[dict]:
    """Lists the issue statuses available in a project."""
    return await read_tools.taiga_get_issue_statuses(ctx, project)


@mcp.tool()
async def taiga_get_issue_priorities(project: Union[int, str], ctx: Context) -> list[dict]:
    """Lists the issue priorities available in a project."""
    return await read_tools.taiga_get_issue_priorities(ctx, project)


@mcp.tool()
async def taiga_get_issue_severities(project: Union[int, str], ctx: Context) -> list[dict]:
    """Lists the issue severities available in a project."""
    return await read_tools.taiga_get_issue_severities(ctx, project)


@mcp.tool()
async def taiga_get_issue_types(project: Union[int, str], ctx: Context) -> list[dict]:
    """Lists the issue types available in a project."""
    return await read_tools.taiga_get_issue_types(ctx, project)


@mcp.tool()
async def taiga_create_issue(
    project: Union[int, str],
    subject: str,
    ctx: Context,
    description: Optional[str] = None,
    status: Optional[Union[int, str]] = None,
    priority: Optional[Union[int, str]] = None,
    severity: Optional[Union[int, str]] = None,
    type: Optional[Union[int, str]] = None,
    assigned_to: Optional[int] = None,
    tags: Optional[list[str]] = None
) -> dict:
    """
    Creates an issue.

    Status, priority, severity and type accept either an ID or the option's
    name as shown in the project (e.g. priority="High").

    Args:
        project: Project ID or slug.
        subject: Issue title.
        description: Optional description.
        status: Optional status ID or name.
        priority: Optional priority ID or name.
        severity: Optional severity ID or name.
        type: Optional issue type ID or name (e.g. "Bug").
        assigned_to: Optional assignee user ID.
        tags: Optional list of tags.
    """
    return await write_tools.taiga_create_issue(
        ctx, project, subject, description, status, priority, severity, type, assigned_to, tags
    )


@mcp.tool()
async def taiga_update_issue(issue_id: int, fields: dict, ctx: Context) -> dict:
    """
    Updates an issue. The current version is read first so the update is
    rejected if someone else changed the issue in between.

    Args:
        issue_id: Issue ID.
        fields: Fields to change, e.g. {"subject": "New title", "status": 3}.
    """
    return await write_tools.taiga_update_issue(ctx, issue_id, fields=fields)


@mcp.tool()
async def taiga_update_issue_status(issue_id: int, status: Union[int, str], ctx: Context) -> dict:
    """Changes an issue's status, given as a status ID or name."""
    return await write_tools.taiga_update_issue_status(ctx, issue_id, status)


@mcp.tool()
async def taiga_assign_issue(issue_id: int, ctx: Context, assigned_to: Optional[int] = None) -> dict:
    """Assigns an issue to a user ID. Omit assigned_to to unassign."""
    return await write_tools.taiga_assign_issue(ctx, issue_id, assigned_to)


@mcp.tool()
async def taiga_add_issue_to_milestone(issue_id: int, ctx: Context, milestone_id: Optional[int] = None) -> dict:
    """Moves an issue into a sprint. Omit milestone_id to remove it from its sprint."""
    return await write_tools.taiga_add_issue_to_milestone(ctx, issue_id, milestone_id)


# --- Sprints ---

@mcp.tool()
async def taiga_list_milestones(project: Union[int, str], ctx: Context) -> list[dict]:
    """Lists all sprints (milestones) in a project."""
    return await read_tools.taiga_list_milestones(ctx, project)


@mcp.tool()
async def taiga_get_milestone(milestone_id: int, ctx: Context) -> dict:
    """Retrieves a sprint by ID."""
    return await read_tools.taiga_get_milestone(ctx, milestone_id)


@mcp.tool()
async def taiga_get_milestone_stats(milestone_id: int, ctx: Context) -> dict:
    """Retrieves progress statistics for a sprint."""
    return await read_tools.taiga_get_milestone_stats(ctx, milestone_id)


@mcp.tool()
async def taiga_get_milestone_with_stats(milestone_id: int, ctx: Context) -> dict:
    """Retrieves a sprint together with its statistics."""
    return await read_tools.taiga_get_milestone_with_stats(ctx, milestone_id)


@mcp.tool()
async def taiga_get_issues_by_milestone(project: Union[int, str], milestone_id: int, ctx: Context) -> dict:
    """Retrieves a sprint together with every issue assigned to it."""
    return await read_tools.taiga_get_issues_by_milestone(ctx, project, milestone_id)


@mcp.tool()
async def taiga_create_milestone(
    project: Union[int, str],
    name: str,
    ctx: Context,
    estimated_start: Optional[str] = None,
    estimated_finish: Optional[str] = None
) -> dict:
    """
    Creates a sprint.

    Args:
        project: Project ID or slug.
        name: Sprint name.
        estimated_start: Start date, YYYY-MM-DD.
        estimated_finish: End date, YYYY-MM-DD.
    """
    return await write_tools.taiga_create_milestone(ctx, project, name, estimated_start, estimated_finish)


# --- Epics ---

@mcp.tool()
async def taiga_list_epics(project: Union[int, str], ctx: Context) -> list[dict]:
    """Lists all epics in a project."""
    return await read_tools.taiga_list_epics(ctx, project)


@mcp.tool()
async def taiga_get_epic(epic_id: int, ctx: Context) -> dict:
    """Retrieves an epic by ID."""
    return await read_tools.taiga_get_epic(ctx, epic_id)


@mcp.tool()
async def taiga_create_epic(
    project: Union[int, str],
    subject: str,
    ctx: Context,
    description: Optional[str] = None,
    color: Optional[str] = None,
    tags: Optional[list[str]] = None
) -> dict:
    """Creates an epic. color is a hex code such as "#FF5733"."""
    return await write_tools.taiga_create_epic(ctx, project, subject, description, color, tags)


@mcp.tool()
async def taiga_update_epic(epic_id: int, fields: dict, ctx: Context) -> dict:
    """Updates an epic (subject, description, color, status, tags, ...)."""
    return await write_tools.taiga_update_epic(ctx, epic_id, fields=fields)


@mcp.tool()
async def taiga_link_story_to_epic(user_story_id: int, epic_id: int, ctx: Context) -> dict:
    """Links a user story to an epic."""
    return await write_tools.taiga_link_story_to_epic(ctx, user_story_id, epic_id)


@mcp.tool()
async def taiga_unlink_story_from_epic(user_story_id: int, ctx: Context) -> dict:
    """Removes a user story's link to its epic."""
    return await write_tools.taiga_unlink_story_from_epic(ctx, user_story_id)


# --- Wiki ---

@mcp.tool()
async def taiga_list_wiki_pages(project: Union[int, str], ctx: Context) -> list[dict]:
    """Lists all wiki pages in a project."""
    return await read_tools.taiga_list_wiki_pages(ctx, project)


@mcp.tool()
async def taiga_get_wiki_page(project: Union[int, str], identifier: Union[int, str], ctx: Context) -> dict:
    """Retrieves a wiki page by ID or slug."""
    return await read_tools.taiga_get_wiki_page(ctx, project, identifier)


@mcp.tool()
async def taiga_create_wiki_page(
    project: Union[int, str],
    slug: str,
    content: str,
    ctx: Context,
    watchers: Optional[list[int]] = None
) -> dict:
    """Creates a wiki page with Markdown content."""
    return await write_tools.taiga_create_wiki_page(ctx, project, slug, content, watchers)


@mcp.tool()
async def taiga_update_wiki_page(
    project: Union[int, str],
    identifier: Union[int, str],
    ctx: Context,
    content: Optional[str] = None,
    watchers: Optional[list[int]] = None
) -> dict:
    """Updates a wiki page's content and/or watchers."""
    return await write_tools.taiga_update_wiki_page(ctx, project, identifier, content, watchers)


@mcp.tool()
async def taiga_delete_wiki_page(project: Union[int, str], identifier: Union[int, str], ctx: Context) -> dict:
    """Deletes a wiki page. This cannot be undone."""
    return await write_tools.taiga_delete_wiki_page(ctx, project, identifier)


@mcp.tool()
async def taiga_watch_wiki_page(
    project: Union[int, str],
    identifier: Union[int, str],
    ctx: Context,
    watch: bool = True
) -> dict:
    """Watches (or, with watch=False, unwatches) a wiki page."""
    return await write_tools.taiga_watch_wiki_page(ctx, project, identifier, watch)


# --- Comments ---

@mcp.tool()
async def taiga_add_comment(item_type: str, item_id: int, comment: str, ctx: Context) -> dict:
    """
    Adds a comment to an issue, user story or task.

    Args:
        item_type: "issue", "user_story" or "task".
        item_id: Item ID.
        comment: Comment text (Markdown).
    """
    return await comment_tools.taiga_add_comment(ctx, item_type, item_id, comment)


@mcp.tool()
async def taiga_list_comments(item_type: str, item_id: int, ctx: Context) -> list[dict]:
    """Lists the comments on an issue, user story or task."""
    return await comment_tools.taiga_list_comments(ctx, item_type, item_id)


@mcp.tool()
async def taiga_get_item_history(item_type: str, item_id: int, ctx: Context) -> list[dict]:
    """Retrieves the full change history of an issue, user story or task."""
    return await comment_tools.taiga_get_item_history(ctx, item_type, item_id)


@mcp.tool()
async def taiga_edit_comment(item_type: str, item_id: int, comment_id: str, comment: str, ctx: Context) -> dict:
    """Replaces the text of a comment. comment_id is the history entry ID from taiga_list_comments."""
    return await comment_tools.taiga_edit_comment(ctx, item_type, item_id, comment_id, comment)


@mcp.tool()
async def taiga_delete_comment(item_type: str, item_id: int, comment_id: str, ctx: Context) -> dict:
    """Deletes a comment. comment_id is the history entry ID from taiga_list_comments."""
    return await comment_tools.taiga_delete_comment(ctx, item_type, item_id, comment_id)


# --- Attachments ---

@mcp.tool()
async def taiga_upload_attachment(
    item_type: str,
    item_id: int,
    file_data: str,
    file_name: str,
    ctx: Context,
    mime_type: Optional[str] = None,
    description: Optional[str] = None
) -> dict:
    """
    Uploads a file to an issue, user story or task.

    Args:
        item_type: "issue", "user_story" or "task".
        item_id: Item ID.
        file_data: Base64-encoded file content (a data URI is accepted).
        file_name: File name with extension.
        mime_type: Optional content type; inferred from the extension if omitted.
        description: Optional attachment description.
    """
    return await attachment_tools.taiga_upload_attachment(
        ctx, item_type, item_id, file_data, file_name, mime_type, description
    )


@mcp.tool()
async def taiga_upload_attachment_from_path(
    item_type: str,
    item_id: int,
    file_path: str,
    ctx: Context,
    description: Optional[str] = None
) -> dict:
    """
    Uploads a local file to an issue, user story or task.

    Relative paths are looked up in the working directory, the home
    directory, ~/Desktop and ~/Downloads.
    """
    return await attachment_tools.taiga_upload_attachment_from_path(ctx, item_type, item_id, file_path, description)


@mcp.tool()
async def taiga_list_attachments(item_type: str, item_id: int, ctx: Context, project: Optional[int] = None) -> list[dict]:
    """Lists the attachments of an issue, user story or task."""
    return await attachment_tools.taiga_list_attachments(ctx, item_type, item_id, project)


@mcp.tool()
async def taiga_download_attachment(
    attachment_id: int,
    ctx: Context,
    download_path: Optional[str] = None,
    item_type: str = "issue"
) -> dict:
    """Downloads an attachment to a local file or directory (default: working directory)."""
    return await attachment_tools.taiga_download_attachment(ctx, attachment_id, download_path, item_type)


@mcp.tool()
async def taiga_delete_attachment(attachment_id: int, ctx: Context, item_type: str = "issue") -> dict:
    """Deletes an attachment. This cannot be undone."""
    return await attachment_tools.taiga_delete_attachment(ctx, attachment_id, item_type)


# --- Batch ---

@mcp.tool()
async def taiga_batch_create_issues(items: list[dict[str, Any]], ctx: Context) -> dict:
    """
    Creates up to 100 issues, one at a time, stopping at the first failure.

    Each item takes the same fields as taiga_create_issue (project and subject
    required). Issues created before a failure are kept.
    """
    return await write_tools.taiga_batch_create_issues(ctx, items)


@mcp.tool()
async def taiga_batch_create_user_stories(items: list[dict[str, Any]], ctx: Context) -> dict:
    """Creates up to 100 user stories, stopping at the first failure."""
    return await write_tools.taiga_batch_create_user_stories(ctx, items)


@mcp.tool()
async def taiga_batch_create_tasks(items: list[dict[str, Any]], ctx: Context) -> dict:
    """Creates up to 100 tasks, stopping at the first failure."""
    return await write_tools.taiga_batch_create_tasks(ctx, items)


def main():
    """Entry point for the taiga-mcp-server script."""
    logger.info("Starting Taiga MCP server...")

    settings = TaigaSettings.from_env()
    if not settings.has_token and not settings.has_login:
        logger.error("No Taiga credentials found in the environment.")
        print("\nERROR: Taiga credentials are not set.")
        print("Please set TAIGA_AUTH_TOKEN, or TAIGA_USERNAME and TAIGA_PASSWORD.")
        print(f"TAIGA_API_URL defaults to {settings.api_url}.")
        sys.exit(1)  # Exit if essential config is missing

    mcp.run()

if __name__ == "__main__":
    # This allows running the server directly with `python -m taiga_mcp_server.server`
    main()
