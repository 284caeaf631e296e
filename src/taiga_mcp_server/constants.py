"""Constants for Taiga MCP Server.

Endpoint paths and the item-kind routing tables. The endpoint family and the
history object type for the same kind are kept in separate tables because the
two naming schemes differ (``userstories`` vs ``userstory``).
"""

from enum import Enum

DEFAULT_API_URL = "https://api.taiga.io/api/v1"
DEFAULT_MAX_PAGES = 100
MAX_BATCH_SIZE = 100


class Endpoints:
    """Taiga REST API v1 paths, relative to the API base URL."""

    AUTH = "/auth"
    USERS_ME = "/users/me"
    PROJECTS = "/projects"
    PROJECT_BY_SLUG = "/projects/by_slug"
    MEMBERSHIPS = "/memberships"

    USER_STORIES = "/userstories"
    USER_STORY_STATUSES = "/userstory-statuses"
    TASKS = "/tasks"
    TASK_STATUSES = "/task-statuses"
    ISSUES = "/issues"
    ISSUE_BY_REF = "/issues/by_ref"
    ISSUE_STATUSES = "/issue-statuses"
    PRIORITIES = "/priorities"
    SEVERITIES = "/severities"
    ISSUE_TYPES = "/issue-types"

    MILESTONES = "/milestones"
    EPICS = "/epics"
    WIKI = "/wiki"
    WIKI_BY_SLUG = "/wiki/by_slug"
    HISTORY = "/history"

    ISSUE_ATTACHMENTS = "/issues/attachments"
    USER_STORY_ATTACHMENTS = "/userstories/attachments"
    TASK_ATTACHMENTS = "/tasks/attachments"


class ItemKind(str, Enum):
    """Kinds of work item that own comments and attachments."""

    ISSUE = "issue"
    USER_STORY = "user_story"
    TASK = "task"


# Endpoint family used for reads and version-guarded writes.
ITEM_ENDPOINTS = {
    ItemKind.ISSUE: Endpoints.ISSUES,
    ItemKind.USER_STORY: Endpoints.USER_STORIES,
    ItemKind.TASK: Endpoints.TASKS,
}

# Object type name used by the /history API (comments, edits, deletes).
HISTORY_OBJECT_TYPES = {
    ItemKind.ISSUE: "issue",
    ItemKind.USER_STORY: "userstory",
    ItemKind.TASK: "task",
}

ATTACHMENT_ENDPOINTS = {
    ItemKind.ISSUE: Endpoints.ISSUE_ATTACHMENTS,
    ItemKind.USER_STORY: Endpoints.USER_STORY_ATTACHMENTS,
    ItemKind.TASK: Endpoints.TASK_ATTACHMENTS,
}

DEFAULT_CONTENT_TYPE = "application/octet-stream"

MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "pdf": "application/pdf",
    "txt": "text/plain",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "zip": "application/zip",
    "mp4": "video/mp4",
    "mp3": "audio/mpeg",
}

# Relative upload paths are probed under these home subdirectories after the
# working directory and the home directory itself.
HOME_SEARCH_SUBDIRS = ("Desktop", "Downloads")
