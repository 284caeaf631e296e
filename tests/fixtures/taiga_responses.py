"""Mock Taiga API Response Data

Realistic mock responses for testing Taiga MCP tools.
Based on Taiga REST API v1 response formats.
"""

from typing import Dict, List, Any


# Users and projects

MOCK_USER = {
    "id": 7,
    "username": "jdoe",
    "full_name_display": "Jane Doe",
    "email": "jdoe@example.com",
}

MOCK_PROJECT_1 = {
    "id": 123,
    "slug": "test-project",
    "name": "Test Project",
    "description": "A test project for unit tests",
    "is_private": True,
    "created_date": "2024-01-01T00:00:00.000Z",
    "modified_date": "2024-01-15T10:30:00.000Z",
}

MOCK_PROJECT_2 = {
    "id": 456,
    "slug": "demo",
    "name": "Demo Project",
    "description": "Demo project for testing",
    "is_private": False,
    "created_date": "2024-02-01T00:00:00.000Z",
    "modified_date": "2024-02-10T14:20:00.000Z",
}


# Issues

MOCK_ISSUE_1 = {
    "id": 42,
    "ref": 17,
    "project": 123,
    "subject": "Login button does nothing",
    "description": "Clicking login has no effect",
    "status": 1,
    "priority": 2,
    "severity": 3,
    "type": 1,
    "assigned_to": None,
    "milestone": None,
    "version": 5,
    "tags": [],
}

MOCK_ISSUE_STATUSES: List[Dict[str, Any]] = [
    {"id": 1, "name": "New", "project": 123},
    {"id": 2, "name": "In progress", "project": 123},
    {"id": 3, "name": "Closed", "project": 123},
]

MOCK_PRIORITIES: List[Dict[str, Any]] = [
    {"id": 1, "name": "Low", "project": 123},
    {"id": 2, "name": "Normal", "project": 123},
    {"id": 3, "name": "High", "project": 123},
]


# User stories and tasks

MOCK_USER_STORY_1 = {
    "id": 88,
    "ref": 3,
    "project": 123,
    "subject": "As a user I can reset my password",
    "epic": None,
    "milestone": None,
    "version": 2,
}

MOCK_TASK_1 = {
    "id": 301,
    "ref": 9,
    "project": 123,
    "user_story": 88,
    "subject": "Write reset email template",
    "version": 1,
}


# Sprints

MOCK_MILESTONE_1 = {
    "id": 11,
    "project": 123,
    "name": "Sprint 1",
    "estimated_start": "2024-03-01",
    "estimated_finish": "2024-03-14",
    "user_stories": [],
}

MOCK_MILESTONE_STATS = {
    "name": "Sprint 1",
    "total_points": {"1": 13.0},
    "completed_points": [5.0],
    "total_userstories": 4,
    "completed_userstories": 1,
    "total_tasks": 9,
    "completed_tasks": 3,
}


# Wiki

MOCK_WIKI_PAGE = {
    "id": 55,
    "project": 123,
    "slug": "home",
    "content": "# Welcome",
    "version": 4,
}


# History and comments

MOCK_HISTORY: List[Dict[str, Any]] = [
    {"id": "a1", "comment": "First comment", "delete_comment_date": None, "user": {"pk": 7}},
    {"id": "a2", "comment": "", "diff": {"status": [1, 2]}, "user": {"pk": 7}},
    {"id": "a3", "comment": "Removed", "delete_comment_date": "2024-03-02T10:00:00Z", "user": {"pk": 7}},
    {"id": "a4", "comment": "Second comment", "delete_comment_date": None, "user": {"pk": 8}},
]


# Attachments

MOCK_ATTACHMENT_1 = {
    "id": 900,
    "name": "screenshot.png",
    "size": 2048,
    "url": "https://media.taiga.example.com/attachments/screenshot.png?token=abc",
    "description": "Error screenshot",
    "object_id": 42,
    "project": 123,
    "is_deprecated": False,
    "created_date": "2024-03-01T09:00:00.000Z",
    "modified_date": "2024-03-01T09:00:00.000Z",
}


def envelope_page(items: List[Any], next_url: Any = None, count: int = None) -> Dict[str, Any]:
    """Build a page in the {"results", "next"} envelope shape."""
    return {
        "count": count if count is not None else len(items),
        "next": next_url,
        "previous": None,
        "results": items,
    }
