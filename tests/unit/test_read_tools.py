"""Unit tests for Taiga read tools."""
import asyncio
import threading

import pytest
from unittest.mock import call

from taiga_mcp_server.tools.read_tools import (
    taiga_list_projects,
    taiga_get_project,
    taiga_list_issues,
    taiga_get_issue_by_ref,
    taiga_get_issue_priorities,
    taiga_get_milestone_with_stats,
    taiga_get_issues_by_milestone,
    taiga_get_wiki_page,
)
from taiga_mcp_server.utils.errors import ValidationError
from fixtures.conftest import ok, routed
from fixtures import taiga_responses as responses


@pytest.mark.asyncio
async def test_list_projects_filters_by_member_and_pages(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]
    client.get.side_effect = [
        ok(responses.MOCK_USER),
        ok(responses.envelope_page([responses.MOCK_PROJECT_1], next_url="p2")),
        ok(responses.envelope_page([responses.MOCK_PROJECT_2])),
    ]

    projects = await taiga_list_projects(mcp_context)

    assert [p["id"] for p in projects] == [123, 456]
    assert client.get.call_args_list == [
        call("/users/me"),
        call("/projects", params={"member": 7, "page": 1}),
        call("/projects", params={"member": 7, "page": 2}),
    ]


@pytest.mark.asyncio
async def test_get_project_by_id_or_slug(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]
    client.get.return_value = ok(responses.MOCK_PROJECT_1)

    await taiga_get_project(mcp_context, 123)
    await taiga_get_project(mcp_context, "test-project")

    assert client.get.call_args_list == [
        call("/projects/123"),
        call("/projects/by_slug", params={"slug": "test-project"}),
    ]


@pytest.mark.asyncio
async def test_get_project_requires_identifier(mcp_context):
    with pytest.raises(ValidationError):
        await taiga_get_project(mcp_context, "  ")


@pytest.mark.asyncio
async def test_list_issues_resolves_slug_then_pages(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]
    client.get.side_effect = [
        ok(responses.MOCK_PROJECT_1),
        ok([responses.MOCK_ISSUE_1]),
    ]

    issues = await taiga_list_issues(mcp_context, "test-project")

    assert issues == [responses.MOCK_ISSUE_1]
    assert client.get.call_args_list[1] == call("/issues", params={"project": 123, "page": 1})


@pytest.mark.asyncio
async def test_get_issue_by_ref(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]
    client.get.return_value = ok(responses.MOCK_ISSUE_1)

    issue = await taiga_get_issue_by_ref(mcp_context, 17, 123)

    assert issue["ref"] == 17
    client.get.assert_called_once_with("/issues/by_ref", params={"ref": 17, "project": 123})


@pytest.mark.asyncio
async def test_get_issue_priorities(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]
    client.get.return_value = ok(responses.MOCK_PRIORITIES)

    assert await taiga_get_issue_priorities(mcp_context, 123) == responses.MOCK_PRIORITIES
    client.get.assert_called_once_with("/priorities", params={"project": 123})


# ============================================================================
# Composite reads
# ============================================================================

@pytest.mark.asyncio
async def test_milestone_with_stats(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]
    client.get.side_effect = routed({
        "/milestones/11": responses.MOCK_MILESTONE_1,
        "/milestones/11/stats": responses.MOCK_MILESTONE_STATS,
    })

    result = await taiga_get_milestone_with_stats(mcp_context, 11)

    assert result == {"milestone": responses.MOCK_MILESTONE_1, "stats": responses.MOCK_MILESTONE_STATS}


@pytest.mark.asyncio
async def test_milestone_reads_run_concurrently(mcp_context):
    """Both reads must be in flight at once: each waits for the other to start."""
    client = mcp_context.request_context.lifespan_context["taiga_client"]
    barrier = threading.Barrier(2, timeout=5)

    def get(path, params=None, stream=False):
        barrier.wait()
        return ok({"path": path})

    client.get.side_effect = get

    result = await asyncio.wait_for(taiga_get_milestone_with_stats(mcp_context, 11), timeout=10)

    assert result["milestone"] == {"path": "/milestones/11"}
    assert result["stats"] == {"path": "/milestones/11/stats"}


@pytest.mark.asyncio
async def test_issues_by_milestone(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]

    def get(path, params=None, stream=False):
        if path == "/milestones/11":
            return ok(responses.MOCK_MILESTONE_1)
        assert params == {"project": 123, "milestone": 11, "page": 1}
        return ok([responses.MOCK_ISSUE_1])

    client.get.side_effect = get

    result = await taiga_get_issues_by_milestone(mcp_context, 123, 11)

    assert result["milestone"]["name"] == "Sprint 1"
    assert result["issues"] == [responses.MOCK_ISSUE_1]


@pytest.mark.asyncio
async def test_get_wiki_page_by_slug(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]
    client.get.side_effect = [
        ok(responses.MOCK_WIKI_PAGE),
        ok(responses.MOCK_WIKI_PAGE),
    ]

    page = await taiga_get_wiki_page(mcp_context, 123, "home")

    assert page["slug"] == "home"
    assert client.get.call_args_list == [
        call("/wiki/by_slug", params={"slug": "home", "project": 123}),
        call("/wiki/55"),
    ]
