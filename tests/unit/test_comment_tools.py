"""Unit tests for Taiga comment tools."""
import pytest

from taiga_mcp_server.tools.comment_tools import (
    taiga_add_comment,
    taiga_list_comments,
    taiga_get_item_history,
    taiga_edit_comment,
    taiga_delete_comment,
)
from taiga_mcp_server.utils.errors import (
    ValidationError,
    VersionConflictError,
    NotFoundError,
    PermissionError,
    handle_http_error,
)
from fixtures.conftest import ok
from fixtures import taiga_responses as responses


@pytest.mark.asyncio
async def test_add_comment_is_guarded_update(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]
    client.get.return_value = ok(responses.MOCK_USER_STORY_1)  # version 2
    client.patch.return_value = ok({**responses.MOCK_USER_STORY_1, "version": 3})

    await taiga_add_comment(mcp_context, "user_story", 88, "Looks good")

    client.get.assert_called_once_with("/userstories/88")
    client.patch.assert_called_once_with("/userstories/88", json={"comment": "Looks good", "version": 2})


@pytest.mark.asyncio
async def test_add_comment_rejects_unknown_kind(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]

    with pytest.raises(ValidationError, match="Invalid item reference"):
        await taiga_add_comment(mcp_context, "epic", 1, "hi")
    client.get.assert_not_called()


@pytest.mark.asyncio
async def test_add_comment_rejects_empty_text(mcp_context):
    with pytest.raises(ValidationError, match="Comment text is required"):
        await taiga_add_comment(mcp_context, "issue", 42, "   ")


@pytest.mark.asyncio
@pytest.mark.parametrize("error, error_class, message", [
    (handle_http_error(400, "stale", {"version": ["stale"]}), VersionConflictError, "modified by another user"),
    (handle_http_error(403, "forbidden"), PermissionError, "permission denied"),
    (handle_http_error(404, "missing"), NotFoundError, "issue #42 not found"),
    (handle_http_error(400, "bad", {"comment": ["bad"]}), ValidationError, "bad request"),
])
async def test_add_comment_error_context(mcp_context, error, error_class, message):
    client = mcp_context.request_context.lifespan_context["taiga_client"]
    client.get.return_value = ok({"version": 1})
    client.patch.side_effect = error

    with pytest.raises(error_class) as exc_info:
        await taiga_add_comment(mcp_context, "issue", 42, "hi")

    assert exc_info.value.message.startswith("Failed to add comment")
    assert message in exc_info.value.message


@pytest.mark.asyncio
async def test_history_uses_history_object_type(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]
    client.get.return_value = ok(responses.MOCK_HISTORY)

    history = await taiga_get_item_history(mcp_context, "user_story", 88)

    assert len(history) == 4
    client.get.assert_called_once_with("/history/userstory/88")


@pytest.mark.asyncio
async def test_list_comments_skips_empty_and_deleted(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]
    client.get.return_value = ok(responses.MOCK_HISTORY)

    comments = await taiga_list_comments(mcp_context, "issue", 42)

    assert [c["id"] for c in comments] == ["a1", "a4"]


@pytest.mark.asyncio
async def test_edit_comment(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]

    result = await taiga_edit_comment(mcp_context, "task", 301, "a1", "Updated")

    client.post.assert_called_once_with(
        "/history/task/301/edit_comment", json={"comment": "Updated"}, params={"id": "a1"}
    )
    assert result["comment"] == "Updated"


@pytest.mark.asyncio
async def test_delete_comment(mcp_context):
    client = mcp_context.request_context.lifespan_context["taiga_client"]

    await taiga_delete_comment(mcp_context, "issue", 42, "a4")

    client.post.assert_called_once_with("/history/issue/42/delete_comment", params={"id": "a4"})


@pytest.mark.asyncio
async def test_delete_comment_requires_id(mcp_context):
    with pytest.raises(ValidationError):
        await taiga_delete_comment(mcp_context, "issue", 42, "")
