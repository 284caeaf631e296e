"""Unit tests for identifier validation helpers and the rate limiter."""

import pytest
from unittest.mock import MagicMock

from taiga_mcp_server.client import TaigaClient, TaigaResponse
from taiga_mcp_server.constants import ItemKind
from taiga_mcp_server.utils.errors import ValidationError, NotFoundError
from taiga_mcp_server.utils.rate_limit import RateLimiter
from taiga_mcp_server.utils.validation import (
    find_id_by_name,
    is_numeric_id,
    item_reference,
    parse_item_kind,
    resolve_project_id,
    resolve_wiki_page_id,
)


@pytest.mark.parametrize("value, expected", [
    (5, True), ("12", True), (" 7 ", True), ("slug", False), ("", False), (True, False), (None, False),
])
def test_is_numeric_id(value, expected):
    assert is_numeric_id(value) is expected


def test_item_reference_normalizes_kind():
    ref = item_reference(" User_Story ", 9)
    assert ref.kind is ItemKind.USER_STORY
    assert ref.path == "/userstories/9"
    assert ref.history_object_type == "userstory"
    assert ref.attachment_endpoint == "/userstories/attachments"


@pytest.mark.parametrize("item_type, item_id", [("epic", 1), ("issue", 0), ("issue", -3), ("task", "abc")])
def test_item_reference_rejects_bad_input(item_type, item_id):
    with pytest.raises(ValidationError):
        item_reference(item_type, item_id)


def test_parse_item_kind():
    assert parse_item_kind("TASK") is ItemKind.TASK
    with pytest.raises(ValidationError):
        parse_item_kind("wiki")


def test_find_id_by_name_is_case_insensitive():
    options = [{"id": 1, "name": "New"}, {"id": 2, "name": "In progress"}]
    assert find_id_by_name(options, "IN PROGRESS") == 2
    assert find_id_by_name(options, None) is None


def test_find_id_by_name_first_match_wins():
    options = [{"id": 4, "name": "Bug"}, {"id": 9, "name": "bug"}]
    assert find_id_by_name(options, "bug") == 4


def test_find_id_by_name_unknown():
    with pytest.raises(ValidationError) as exc_info:
        find_id_by_name([{"id": 1, "name": "New"}], "Done")
    assert exc_info.value.details["available"] == ["New"]


def test_resolve_project_id_numeric_skips_lookup():
    client = MagicMock(spec=TaigaClient)
    assert resolve_project_id(client, "123") == 123
    client.get.assert_not_called()


def test_resolve_project_id_by_slug():
    client = MagicMock(spec=TaigaClient)
    client.get.return_value = TaigaResponse(status=200, data={"id": 77, "slug": "demo"})

    assert resolve_project_id(client, "demo") == 77
    client.get.assert_called_once_with("/projects/by_slug", params={"slug": "demo"})


def test_resolve_wiki_page_id_missing():
    client = MagicMock(spec=TaigaClient)
    client.get.return_value = TaigaResponse(status=200, data={})

    with pytest.raises(NotFoundError):
        resolve_wiki_page_id(client, 123, "nope")


# ============================================================================
# Rate limiter
# ============================================================================

def test_rate_limiter_burst_then_blocks():
    limiter = RateLimiter(requests_per_second=1.0, burst=2)

    assert limiter.try_acquire()
    assert limiter.try_acquire()
    assert not limiter.try_acquire()


def test_rate_limiter_rejects_non_positive_rate():
    with pytest.raises(ValueError):
        RateLimiter(requests_per_second=0)
