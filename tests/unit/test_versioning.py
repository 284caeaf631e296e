"""Unit tests for version-guarded updates."""

import pytest
from unittest.mock import MagicMock, call

from taiga_mcp_server.client import TaigaClient, TaigaResponse
from taiga_mcp_server.constants import Endpoints, ItemKind
from taiga_mcp_server.models.item import ItemReference
from taiga_mcp_server.utils.errors import VersionConflictError, NotFoundError, handle_http_error
from taiga_mcp_server.utils.versioning import (
    extract_version,
    get_current_version,
    versioned_update,
    versioned_item_update,
    with_version,
)


@pytest.fixture
def client():
    return MagicMock(spec=TaigaClient)


@pytest.mark.parametrize("resource, expected", [
    ({"version": 5}, 5),
    ({"version": 0}, 0),
    ({"version": 5.0}, 5),
    ({"version": 5.5}, 1),
    ({}, 1),
    ({"version": None}, 1),
    ({"version": "7"}, 1),
    ({"version": True}, 1),
    (None, 1),
])
def test_extract_version(resource, expected):
    version = extract_version(resource)
    assert version == expected
    assert type(version) is int


def test_get_current_version_reads_fresh(client):
    client.get.return_value = TaigaResponse(status=200, data={"id": 42, "version": 9})

    assert get_current_version(client, Endpoints.ISSUES, 42) == 9
    client.get.assert_called_once_with("/issues/42")


def test_with_version_does_not_mutate_changes():
    changes = {"status": 2}
    assert with_version(changes, 3) == {"status": 2, "version": 3}
    assert changes == {"status": 2}


def test_update_carries_version_from_read(client):
    """Issue at version 5 updated with {status: 2} sends {status: 2, version: 5}."""
    client.get.return_value = TaigaResponse(status=200, data={"id": 42, "version": 5})
    client.patch.return_value = TaigaResponse(status=200, data={"id": 42, "status": 2, "version": 6})

    result = versioned_update(client, Endpoints.ISSUES, 42, {"status": 2})

    client.patch.assert_called_once_with("/issues/42", json={"status": 2, "version": 5})
    assert result["version"] == 6


def test_fresh_version_overrides_caller_version(client):
    client.get.return_value = TaigaResponse(status=200, data={"version": 8})

    versioned_update(client, Endpoints.EPICS, 3, {"subject": "x", "version": 2})

    client.patch.assert_called_once_with("/epics/3", json={"subject": "x", "version": 8})


def test_missing_version_defaults_to_one(client):
    client.get.return_value = TaigaResponse(status=200, data={"id": 1})

    versioned_update(client, Endpoints.WIKI, 1, {"content": "hi"})

    client.patch.assert_called_once_with("/wiki/1", json={"content": "hi", "version": 1})


def test_each_update_reads_version_again(client):
    client.get.side_effect = [
        TaigaResponse(status=200, data={"version": 1}),
        TaigaResponse(status=200, data={"version": 2}),
    ]

    versioned_update(client, Endpoints.ISSUES, 42, {"status": 2})
    versioned_update(client, Endpoints.ISSUES, 42, {"status": 3})

    assert client.get.call_count == 2
    assert client.patch.call_args_list == [
        call("/issues/42", json={"status": 2, "version": 1}),
        call("/issues/42", json={"status": 3, "version": 2}),
    ]


def test_version_conflict_propagates(client):
    client.get.return_value = TaigaResponse(status=200, data={"version": 5})
    client.patch.side_effect = handle_http_error(400, '{"version": ["stale"]}', {"version": ["stale"]})

    with pytest.raises(VersionConflictError):
        versioned_update(client, Endpoints.ISSUES, 42, {"status": 2})
    client.patch.assert_called_once()


def test_missing_resource_never_patches(client):
    client.get.side_effect = NotFoundError("HTTP 404: Not found", details={"status_code": 404})

    with pytest.raises(NotFoundError):
        versioned_update(client, Endpoints.ISSUES, 404, {"status": 2})
    client.patch.assert_not_called()


@pytest.mark.parametrize("kind, path", [
    (ItemKind.ISSUE, "/issues/5"),
    (ItemKind.USER_STORY, "/userstories/5"),
    (ItemKind.TASK, "/tasks/5"),
])
def test_item_update_routes_by_kind(client, kind, path):
    client.get.return_value = TaigaResponse(status=200, data={"version": 3})

    versioned_item_update(client, ItemReference(kind=kind, id=5), {"comment": "hello"})

    client.get.assert_called_once_with(path)
    client.patch.assert_called_once_with(path, json={"comment": "hello", "version": 3})
