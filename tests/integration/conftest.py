"""Integration test fixtures - a real Taiga client instead of the mock."""
import os
from unittest.mock import MagicMock

import pytest

from taiga_mcp_server.client import TaigaClient
from taiga_mcp_server.config import TaigaSettings


@pytest.fixture(autouse=True)
def reset_environment_for_tests():
    """Override the autouse fixture from root conftest to do nothing.

    Integration tests need the real TAIGA_* environment variables,
    not the mock values set by the root conftest fixture.
    """
    pass


@pytest.fixture
def real_taiga_client():
    """Client for the Taiga instance named by TAIGA_API_URL."""
    settings = TaigaSettings.from_env()
    if not settings.has_token and not settings.has_login:
        pytest.skip("Missing TAIGA_AUTH_TOKEN or TAIGA_USERNAME/TAIGA_PASSWORD")
    if not os.getenv("TAIGA_TEST_PROJECT"):
        pytest.skip("Missing TAIGA_TEST_PROJECT (project ID or slug to write test data into)")

    client = TaigaClient.from_settings(settings)
    yield client
    client.close()


@pytest.fixture
def integration_context(real_taiga_client):
    """MCP context with a real Taiga client."""
    context = MagicMock()
    context.request_context.lifespan_context = {"taiga_client": real_taiga_client}
    return context


@pytest.fixture
def test_project():
    return os.environ["TAIGA_TEST_PROJECT"]
