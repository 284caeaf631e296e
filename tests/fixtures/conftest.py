"""Pytest fixtures for Taiga MCP Server tests.

Common fixtures for mocking the Taiga client and responses.
"""

import pytest
from unittest.mock import Mock, MagicMock

from taiga_mcp_server.client import TaigaClient, TaigaResponse
from taiga_mcp_server.utils.rate_limit import RateLimiter
from . import taiga_responses


def ok(data=None, status=200):
    """Wrap a body the way TaigaClient returns it."""
    return TaigaResponse(status=status, data=data)


def routed(bodies):
    """client.get side effect answering by path; unknown paths raise KeyError."""
    def get(path, params=None, stream=False):
        return ok(bodies[path])
    return get


@pytest.fixture
def mock_rate_limiter():
    """Mock rate limiter that doesn't actually limit."""
    limiter = Mock(spec=RateLimiter)
    limiter.acquire = Mock(return_value=None)
    limiter.try_acquire = Mock(return_value=True)
    return limiter


@pytest.fixture
def mock_taiga_client():
    """Mock Taiga client; tests configure get/post/patch/delete per case."""
    client = MagicMock(spec=TaigaClient)
    client.get.return_value = ok({})
    client.post.return_value = ok({})
    client.patch.return_value = ok({})
    client.delete.return_value = ok(None, status=204)
    return client


@pytest.fixture
def mock_issue():
    """Mock issue data."""
    return taiga_responses.MOCK_ISSUE_1.copy()


@pytest.fixture
def mock_attachment():
    """Mock attachment data."""
    return taiga_responses.MOCK_ATTACHMENT_1.copy()


@pytest.fixture(autouse=True)
def reset_environment_for_tests(monkeypatch):
    """Reset environment variables for each test.

    This fixture automatically runs before each test to ensure
    a clean environment state.
    """
    monkeypatch.setenv("TAIGA_MOCK_MODE", "true")
    monkeypatch.setenv("TAIGA_API_URL", "https://taiga.test.example.com/api/v1")
    monkeypatch.setenv("TAIGA_AUTH_TOKEN", "test_token")
    monkeypatch.delenv("TAIGA_USERNAME", raising=False)
    monkeypatch.delenv("TAIGA_PASSWORD", raising=False)


@pytest.fixture
def mcp_context(mock_taiga_client):
    """Mock MCP context with Taiga client."""
    context = MagicMock()
    context.request_context.lifespan_context = {"taiga_client": mock_taiga_client}
    return context
