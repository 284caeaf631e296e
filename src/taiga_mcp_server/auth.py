"""Taiga credential acquisition.

Resolves the bearer token the client sends on every request: either a token
supplied directly, or one obtained by a single username/password login.
Tokens are not refreshed; a restart picks up a new one.
"""

import logging
from typing import Optional

import requests

from .config import TaigaSettings
from .constants import Endpoints
from .utils.errors import CredentialsError, handle_http_error

logger = logging.getLogger(__name__)


def get_auth_token(settings: TaigaSettings, session: Optional[requests.Session] = None) -> str:
    """Return a bearer token for the configured Taiga instance.

    Args:
        settings: Connection settings
        session: Optional session to perform the login with

    Returns:
        Bearer token string

    Raises:
        CredentialsError: If neither a token nor a username/password is configured
        AuthenticationError: If Taiga rejects the username/password
    """
    if settings.has_token:
        logger.info("Using configured Taiga bearer token")
        return settings.auth_token.get_secret_value()

    if not settings.has_login:
        raise CredentialsError(
            "No Taiga credentials configured. Set TAIGA_AUTH_TOKEN, "
            "or TAIGA_USERNAME and TAIGA_PASSWORD."
        )

    logger.info(f"Logging in to Taiga at {settings.api_url} as {settings.username}")
    http = session or requests.Session()
    response = http.post(
        f"{settings.api_url}{Endpoints.AUTH}",
        json={
            "type": "normal",
            "username": settings.username,
            "password": settings.password.get_secret_value(),
        },
        timeout=settings.timeout,
        verify=settings.verify_ssl,
    )

    if response.status_code >= 400:
        try:
            body = response.json()
        except ValueError:
            body = None
        logger.error(f"Taiga login failed with HTTP {response.status_code}")
        raise handle_http_error(response.status_code, response.text, body)

    token = response.json().get("auth_token")
    if not token:
        raise CredentialsError("Taiga login response did not include an auth_token")

    logger.info("Taiga login succeeded")
    return token
