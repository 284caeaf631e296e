"""Taiga MCP Server Configuration

Settings are read from the environment once at server start and passed to the
client explicitly, so tests can build a client without touching os.environ.
"""

import os
import logging
from typing import Optional, Mapping

from pydantic import BaseModel, Field, SecretStr, field_validator

from .constants import DEFAULT_API_URL

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "yes")


class TaigaSettings(BaseModel):
    """Connection settings for a Taiga instance."""

    api_url: str = Field(default=DEFAULT_API_URL, description="Taiga API base URL (ends in /api/v1)")
    auth_token: Optional[SecretStr] = Field(default=None, description="Pre-issued bearer token")
    username: Optional[str] = Field(default=None, description="Username for normal login")
    password: Optional[SecretStr] = Field(default=None, description="Password for normal login")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    requests_per_second: float = Field(default=5.0, gt=0, description="Client-side rate limit")
    timeout: Optional[float] = Field(default=30.0, description="Per-request timeout in seconds")

    @field_validator("api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("api_url cannot be empty")
        return v.strip().rstrip("/")

    @property
    def has_token(self) -> bool:
        return self.auth_token is not None and bool(self.auth_token.get_secret_value())

    @property
    def has_login(self) -> bool:
        return bool(self.username) and self.password is not None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TaigaSettings":
        """Build settings from TAIGA_* environment variables."""
        env = os.environ if environ is None else environ

        values = {
            "api_url": env.get("TAIGA_API_URL") or DEFAULT_API_URL,
            "verify_ssl": env.get("TAIGA_VERIFY_SSL", "true").lower() in _TRUE_VALUES,
        }
        if env.get("TAIGA_AUTH_TOKEN"):
            values["auth_token"] = env["TAIGA_AUTH_TOKEN"]
        if env.get("TAIGA_USERNAME"):
            values["username"] = env["TAIGA_USERNAME"]
        if env.get("TAIGA_PASSWORD"):
            values["password"] = env["TAIGA_PASSWORD"]
        if env.get("TAIGA_REQUESTS_PER_SECOND"):
            values["requests_per_second"] = float(env["TAIGA_REQUESTS_PER_SECOND"])
        if env.get("TAIGA_TIMEOUT"):
            values["timeout"] = float(env["TAIGA_TIMEOUT"])

        settings = cls(**values)
        logger.debug(
            f"Loaded Taiga settings: api_url={settings.api_url}, "
            f"token={'set' if settings.has_token else 'unset'}, "
            f"login={'set' if settings.has_login else 'unset'}"
        )
        return settings
