"""Taiga Client

Authenticated HTTP transport for the Taiga REST API with:
- Token bucket rate limiting
- Retries for idempotent reads on network and 5xx errors
- Standardized error handling (non-2xx responses become typed TaigaErrors)
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Any, Dict
from urllib.parse import urlparse

import requests
from tenacity import Retrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from .config import TaigaSettings
from .auth import get_auth_token
from .utils.rate_limit import RateLimiter
from .utils.errors import handle_http_error, ServerError

logger = logging.getLogger(__name__)


@dataclass
class TaigaResponse:
    """Result of a successful request.

    ``data`` holds the decoded JSON body, ``None`` for empty bodies, or the
    underlying ``requests.Response`` when the request was made with
    ``stream=True``.
    """

    status: int
    data: Any = None
    headers: Dict[str, str] = field(default_factory=dict)


class TaigaClient:
    """Authenticated Taiga REST client.

    All paths are relative to the API base URL (e.g. ``/issues/12``); absolute
    URLs are passed through unchanged, which is how attachment files are
    downloaded from the URLs Taiga hands out.
    """

    RETRYABLE_ERRORS = (ServerError, requests.exceptions.Timeout, requests.exceptions.ConnectionError)

    def __init__(
        self,
        api_url: str,
        auth_token: str,
        requests_per_second: float = 5.0,
        verify_ssl: bool = True,
        timeout: Optional[float] = 30.0,
        read_attempts: int = 3,
        session: Optional[requests.Session] = None
    ):
        """Initialize Taiga client.

        Args:
            api_url: Taiga API base URL (e.g., https://api.taiga.io/api/v1)
            auth_token: Bearer token sent with every request
            requests_per_second: Rate limit (default: 5.0 req/sec)
            verify_ssl: Whether to verify SSL certificates (default: True)
            timeout: Per-request timeout in seconds, None to wait indefinitely
            read_attempts: Total attempts for GET requests (default: 3)
            session: Optional pre-built requests session
        """
        self.api_url = api_url.rstrip("/")
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.read_attempts = max(1, read_attempts)

        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {auth_token}",
            "Accept": "application/json",
        })

        self.rate_limiter = RateLimiter(requests_per_second=requests_per_second)
        logger.info(f"Initialized Taiga client for {self.api_url} (SSL verify: {verify_ssl})")

    @classmethod
    def from_settings(cls, settings: TaigaSettings) -> "TaigaClient":
        """Build a client from settings, logging in if no token is configured."""
        token = get_auth_token(settings)
        return cls(
            api_url=settings.api_url,
            auth_token=token,
            requests_per_second=settings.requests_per_second,
            verify_ssl=settings.verify_ssl,
            timeout=settings.timeout,
        )

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.api_url}/{path.lstrip('/')}"

    def _is_foreign(self, url: str) -> bool:
        return urlparse(url).netloc.lower() != urlparse(self.api_url).netloc.lower()

    @staticmethod
    def _decode_body(response: requests.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _send(self, method: str, path: str, stream: bool = False, **kwargs) -> TaigaResponse:
        self.rate_limiter.acquire()

        url = self._url(path)
        if self._is_foreign(url):
            # the bearer token is only for the Taiga API host
            kwargs["headers"] = {**kwargs.get("headers", {}), "Authorization": None}
        logger.debug(f"{method} {url}")
        response = self.session.request(
            method,
            url,
            stream=stream,
            timeout=self.timeout,
            verify=self.verify_ssl,
            **kwargs
        )

        if response.status_code >= 400:
            body = self._decode_body(response)
            logger.error(f"{method} {path} failed with HTTP {response.status_code}")
            raise handle_http_error(
                response.status_code,
                response.text,
                body if isinstance(body, (dict, list)) else None
            )

        data = response if stream else self._decode_body(response)
        return TaigaResponse(status=response.status_code, data=data, headers=dict(response.headers))

    def request(self, method: str, path: str, **kwargs) -> TaigaResponse:
        """Make a rate-limited request; GETs are retried on transient failures.

        Raises:
            TaigaError: On non-2xx responses (with appropriate subclass)
        """
        method = method.upper()
        if method != "GET":
            return self._send(method, path, **kwargs)

        retrying = Retrying(
            stop=stop_after_attempt(self.read_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(self.RETRYABLE_ERRORS),
            reraise=True
        )
        for attempt in retrying:
            with attempt:
                return self._send(method, path, **kwargs)

    def get(self, path: str, params: Optional[Dict[str, Any]] = None, stream: bool = False) -> TaigaResponse:
        """GET a resource or listing."""
        return self.request("GET", path, params=params, stream=stream)

    def post(
        self,
        path: str,
        json: Any = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> TaigaResponse:
        """POST a JSON body, or a multipart body when ``files`` is given."""
        return self.request("POST", path, json=json, data=data, files=files, params=params)

    def patch(self, path: str, json: Any = None) -> TaigaResponse:
        """PATCH (partial update) a resource."""
        return self.request("PATCH", path, json=json)

    def delete(self, path: str, params: Optional[Dict[str, Any]] = None) -> TaigaResponse:
        """DELETE a resource."""
        return self.request("DELETE", path, params=params)

    def close(self) -> None:
        self.session.close()
