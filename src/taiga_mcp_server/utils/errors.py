"""Taiga MCP Server Error Handling Utilities

Custom exception classes for Taiga API operations with standardized error messages.
"""

from typing import Optional, Dict, Any, List


class TaigaError(Exception):
    """Base exception for all Taiga-related errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """Initialize Taiga error.

        Args:
            message: Human-readable error message
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def status_code(self) -> Optional[int]:
        """HTTP status code that produced this error, if any."""
        return self.details.get("status_code")

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class CredentialsError(TaigaError):
    """Raised when the server cannot find usable Taiga credentials."""

    pass


class ValidationError(TaigaError):
    """Raised when request data fails validation.

    Examples:
    - Empty file name or file path
    - Unknown item kind
    - Invalid data rejected by Taiga (HTTP 400)
    """

    pass


class InvalidPayloadError(ValidationError):
    """Raised when an attachment payload is not decodable base64."""

    pass


class PermissionError(TaigaError):
    """Raised when user lacks permission for an operation.

    Corresponds to HTTP 403 Forbidden responses.
    """

    pass


class AuthenticationError(TaigaError):
    """Raised when authentication fails or token is invalid.

    Corresponds to HTTP 401 Unauthorized responses.
    """

    pass


class NotFoundError(TaigaError):
    """Raised when requested resource doesn't exist.

    Corresponds to HTTP 404 Not Found responses.
    """

    pass


class ConflictError(TaigaError):
    """Raised when operation conflicts with current resource state.

    Corresponds to HTTP 409 Conflict responses.
    """

    pass


class VersionConflictError(ConflictError):
    """Raised when Taiga rejects a write because its version is stale.

    Taiga reports this as HTTP 400 with a ``version`` key in the body, so it
    is told apart from a generic bad request by inspecting the response.
    """

    pass


class PayloadTooLargeError(TaigaError):
    """Raised when an upload exceeds the server's body size limit.

    Corresponds to HTTP 413 Payload Too Large responses.
    """

    pass


class RateLimitError(TaigaError):
    """Raised when API rate limit is exceeded.

    Corresponds to HTTP 429 Too Many Requests responses.
    Note: Should rarely occur due to client-side rate limiting.
    """

    pass


class ServerError(TaigaError):
    """Raised when Taiga server returns an error.

    Corresponds to HTTP 5xx responses (500, 502, 503, 504).
    """

    pass


class AttachmentFileNotFoundError(TaigaError):
    """Raised when a local file for upload cannot be found anywhere."""

    def __init__(self, file_path: str, searched_paths: List[str]):
        searched = "\n".join(searched_paths)
        super().__init__(
            f"File not found: {file_path}. Searched paths:\n{searched}",
            details={"file_path": file_path, "searched_paths": searched_paths}
        )
        self.file_path = file_path
        self.searched_paths = searched_paths


def _mentions_version(response_data: Any) -> bool:
    if isinstance(response_data, dict):
        return "version" in response_data
    return False


def handle_http_error(
    status_code: int,
    response_text: str,
    response_data: Any = None
) -> TaigaError:
    """Convert HTTP error response to appropriate exception.

    Args:
        status_code: HTTP status code
        response_text: Response body text
        response_data: Decoded JSON body, when the body was JSON

    Returns:
        Appropriate TaigaError subclass instance
    """
    details = {"status_code": status_code, "response": response_text}

    if status_code == 400:
        if _mentions_version(response_data):
            return VersionConflictError(
                "HTTP 400: Version parameter is invalid. "
                "The item may have been modified by another user.",
                details=details
            )
        return ValidationError(f"HTTP 400: Invalid data - {response_text}", details=details)

    error_map = {
        401: (AuthenticationError, "Authentication failed - please check credentials"),
        403: (PermissionError, "Permission denied"),
        404: (NotFoundError, "Not found"),
        409: (ConflictError, "Conflict with current resource state"),
        413: (PayloadTooLargeError, "Payload too large for upload"),
        429: (RateLimitError, "Too many requests"),
    }

    if status_code in error_map:
        error_class, summary = error_map[status_code]
        return error_class(f"HTTP {status_code}: {summary} - {response_text}", details=details)

    if 500 <= status_code < 600:
        return ServerError(
            f"HTTP {status_code}: Server error - {response_text}",
            details=details
        )

    return TaigaError(
        f"HTTP {status_code}: Unexpected error - {response_text}",
        details=details
    )
