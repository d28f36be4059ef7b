"""
Errors raised by the platform send adapters.

The Graph API reports failures as ``{"error": {"code", "type", "message"}}``;
classify_graph_error turns such a body into the matching subtype so callers
can distinguish throttling and credential problems from ordinary rejections.
"""

from typing import Any

from omnichat.models.enums import ErrorCode

RATE_LIMIT_CODES = frozenset({4, 17, 32, 613, 80007, 130429})
AUTH_ERROR_CODES = frozenset({190})


class PlatformSendError(Exception):
    """Base exception for provider send failures."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.PLATFORM_ERROR,
        provider_code: int | None = None,
        status: int | None = None,
    ):
        self.message = message
        self.error_code = error_code
        self.provider_code = provider_code
        self.status = status
        super().__init__(message)


class RateLimitError(PlatformSendError):
    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        provider_code: int | None = None,
        status: int | None = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, ErrorCode.RATE_LIMITED, provider_code, status)


class AuthenticationError(PlatformSendError):
    def __init__(self, message: str, provider_code: int | None = None, status: int | None = None):
        super().__init__(message, ErrorCode.AUTHENTICATION_FAILED, provider_code, status)


class UnsupportedOperationError(PlatformSendError):
    def __init__(self, operation: str, platform: str):
        super().__init__(
            f"{operation} is not supported on {platform}",
            ErrorCode.UNSUPPORTED_OPERATION,
        )


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def classify_graph_error(
    status: int, body: dict[str, Any] | None, retry_after: str | None = None
) -> PlatformSendError:
    """Build the exception matching a failed Graph API response."""
    error = (body or {}).get("error") or {}
    code = error.get("code")
    message = error.get("message") or f"HTTP {status}"

    if code in RATE_LIMIT_CODES or status == 429:
        return RateLimitError(
            f"Rate limit exceeded: {message}",
            retry_after=_parse_retry_after(retry_after),
            provider_code=code,
            status=status,
        )
    if code in AUTH_ERROR_CODES or error.get("type") == "OAuthException" or status == 401:
        return AuthenticationError(
            f"Authentication failed: {message}", provider_code=code, status=status
        )
    return PlatformSendError(
        f"Meta API Error ({code if code is not None else status}): {message}",
        provider_code=code,
        status=status,
    )
