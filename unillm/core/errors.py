"""
unillm - Error Definitions

Error taxonomy with infra vs semantic classification.

- Infra errors: transport problems (timeouts, 5xx, rate limits). Retryable
  by the caller as long as no output has been produced.
- Semantic errors: the request itself is wrong (bad key, unknown model).
  Never retryable.

The library never retries on its own; these types only carry the
information a caller needs to decide.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

import httpx


class ErrorType(str, Enum):
    """Error classification."""
    INFRA = "infra_error"
    SEMANTIC = "semantic_error"


@dataclass
class ErrorDetails:
    """Full error information."""
    code: str
    message: str
    type: ErrorType

    provider: Optional[str] = None
    request_id: str = ""

    retryable: bool = False
    retry_after: Optional[int] = None
    partial_content: Optional[str] = None
    http_status: Optional[int] = None

    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "code": self.code,
            "message": self.message,
            "type": self.type.value,
            "request_id": self.request_id,
            "retryable": self.retryable,
        }

        if self.provider:
            result["provider"] = self.provider
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        if self.partial_content:
            result["partial_content"] = self.partial_content
        if self.http_status is not None:
            result["http_status"] = self.http_status
        if self.details:
            result["details"] = self.details

        return {"error": result}


class UnillmException(Exception):
    """Base exception for all unillm errors."""

    def __init__(self, error: ErrorDetails):
        self.error = error
        super().__init__(error.message)


# ============================================================
# Infra Errors
# ============================================================

class InfraError(UnillmException):
    """Base class for infrastructure errors."""
    pass


class ConnectionTimeoutError(InfraError):
    """Failed to connect to provider."""

    def __init__(self, provider: str, request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="connection_timeout",
                message=f"Failed to connect to {provider} API",
                type=ErrorType.INFRA,
                provider=provider,
                request_id=request_id,
                retryable=True,
                retry_after=5
            )
        )


class ReadTimeoutError(InfraError):
    """Provider did not respond in time."""

    def __init__(self, provider: str, request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="read_timeout",
                message=f"{provider} did not respond within timeout",
                type=ErrorType.INFRA,
                provider=provider,
                request_id=request_id,
                retryable=True,
                retry_after=10
            )
        )


class UpstreamError(InfraError):
    """Provider returned a server error."""

    def __init__(
        self,
        provider: str,
        status_code: int,
        message: str = "",
        request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                code=f"upstream_{status_code}",
                message=message or f"{provider} returned error {status_code}",
                type=ErrorType.INFRA,
                provider=provider,
                request_id=request_id,
                retryable=True,
                retry_after=30,
                http_status=status_code
            )
        )


class RateLimitedError(InfraError):
    """Rate limit exceeded."""

    def __init__(
        self,
        provider: str,
        retry_after: int = 60,
        request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                code="rate_limited",
                message=f"{provider} rate limit exceeded. Retry after {retry_after} seconds.",
                type=ErrorType.INFRA,
                provider=provider,
                request_id=request_id,
                retryable=True,
                retry_after=retry_after,
                http_status=429
            )
        )


class EmptyResponseError(InfraError):
    """Provider accepted the request but sent no readable body."""

    def __init__(self, provider: str, request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="empty_response",
                message=f"{provider} response has no readable stream",
                type=ErrorType.INFRA,
                provider=provider,
                request_id=request_id,
                retryable=True
            )
        )


class StreamInterruptedError(InfraError):
    """Stream failed after it started. Never retryable."""

    def __init__(
        self,
        provider: str,
        partial_content: str = "",
        request_id: str = "",
        cause: Optional[BaseException] = None
    ):
        message = "Stream was interrupted"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(
            ErrorDetails(
                code="stream_interrupted",
                message=message,
                type=ErrorType.INFRA,
                provider=provider,
                request_id=request_id,
                retryable=False,
                partial_content=partial_content or None
            )
        )
        self.cause = cause


# ============================================================
# Semantic Errors
# ============================================================

class SemanticError(UnillmException):
    """Base class for semantic errors (caller must fix the request)."""
    pass


class InvalidAPIKeyError(SemanticError):
    """Provider rejected the API key."""

    def __init__(self, provider: str, message: str = "", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="invalid_api_key",
                message=message or f"{provider} rejected the API key",
                type=ErrorType.SEMANTIC,
                provider=provider,
                request_id=request_id,
                http_status=401
            )
        )


class PermissionDeniedError(SemanticError):
    """Key is valid but not allowed to use the model or endpoint."""

    def __init__(self, provider: str, message: str = "", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="permission_denied",
                message=message or f"{provider} denied access",
                type=ErrorType.SEMANTIC,
                provider=provider,
                request_id=request_id,
                http_status=403
            )
        )


class ModelNotFoundError(SemanticError):
    """Model does not exist at the provider."""

    def __init__(self, provider: str, message: str = "", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                code="model_not_found",
                message=message or f"Model not found at {provider}",
                type=ErrorType.SEMANTIC,
                provider=provider,
                request_id=request_id,
                http_status=404
            )
        )


class InvalidRequestError(SemanticError):
    """Provider rejected the request body."""

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int = 400,
        request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                code="invalid_request",
                message=message,
                type=ErrorType.SEMANTIC,
                provider=provider,
                request_id=request_id,
                http_status=status_code
            )
        )


# ============================================================
# Conversion helpers
# ============================================================

def _error_message(response: httpx.Response) -> str:
    """
    Best-effort message from an error body.

    OpenAI-compatible providers send {"error": {"message": ...}},
    Ollama sends {"error": "..."}.
    """
    try:
        body = response.json()
    except httpx.ResponseNotRead:
        return response.reason_phrase
    except ValueError:
        return response.text or response.reason_phrase

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    if error:
        return str(error)
    return response.text


def handle_provider_error(
    error: Exception,
    provider: str,
    request_id: str = ""
) -> UnillmException:
    """Convert an httpx error into a canonical unillm exception."""
    if isinstance(error, UnillmException):
        return error

    if isinstance(error, httpx.TimeoutException):
        if isinstance(error, httpx.ConnectTimeout):
            return ConnectionTimeoutError(provider, request_id)
        return ReadTimeoutError(provider, request_id)

    if isinstance(error, httpx.ConnectError):
        return ConnectionTimeoutError(provider, request_id)

    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        status_code = response.status_code
        message = f"API request failed: {status_code} {response.reason_phrase}\n{_error_message(response)}"

        if status_code == 401:
            return InvalidAPIKeyError(provider, message, request_id)

        if status_code == 403:
            return PermissionDeniedError(provider, message, request_id)

        if status_code == 404:
            return ModelNotFoundError(provider, message, request_id)

        if status_code == 429:
            retry_after = 60
            if "retry-after" in response.headers:
                try:
                    retry_after = int(response.headers["retry-after"])
                except ValueError:
                    pass
            return RateLimitedError(provider, retry_after, request_id)

        if status_code >= 500:
            return UpstreamError(provider, status_code, message, request_id)

        return InvalidRequestError(provider, message, status_code, request_id)

    return InfraError(
        ErrorDetails(
            code="unknown_error",
            message=str(error) or error.__class__.__name__,
            type=ErrorType.INFRA,
            provider=provider,
            request_id=request_id,
            retryable=True
        )
    )


def is_retryable_before_content(error: UnillmException) -> bool:
    """
    Check if a caller may retry.

    Only infra errors that happened before any output was produced qualify.
    """
    return (
        isinstance(error, InfraError) and
        error.error.retryable and
        not error.error.partial_content
    )
