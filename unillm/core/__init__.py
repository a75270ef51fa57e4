"""
unillm Core Module

Contains:
- Error taxonomy (errors.py)
- Data models (models.py)
- Client configuration (config.py)
"""

from .errors import (
    ErrorType,
    ErrorDetails,
    UnillmException,
    InfraError,
    ConnectionTimeoutError,
    ReadTimeoutError,
    UpstreamError,
    RateLimitedError,
    EmptyResponseError,
    StreamInterruptedError,
    SemanticError,
    InvalidAPIKeyError,
    PermissionDeniedError,
    ModelNotFoundError,
    InvalidRequestError,
    handle_provider_error,
    is_retryable_before_content,
)
from .models import (
    Provider,
    Role,
    Message,
    ModelConfig,
    ChatOptions,
    ChatResult,
    CotResult,
    OllamaModel,
    normalize_prompt,
)
from .config import (
    DEFAULT_MODEL_SETTINGS,
    LLMClientConfig,
    ClientSettings,
    normalize_endpoint,
)

__all__ = [
    # Errors
    "ErrorType",
    "ErrorDetails",
    "UnillmException",
    "InfraError",
    "ConnectionTimeoutError",
    "ReadTimeoutError",
    "UpstreamError",
    "RateLimitedError",
    "EmptyResponseError",
    "StreamInterruptedError",
    "SemanticError",
    "InvalidAPIKeyError",
    "PermissionDeniedError",
    "ModelNotFoundError",
    "InvalidRequestError",
    "handle_provider_error",
    "is_retryable_before_content",
    # Models
    "Provider",
    "Role",
    "Message",
    "ModelConfig",
    "ChatOptions",
    "ChatResult",
    "CotResult",
    "OllamaModel",
    "normalize_prompt",
    # Config
    "DEFAULT_MODEL_SETTINGS",
    "LLMClientConfig",
    "ClientSettings",
    "normalize_endpoint",
]
