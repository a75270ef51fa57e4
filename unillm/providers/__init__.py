"""
unillm Providers Module

Provider-specific clients that translate between the unified request
format and each provider's native chat API.
"""

from typing import Optional

import httpx

from .base import BaseClient
from .openai import OpenAIClient
from .ollama import OllamaClient
from ..core.config import ClientSettings
from ..core.models import Provider
from ..observability.metrics import StreamMetrics

__all__ = [
    "BaseClient",
    "OpenAIClient",
    "OllamaClient",
    "create_provider_client",
]


def create_provider_client(
    settings: ClientSettings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    metrics: Optional[StreamMetrics] = None,
) -> BaseClient:
    """
    Build the concrete client for ``settings.provider``.

    Ollama speaks its native API; every other provider is served by the
    OpenAI-compatible client.
    """
    provider = settings.provider

    if provider == Provider.OLLAMA:
        return OllamaClient(settings, transport=transport, metrics=metrics)

    if provider in (
        Provider.OPENAI,
        Provider.DEEPSEEK,
        Provider.SILICONFLOW,
        Provider.ZHIPU,
        Provider.OPENROUTER,
    ):
        return OpenAIClient(settings, transport=transport, metrics=metrics)

    raise ValueError(f"Unsupported provider: {provider}")
