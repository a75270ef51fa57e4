"""
unillm - Client Configuration

Validates user configuration and resolves it into the settings a
provider client is built with.

Environment variables (LLMClientConfig.from_env):
    LLM_PROVIDER, LLM_ENDPOINT, LLM_API_KEY, LLM_MODEL,
    LLM_TEMPERATURE, LLM_MAX_TOKENS, LLM_TOP_P, LLM_TOP_K, LLM_TIMEOUT
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import ModelConfig, Provider


DEFAULT_MODEL_SETTINGS = {
    "temperature": 0.7,
    "top_p": 0.9,
    "max_tokens": 8192,
}

DEFAULT_TIMEOUT = 60.0


class LLMClientConfig(BaseModel):
    """User-facing client configuration."""

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    provider_id: str = Field(default=Provider.OPENAI.value, alias="providerId")
    endpoint: str = ""
    api_key: str = Field(default="", alias="apiKey")
    model_name: str = Field(default="", alias="modelName")
    temperature: float = Field(default=DEFAULT_MODEL_SETTINGS["temperature"], ge=0.0, le=2.0)
    max_tokens: int = Field(default=DEFAULT_MODEL_SETTINGS["max_tokens"], gt=0, alias="maxTokens")
    top_p: float = Field(default=DEFAULT_MODEL_SETTINGS["top_p"], gt=0.0, le=1.0, alias="topP")
    top_k: Optional[int] = Field(default=None, gt=0, alias="topK")
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)

    @field_validator("provider_id", mode="before")
    @classmethod
    def _provider_lower(cls, value):
        if value is None:
            return Provider.OPENAI.value
        return str(value).strip().lower() or Provider.OPENAI.value

    @field_validator("endpoint", "api_key", "model_name", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @classmethod
    def from_env(
        cls,
        prefix: str = "LLM_",
        environ: Optional[Mapping[str, str]] = None
    ) -> "LLMClientConfig":
        """Build a config from environment variables; unset ones keep defaults."""
        env = os.environ if environ is None else environ
        names = {
            "provider_id": "PROVIDER",
            "endpoint": "ENDPOINT",
            "api_key": "API_KEY",
            "model_name": "MODEL",
            "temperature": "TEMPERATURE",
            "max_tokens": "MAX_TOKENS",
            "top_p": "TOP_P",
            "top_k": "TOP_K",
            "timeout": "TIMEOUT",
        }
        values = {}
        for field_name, suffix in names.items():
            raw = env.get(f"{prefix}{suffix}")
            if raw is not None and raw.strip():
                values[field_name] = raw.strip()
        return cls.model_validate(values)


def normalize_endpoint(provider: str, endpoint: Optional[str]) -> Optional[str]:
    """
    Accept endpoints written for older configurations.

    - Ollama endpoints pointing at the OpenAI-compatible ``/v1`` path are
      moved to the native ``/api`` path.
    - A trailing ``/chat/completions`` is removed; clients append their
      own request path.
    """
    if not endpoint:
        return endpoint

    if (provider or "").lower() == Provider.OLLAMA.value:
        if endpoint.endswith("v1/") or endpoint.endswith("v1"):
            head, _, tail = endpoint.rpartition("v1")
            endpoint = f"{head}api{tail}"

    if "/chat/completions" in endpoint:
        endpoint = endpoint.replace("/chat/completions", "")

    return endpoint


@dataclass
class ClientSettings:
    """Resolved settings handed to a provider client."""
    provider: Provider
    endpoint: str
    api_key: str = ""
    model: str = ""
    timeout: float = DEFAULT_TIMEOUT
    model_config: ModelConfig = field(default_factory=ModelConfig)

    @classmethod
    def from_config(cls, config: LLMClientConfig, provider: Provider) -> "ClientSettings":
        endpoint = normalize_endpoint(provider.value, config.endpoint) or provider.default_endpoint
        return cls(
            provider=provider,
            endpoint=endpoint,
            api_key=config.api_key,
            model=config.model_name,
            timeout=config.timeout,
            model_config=ModelConfig(
                temperature=config.temperature,
                top_p=config.top_p,
                max_tokens=config.max_tokens,
                top_k=config.top_k,
            ),
        )
