"""
unillm - OpenAI-Compatible Provider Client

Client for providers exposing the OpenAI Chat Completions API:
OpenAI, DeepSeek, SiliconFlow, Zhipu (GLM) and OpenRouter.

Streams use Server-Sent Events (``data: {...}`` / ``data: [DONE]``);
reasoning models send thoughts in ``delta.reasoning_content``.
"""

from typing import Any, Dict, List, Tuple

from .base import BaseClient
from ..core.models import Message, ModelConfig


class OpenAIClient(BaseClient):
    """
    Client for OpenAI-compatible chat completion endpoints.

    Supports:
    - Chat completions (sync and streaming)
    - Reasoning output (``reasoning_content``) for DeepSeek-R1 style models
    - Multimodal user content parts (passed through unchanged)
    """

    @property
    def base_url(self) -> str:
        endpoint = self.settings.endpoint
        return endpoint if endpoint.endswith("/") else f"{endpoint}/"

    @property
    def chat_path(self) -> str:
        return "chat/completions"

    def _headers(self) -> Dict[str, str]:
        headers = super()._headers()
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        return headers

    def _build_payload(
        self,
        messages: List[Message],
        config: ModelConfig,
        stream: bool,
        reasoning: bool = False
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": self._convert_messages(messages),
            "temperature": config.temperature,
            "top_p": config.top_p,
            "max_tokens": config.max_tokens,
            "stream": stream,
        }

        if config.top_k is not None:
            payload["top_k"] = config.top_k

        if reasoning:
            # Ask routers (OpenRouter and similar) to forward reasoning
            payload["send_reasoning"] = True
            payload["reasoning"] = True

        return payload

    def _parse_chat_response(self, data: Dict[str, Any]) -> Tuple[str, str]:
        choices = data.get("choices") or [{}]
        message = choices[0].get("message") or {}
        return (
            message.get("content") or "",
            message.get("reasoning_content") or ""
        )
