"""
unillm - Ollama Provider Client

Client for a local Ollama server using the native ``/api/chat`` endpoint.
Streams are newline-delimited JSON objects; thinking models send their
reasoning in ``message.thinking``.
"""

from typing import Any, Dict, List, Tuple

from .base import BaseClient
from ..core.models import Message, ModelConfig, OllamaModel, Role
from ..observability.logging import get_logger


logger = get_logger(__name__)


class OllamaClient(BaseClient):
    """Client for the Ollama native chat API."""

    @property
    def base_url(self) -> str:
        endpoint = self.settings.endpoint.rstrip("/")
        if endpoint.endswith("/api"):
            endpoint = endpoint[:-4]
        return f"{endpoint}/"

    @property
    def chat_path(self) -> str:
        return "api/chat"

    def _build_payload(
        self,
        messages: List[Message],
        config: ModelConfig,
        stream: bool,
        reasoning: bool = False
    ) -> Dict[str, Any]:
        options: Dict[str, Any] = {
            "temperature": config.temperature,
            "top_p": config.top_p,
            "num_predict": config.max_tokens,
        }
        if config.top_k is not None:
            options["top_k"] = config.top_k

        return {
            "model": self.model,
            "messages": self._convert_messages(messages),
            "stream": stream,
            "options": options,
        }

    def _convert_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        """
        Ollama takes plain-text content plus a separate ``images`` list of
        base64 payloads, so OpenAI-style content parts are flattened.
        """
        result = []

        for msg in messages:
            if isinstance(msg.content, str):
                result.append(msg.to_dict())
                continue

            texts: List[str] = []
            images: List[str] = []
            for part in msg.content:
                part_type = part.get("type")
                if part_type == "text":
                    texts.append(part.get("text", ""))
                elif part_type == "image_url":
                    url = (part.get("image_url") or {}).get("url", "")
                    if url.startswith("data:") and "," in url:
                        images.append(url.split(",", 1)[1])
                    else:
                        logger.warning("Skipping non-inline image for Ollama", url=url[:100])

            ollama_msg: Dict[str, Any] = {"role": msg.role.value, "content": "\n".join(texts)}
            if images and msg.role == Role.USER:
                ollama_msg["images"] = images
            result.append(ollama_msg)

        return result

    def _parse_chat_response(self, data: Dict[str, Any]) -> Tuple[str, str]:
        message = data.get("message") or {}
        return (
            message.get("content") or "",
            message.get("thinking") or ""
        )

    async def get_models(self) -> List[OllamaModel]:
        """
        List locally installed models.

        Returns an empty list when the server is unreachable or answers
        with something unexpected.
        """
        try:
            response = await self.client.get("api/tags")
            response.raise_for_status()
            data = response.json()
        except Exception as e:
            logger.warning("Failed to list Ollama models", error=str(e))
            return []

        models = data.get("models") if isinstance(data, dict) else None
        if not models:
            return []

        return [
            OllamaModel(
                name=model.get("name", ""),
                modified_at=model.get("modified_at", ""),
                size=model.get("size", 0)
            )
            for model in models
        ]
