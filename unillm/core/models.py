"""
unillm - Core Data Models

Provider identities, messages and call results shared by all clients.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..streaming.decoder import WireSchema


# ============================================================
# Enums
# ============================================================

class Provider(str, Enum):
    """Supported model providers."""
    OPENAI = "openai"
    OLLAMA = "ollama"
    ZHIPU = "zhipu"
    OPENROUTER = "openrouter"
    SILICONFLOW = "siliconflow"
    DEEPSEEK = "deepseek"

    @classmethod
    def resolve(cls, name: Optional[str]) -> Optional["Provider"]:
        """Case-insensitive lookup; ``None`` for unknown names."""
        if isinstance(name, Provider):
            return name
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            return None

    @property
    def wire_schema(self) -> WireSchema:
        if self == Provider.OLLAMA:
            return WireSchema.OLLAMA_JSONL
        return WireSchema.OPENAI_SSE

    @property
    def default_endpoint(self) -> str:
        return DEFAULT_ENDPOINTS[self]


DEFAULT_ENDPOINTS: Dict[Provider, str] = {
    Provider.OPENAI: "https://api.openai.com/v1",
    Provider.OLLAMA: "http://localhost:11434/api",
    Provider.ZHIPU: "https://open.bigmodel.cn/api/paas/v4",
    Provider.OPENROUTER: "https://openrouter.ai/api/v1",
    Provider.SILICONFLOW: "https://api.siliconflow.cn/v1",
    Provider.DEEPSEEK: "https://api.deepseek.com/v1",
}


class Role(str, Enum):
    """Message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


# ============================================================
# Messages
# ============================================================

@dataclass
class Message:
    """
    One chat message.

    ``content`` is either plain text or a list of OpenAI-style content
    parts ({"type": "text", ...} / {"type": "image_url", ...}).
    """
    role: Role
    content: Union[str, List[Dict[str, Any]]]
    name: Optional[str] = None

    @classmethod
    def user(cls, content: Union[str, List[Dict[str, Any]]]) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=Role.ASSISTANT, content=content)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(
            role=Role(data.get("role", "user")),
            content=data.get("content", ""),
            name=data.get("name")
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.name:
            result["name"] = self.name
        return result


MessageInput = Union[str, Message, Dict[str, Any]]
Prompt = Union[str, List[MessageInput]]


def normalize_prompt(prompt: Prompt) -> List[Message]:
    """A bare string becomes a single user message."""
    if isinstance(prompt, str):
        return [Message.user(prompt)]

    messages = []
    for item in prompt:
        if isinstance(item, Message):
            messages.append(item)
        elif isinstance(item, dict):
            messages.append(Message.from_dict(item))
        else:
            messages.append(Message.user(str(item)))
    return messages


# ============================================================
# Options and results
# ============================================================

@dataclass
class ModelConfig:
    """Sampling defaults of one client."""
    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: int = 8192
    top_k: Optional[int] = None


@dataclass
class ChatOptions:
    """Per-call overrides. ``None`` means "use the client default"."""
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    max_tokens: Optional[int] = None
    top_k: Optional[int] = None

    def resolve(self, defaults: ModelConfig) -> ModelConfig:
        return ModelConfig(
            temperature=self.temperature if self.temperature is not None else defaults.temperature,
            top_p=self.top_p if self.top_p is not None else defaults.top_p,
            max_tokens=self.max_tokens if self.max_tokens is not None else defaults.max_tokens,
            top_k=self.top_k if self.top_k is not None else defaults.top_k,
        )


@dataclass
class ChatResult:
    """Result of a non-streaming chat call."""
    text: str
    reasoning: str = ""
    model: str = ""
    provider: str = ""
    latency_ms: int = 0
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class CotResult:
    """Answer and chain of thought, separated."""
    answer: str
    cot: str


@dataclass
class OllamaModel:
    """Locally installed Ollama model."""
    name: str
    modified_at: str = ""
    size: int = 0
