"""
unillm - Unified LLM Client

One interface to OpenAI-compatible providers (OpenAI, DeepSeek,
SiliconFlow, Zhipu, OpenRouter) and local Ollama models, with streaming
output that carries model reasoning inline as <think> ... </think>.
"""

__version__ = "1.0.0"

from .client import LLMClient
from .core.config import DEFAULT_MODEL_SETTINGS, LLMClientConfig
from .core.models import ChatOptions, ChatResult, CotResult, Message, Provider
from .streaming import StreamAdapter, WireSchema, normalize_stream
from .utils.llm_output import (
    extract_answer,
    extract_json_from_llm_output,
    extract_think_chain,
    split_think_chain,
)

__all__ = [
    "LLMClient",
    "LLMClientConfig",
    "DEFAULT_MODEL_SETTINGS",
    "ChatOptions",
    "ChatResult",
    "CotResult",
    "Message",
    "Provider",
    "StreamAdapter",
    "WireSchema",
    "normalize_stream",
    "extract_answer",
    "extract_json_from_llm_output",
    "extract_think_chain",
    "split_think_chain",
]
