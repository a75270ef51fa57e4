"""
unillm - Streaming Module

Normalizes provider chat-completion streams into one text stream with
inline reasoning markers:
- Line framing over arbitrary chunk boundaries
- Record decoding for OpenAI-compatible SSE and Ollama JSON lines
- Balanced <think> ... </think> emission
- Error propagation with marker balancing
"""

from .framer import LineFramer
from .decoder import (
    Record,
    RecordKind,
    WireSchema,
    decode_openai_line,
    decode_ollama_line,
    get_decoder,
)
from .emitter import (
    EmitterState,
    TagStateEmitter,
    THINK_OPEN,
    THINK_CLOSE,
)
from .adapter import (
    StreamAdapter,
    normalize_stream,
)

__all__ = [
    # Framer
    "LineFramer",
    # Decoder
    "Record",
    "RecordKind",
    "WireSchema",
    "decode_openai_line",
    "decode_ollama_line",
    "get_decoder",
    # Emitter
    "EmitterState",
    "TagStateEmitter",
    "THINK_OPEN",
    "THINK_CLOSE",
    # Adapter
    "StreamAdapter",
    "normalize_stream",
]
