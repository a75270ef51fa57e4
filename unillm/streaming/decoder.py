"""
unillm - Record Decoder

Turns one framed line of a provider stream into a Record.

Two wire schemas are supported:
- OPENAI_SSE: ``data: {...}`` lines with a ``data: [DONE]`` sentinel
  (OpenAI, DeepSeek, SiliconFlow, Zhipu, OpenRouter)
- OLLAMA_JSONL: one bare JSON object per line, terminated by the
  connection closing (Ollama ``/api/chat``)

Decoders are pure functions: they never raise for malformed payloads,
they return an UNPARSEABLE record instead.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional


DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class WireSchema(str, Enum):
    """Per-line JSON shape used by a provider family."""
    OPENAI_SSE = "openai_sse"
    OLLAMA_JSONL = "ollama_jsonl"


class RecordKind(str, Enum):
    """Kinds of decoded records."""
    DELTA = "delta"
    TERMINATOR = "terminator"
    UNPARSEABLE = "unparseable"


@dataclass
class Record:
    """One decoded stream record."""
    kind: RecordKind
    reasoning_delta: Optional[str] = None
    content_delta: Optional[str] = None

    # Only set for UNPARSEABLE records
    error: Optional[Exception] = None
    line: str = ""

    @classmethod
    def delta(
        cls,
        reasoning: Optional[str] = None,
        content: Optional[str] = None
    ) -> "Record":
        return cls(
            kind=RecordKind.DELTA,
            reasoning_delta=reasoning,
            content_delta=content
        )

    @classmethod
    def terminator(cls) -> "Record":
        return cls(kind=RecordKind.TERMINATOR)

    @classmethod
    def unparseable(cls, error: Exception, line: str) -> "Record":
        return cls(kind=RecordKind.UNPARSEABLE, error=error, line=line)

    @property
    def is_terminator(self) -> bool:
        return self.kind == RecordKind.TERMINATOR

    @property
    def is_unparseable(self) -> bool:
        return self.kind == RecordKind.UNPARSEABLE


def _text(value: Any) -> Optional[str]:
    """Only strings count as deltas; null or other JSON types are skipped."""
    return value if isinstance(value, str) else None


def _child(container: Any, key: str) -> Any:
    if isinstance(container, dict):
        return container.get(key)
    return None


def decode_openai_line(line: str) -> Optional[Record]:
    """
    Decode one OpenAI-compatible SSE line.

    Lines without the ``data:`` prefix (comments, ``event:`` fields,
    blank keep-alives) are ignored.
    """
    if not line or not line.startswith(DATA_PREFIX):
        return None

    payload = line[len(DATA_PREFIX):].strip()
    if payload == DONE_SENTINEL:
        return Record.terminator()

    try:
        data = json.loads(payload)
    except (ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError; deep nesting raises RecursionError
        return Record.unparseable(e, line)

    choices = _child(data, "choices")
    first_choice = choices[0] if isinstance(choices, list) and choices else None
    delta = _child(first_choice, "delta")

    return Record.delta(
        reasoning=_text(_child(delta, "reasoning_content")),
        content=_text(_child(delta, "content"))
    )


def decode_ollama_line(line: str) -> Optional[Record]:
    """Decode one Ollama ``/api/chat`` JSON line."""
    if not line:
        return None

    try:
        data = json.loads(line)
    except (ValueError, RecursionError) as e:
        return Record.unparseable(e, line)

    message = _child(data, "message")

    return Record.delta(
        reasoning=_text(_child(message, "thinking")),
        content=_text(_child(message, "content"))
    )


LineDecoder = Callable[[str], Optional[Record]]


def get_decoder(schema: WireSchema) -> LineDecoder:
    """Return the line decoder for a wire schema."""
    if schema == WireSchema.OPENAI_SSE:
        return decode_openai_line
    if schema == WireSchema.OLLAMA_JSONL:
        return decode_ollama_line
    raise ValueError(f"Unsupported wire schema: {schema}")
