"""
unillm - Tag-State Emitter

Two-state machine that interleaves reasoning and answer deltas into one
text stream, bracketing reasoning with inline ``<think>`` markers.
"""

from enum import Enum
from typing import List

from .decoder import Record


THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"


class EmitterState(str, Enum):
    """Emitter states."""
    PLAIN = "plain"
    REASONING = "reasoning"


class TagStateEmitter:
    """
    Decides where reasoning markers go.

    Every call returns the output tokens it produced, in order. Markers are
    always balanced: a ``<think>`` is closed before any answer text, at
    terminate, and (via ``on_terminate``) when the stream fails.

    Usage:
        emitter = TagStateEmitter()
        emitter.on_reasoning("because 1+1")  # ["<think>", "because 1+1"]
        emitter.on_content("=2")             # ["</think>", "=2"]
        emitter.on_terminate()               # []
    """

    def __init__(self, include_reasoning: bool = True):
        self.include_reasoning = include_reasoning
        self.state = EmitterState.PLAIN
        self.terminated = False

        self.reasoning_spans = 0

    @property
    def in_reasoning(self) -> bool:
        return self.state == EmitterState.REASONING

    def on_reasoning(self, text: str) -> List[str]:
        """Emit a reasoning delta, opening a span if needed."""
        if not text or self.terminated or not self.include_reasoning:
            return []

        tokens: List[str] = []
        if self.state == EmitterState.PLAIN:
            tokens.append(THINK_OPEN)
            self.state = EmitterState.REASONING
            self.reasoning_spans += 1

        tokens.append(text)
        return tokens

    def on_content(self, text: str) -> List[str]:
        """Emit an answer delta, closing an open span first."""
        if not text or self.terminated:
            return []

        tokens = self._close_span()
        tokens.append(text)
        return tokens

    def on_terminate(self) -> List[str]:
        """Close any open span. Idempotent; no tokens are produced afterwards."""
        if self.terminated:
            return []

        tokens = self._close_span()
        self.terminated = True
        return tokens

    def dispatch(self, record: Record) -> List[str]:
        """Apply one decoded record: reasoning first, then content."""
        if record.is_terminator:
            return self.on_terminate()

        tokens: List[str] = []
        if record.reasoning_delta:
            tokens.extend(self.on_reasoning(record.reasoning_delta))
        if record.content_delta:
            tokens.extend(self.on_content(record.content_delta))
        return tokens

    def _close_span(self) -> List[str]:
        if self.state == EmitterState.REASONING:
            self.state = EmitterState.PLAIN
            return [THINK_CLOSE]
        return []
