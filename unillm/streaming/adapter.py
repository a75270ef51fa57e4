"""
unillm - Stream Adapter

Wires an upstream byte stream (a provider HTTP response body) to a
downstream text stream with inline reasoning markers.

Per upstream read:
1. Decode bytes to text (incremental, multi-byte safe)
2. Frame complete lines, decode each into a Record
3. Dispatch the record to the Tag-State Emitter
4. Yield every produced token immediately

The adapter is an async iterator: the consumer pulls, and the next
upstream chunk is only read once all tokens from the current one have
been consumed.

On failure after the stream has started, an open ``<think>`` span is
closed (best effort) before StreamInterruptedError reaches the consumer,
so downstream markup stays balanced.
"""

import asyncio
import codecs
import time
from typing import AsyncIterator, Awaitable, Callable, Iterator, List, Optional, Union

from .decoder import Record, WireSchema, get_decoder
from .emitter import TagStateEmitter
from .framer import LineFramer
from ..core.errors import StreamInterruptedError
from ..observability.logging import get_logger
from ..observability.metrics import StreamMetrics


logger = get_logger(__name__)

RawChunk = Union[bytes, str]
DecodeErrorObserver = Callable[[str, Exception], None]

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


class StreamAdapter:
    """
    Normalizes one provider stream.

    Usage:
        adapter = StreamAdapter(response.aiter_raw(), WireSchema.OPENAI_SSE,
                                on_close=response.aclose)
        async with adapter:
            async for token in adapter:
                print(token, end="")

    One adapter serves exactly one request; it owns its framer and
    emitter state and must not be shared.
    """

    def __init__(
        self,
        source: AsyncIterator[RawChunk],
        schema: WireSchema,
        *,
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
        on_decode_error: Optional[DecodeErrorObserver] = None,
        include_reasoning: bool = True,
        request_id: str = "",
        provider: str = "",
        metrics: Optional[StreamMetrics] = None,
    ):
        self.schema = schema
        self.request_id = request_id
        self.provider = provider

        self.framer = LineFramer()
        self.emitter = TagStateEmitter(include_reasoning=include_reasoning)

        self._source = source
        self._decode_line = get_decoder(schema)
        self._text_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._on_close = on_close
        self._on_decode_error = on_decode_error or self._log_decode_error
        self._metrics = metrics

        self._iterator: Optional[AsyncIterator[str]] = None
        self._released = False

        # What the consumer has received so far, for error reports
        self._forwarded: List[str] = []
        self.decode_failures = 0

    # ============================================================
    # Async iterator protocol
    # ============================================================

    def __aiter__(self) -> AsyncIterator[str]:
        if self._iterator is None:
            self._iterator = self._run()
        return self._iterator

    async def __aenter__(self) -> "StreamAdapter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        """Stop reading and release the upstream connection."""
        if self._iterator is not None:
            await self._iterator.aclose()
        await self._release()

    async def collect(self) -> str:
        """Drain the stream into one string."""
        return "".join([token async for token in self])

    def to_response(self):
        """
        Wrap the stream in a plain-text FastAPI streaming response.

        The upstream connection is released once the response is done,
        including when the client disconnects early.
        """
        from fastapi.responses import StreamingResponse
        from starlette.background import BackgroundTask

        return StreamingResponse(
            self,
            media_type="text/plain",
            headers=dict(STREAM_HEADERS),
            background=BackgroundTask(self.aclose),
        )

    @property
    def partial_content(self) -> str:
        """Everything forwarded downstream so far."""
        return "".join(self._forwarded)

    # ============================================================
    # Pipeline
    # ============================================================

    async def _run(self) -> AsyncIterator[str]:
        started_at = time.perf_counter()
        status = "completed"

        try:
            async for chunk in self._source:
                for token in self._process(self._decode_chunk(chunk)):
                    yield token

                if self.emitter.terminated:
                    break

            if not self.emitter.terminated:
                # Upstream closed without a terminator record
                for token in self._process(self._text_decoder.decode(b"", final=True)):
                    yield token

                remainder = self.framer.flush_remainder()
                if remainder and remainder.strip():
                    logger.debug(
                        "Discarding incomplete trailing line",
                        provider=self.provider,
                        request_id=self.request_id,
                        remainder_length=len(remainder),
                    )

                for token in self._forward(self.emitter.on_terminate()):
                    yield token

        except (GeneratorExit, asyncio.CancelledError):
            status = "cancelled"
            raise

        except Exception as e:
            status = "error"
            logger.warning(
                "Stream failed after start",
                provider=self.provider,
                request_id=self.request_id,
                error=str(e),
                in_reasoning=self.emitter.in_reasoning,
            )

            for token in self._forward(self.emitter.on_terminate()):
                yield token

            if isinstance(e, StreamInterruptedError):
                raise
            raise StreamInterruptedError(
                provider=self.provider,
                partial_content=self.partial_content,
                request_id=self.request_id,
                cause=e,
            ) from e

        finally:
            self.framer.reset()
            await self._release()
            logger.debug(
                "Stream finished",
                provider=self.provider,
                request_id=self.request_id,
                status=status,
                reasoning_spans=self.emitter.reasoning_spans,
                decode_failures=self.decode_failures,
            )
            if self._metrics is not None:
                self._metrics.record_stream(
                    provider=self.provider,
                    status=status,
                    duration_seconds=time.perf_counter() - started_at,
                )

    def _decode_chunk(self, chunk: RawChunk) -> str:
        if isinstance(chunk, str):
            return chunk
        return self._text_decoder.decode(chunk)

    def _process(self, text: str) -> Iterator[str]:
        """Frame, decode and dispatch one piece of text."""
        for line in self.framer.feed(text):
            record = self._decode_line(line)
            if record is None:
                continue

            if record.is_unparseable:
                self.decode_failures += 1
                if self._metrics is not None:
                    self._metrics.record_decode_failure(self.provider)
                self._on_decode_error(record.line, record.error)
                continue

            self._count(record)
            for token in self._forward(self.emitter.dispatch(record)):
                yield token

            if self.emitter.terminated:
                # Nothing after the terminator is forwarded
                return

    def _forward(self, tokens: List[str]) -> List[str]:
        self._forwarded.extend(tokens)
        return tokens

    def _count(self, record: Record):
        if self._metrics is None:
            return
        if record.reasoning_delta and self.emitter.include_reasoning:
            self._metrics.record_delta(self.provider, "reasoning")
        if record.content_delta:
            self._metrics.record_delta(self.provider, "content")

    def _log_decode_error(self, line: str, error: Exception):
        logger.warning(
            "Dropped malformed stream line",
            provider=self.provider,
            request_id=self.request_id,
            line=line[:200],
            error=str(error),
        )

    async def _release(self):
        if self._released:
            return
        self._released = True

        if self._on_close is not None:
            await self._on_close()
            return

        close = getattr(self._source, "aclose", None)
        if close is not None:
            await close()


def normalize_stream(
    source: AsyncIterator[RawChunk],
    schema: WireSchema,
    **kwargs
) -> StreamAdapter:
    """Factory function to create a stream adapter."""
    return StreamAdapter(source, schema, **kwargs)
