"""
unillm - Pytest Configuration

Configures:
- Integration test markers (skip by default)
- Chunked byte sources standing in for provider response bodies
- Isolated Prometheus registries for metric assertions
"""

import os
from typing import AsyncIterator, Iterable, List, Optional, Union

import httpx
import pytest
from prometheus_client import CollectorRegistry

from unillm.observability.metrics import StreamMetrics


# ============================================================
# Environment Configuration
# ============================================================

def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


RUN_INTEGRATION = _is_truthy(os.getenv("RUN_INTEGRATION"))


# ============================================================
# Pytest Markers
# ============================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires RUN_INTEGRATION=1)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION=1."""
    skip_integration = pytest.mark.skip(
        reason="Integration test - set RUN_INTEGRATION=1 to run"
    )

    for item in items:
        if "integration" in item.keywords and not RUN_INTEGRATION:
            item.add_marker(skip_integration)


# ============================================================
# Upstream Sources
# ============================================================

class ChunkSource:
    """
    Async byte source that records how it is consumed.

    Optionally raises ``fail_with`` after all chunks were handed out,
    like a connection dropping mid-body.
    """

    def __init__(
        self,
        chunks: Iterable[Union[bytes, str]],
        fail_with: Optional[Exception] = None
    ):
        self.chunks = list(chunks)
        self.fail_with = fail_with
        self.reads = 0
        self.closed = False

    def __aiter__(self) -> AsyncIterator[Union[bytes, str]]:
        return self._iterate()

    async def _iterate(self):
        for chunk in self.chunks:
            self.reads += 1
            yield chunk
        if self.fail_with is not None:
            raise self.fail_with

    async def aclose(self):
        self.closed = True


class ChunkedByteStream(httpx.AsyncByteStream):
    """Response body for httpx.MockTransport delivered in several chunks."""

    def __init__(self, chunks: List[bytes], fail_with: Optional[Exception] = None):
        self.chunks = chunks
        self.fail_with = fail_with
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.fail_with is not None:
            raise self.fail_with

    async def aclose(self):
        self.closed = True


def sse_body(*payloads: str) -> bytes:
    """Build an OpenAI-style SSE body from raw ``data:`` payloads."""
    return "".join(f"data: {payload}\n\n" for payload in payloads).encode("utf-8")


def split_every(data: bytes, size: int) -> List[bytes]:
    return [data[i:i + size] for i in range(0, len(data), size)]


@pytest.fixture
def metrics():
    """Stream metrics on a private registry."""
    return StreamMetrics(registry=CollectorRegistry())
