"""
unillm - Provider Client Base

Abstract base class for provider clients. Every provider implements the
same capability set:
- chat: single-shot completion
- chat_stream: streamed answer text only
- chat_stream_api: streamed answer with inline <think> reasoning markers

The client is responsible for:
1. Converting unified messages/options to the provider payload
2. Opening the HTTP call (httpx)
3. Mapping transport failures to unillm errors before any output exists
4. Handing the response body to the StreamAdapter
"""

import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..core.config import ClientSettings
from ..core.errors import EmptyResponseError, handle_provider_error
from ..core.models import (
    ChatOptions,
    ChatResult,
    Message,
    ModelConfig,
    Provider,
)
from ..observability.logging import LogContext, TimedOperation, get_logger
from ..observability.metrics import StreamMetrics, get_metrics
from ..streaming.adapter import StreamAdapter


logger = get_logger(__name__)


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class BaseClient(ABC):
    """
    Abstract base class for provider clients.

    Subclasses define the request path, the payload shape and how a
    non-streaming response is read. Streaming is shared: the wire schema
    of ``settings.provider`` selects the line decoder.
    """

    def __init__(
        self,
        settings: ClientSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[StreamMetrics] = None,
    ):
        self.settings = settings
        self.provider: Provider = settings.provider
        self.model = settings.model
        self.model_config: ModelConfig = settings.model_config
        self.metrics = metrics or get_metrics()

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=settings.timeout,
            transport=transport,
        )

    # ============================================================
    # Provider specifics
    # ============================================================

    @property
    @abstractmethod
    def base_url(self) -> str:
        """Base URL requests are sent to."""
        pass

    @property
    @abstractmethod
    def chat_path(self) -> str:
        """Chat request path relative to ``base_url``."""
        pass

    @abstractmethod
    def _build_payload(
        self,
        messages: List[Message],
        config: ModelConfig,
        stream: bool,
        reasoning: bool = False
    ) -> Dict[str, Any]:
        """Build the provider request body."""
        pass

    @abstractmethod
    def _parse_chat_response(self, data: Dict[str, Any]) -> Tuple[str, str]:
        """Return (answer text, reasoning text) of a non-streaming response."""
        pass

    def _headers(self) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def _convert_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        """Convert unified messages to provider format. Override if needed."""
        return [msg.to_dict() for msg in messages]

    # ============================================================
    # Capabilities
    # ============================================================

    async def chat(
        self,
        messages: List[Message],
        options: Optional[ChatOptions] = None,
        request_id: str = ""
    ) -> ChatResult:
        """Generate a complete (non-streaming) chat response."""
        request_id = request_id or new_request_id()
        config = (options or ChatOptions()).resolve(self.model_config)
        payload = self._build_payload(messages, config, stream=False)

        start_time = time.time()

        with TimedOperation("chat", logger, extra={"provider": self.provider.value, "request_id": request_id}):
            try:
                response = await self.client.post(self.chat_path, json=payload)
                response.raise_for_status()
                data = response.json()
            except Exception as e:
                raise handle_provider_error(e, self.provider.value, request_id) from e

        text, reasoning = self._parse_chat_response(data)

        return ChatResult(
            text=text,
            reasoning=reasoning,
            model=str(data.get("model") or self.model),
            provider=self.provider.value,
            latency_ms=int((time.time() - start_time) * 1000),
            raw=data
        )

    async def chat_stream(
        self,
        messages: List[Message],
        options: Optional[ChatOptions] = None,
        request_id: str = ""
    ) -> StreamAdapter:
        """Stream the answer text only; reasoning deltas are dropped."""
        return await self._stream(messages, options, include_reasoning=False, request_id=request_id)

    async def chat_stream_api(
        self,
        messages: List[Message],
        options: Optional[ChatOptions] = None,
        request_id: str = ""
    ) -> StreamAdapter:
        """
        Stream answer and reasoning as one text stream.

        Reasoning is wrapped in ``<think>`` ... ``</think>``. Transport
        errors and non-success statuses are raised here, before the stream
        object exists; failures after that surface while iterating.
        """
        return await self._stream(messages, options, include_reasoning=True, request_id=request_id)

    async def aclose(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    # ============================================================
    # Streaming helpers
    # ============================================================

    async def _stream(
        self,
        messages: List[Message],
        options: Optional[ChatOptions],
        include_reasoning: bool,
        request_id: str
    ) -> StreamAdapter:
        request_id = request_id or new_request_id()
        config = (options or ChatOptions()).resolve(self.model_config)
        payload = self._build_payload(messages, config, stream=True, reasoning=include_reasoning)

        response = await self._open_stream(self.chat_path, payload, request_id)

        return StreamAdapter(
            response.aiter_bytes(),
            self.provider.wire_schema,
            on_close=response.aclose,
            include_reasoning=include_reasoning,
            request_id=request_id,
            provider=self.provider.value,
            metrics=self.metrics,
        )

    async def _open_stream(
        self,
        path: str,
        payload: Dict[str, Any],
        request_id: str
    ) -> httpx.Response:
        """
        Send a streaming request and check it before any body is read.

        Returns the open response; the caller owns closing it.
        """
        ctx = LogContext(request_id=request_id, provider=self.provider.value, model=self.model)
        with ctx.scope():
            request = self.client.build_request("POST", path, json=payload)
            try:
                response = await self.client.send(request, stream=True)
            except Exception as e:
                logger.error("Stream request failed", error=str(e))
                raise handle_provider_error(e, self.provider.value, request_id) from e

            if response.is_error:
                try:
                    await response.aread()
                except httpx.HTTPError as e:
                    # The status alone still classifies the failure
                    logger.warning("Failed to read error body", error=str(e))
                finally:
                    await response.aclose()
                status_error = httpx.HTTPStatusError(
                    f"{response.status_code} {response.reason_phrase}",
                    request=request,
                    response=response,
                )
                logger.error("Stream request rejected", status_code=response.status_code)
                raise handle_provider_error(status_error, self.provider.value, request_id)

            if response.status_code == 204 or response.headers.get("content-length") == "0":
                await response.aclose()
                logger.error("Stream response has no body", status_code=response.status_code)
                raise EmptyResponseError(self.provider.value, request_id)

            logger.debug("Stream opened", path=path)
            return response
