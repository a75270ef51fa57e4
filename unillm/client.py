"""
unillm - Unified Client

One entry point for every supported provider. The provider is resolved
once, at construction, into a concrete provider client.

Usage:
    client = LLMClient(LLMClientConfig(provider_id="deepseek", api_key="sk-...",
                                       model_name="deepseek-reasoner"))

    text = await client.get_response("What is 1+1?")

    stream = await client.chat_stream_api("What is 1+1?")
    async for token in stream:
        print(token, end="")     # <think>...</think>2
"""

from typing import Any, Dict, Optional, Union

import httpx

from .core.config import ClientSettings, LLMClientConfig
from .core.errors import UnillmException
from .core.models import ChatOptions, ChatResult, CotResult, Prompt, Provider, normalize_prompt
from .observability.logging import get_logger
from .observability.metrics import StreamMetrics
from .providers import BaseClient, create_provider_client
from .streaming.adapter import StreamAdapter
from .utils.llm_output import split_think_chain


logger = get_logger(__name__)

OptionsInput = Union[ChatOptions, Dict[str, Any], None]


def _to_options(options: OptionsInput) -> ChatOptions:
    if options is None:
        return ChatOptions()
    if isinstance(options, ChatOptions):
        return options
    return ChatOptions(
        temperature=options.get("temperature"),
        top_p=options.get("top_p"),
        max_tokens=options.get("max_tokens"),
        top_k=options.get("top_k"),
    )


class LLMClient:
    """Unified chat client over all supported providers."""

    def __init__(
        self,
        config: Union[LLMClientConfig, Dict[str, Any], None] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[StreamMetrics] = None,
    ):
        if config is None:
            config = LLMClientConfig()
        elif isinstance(config, dict):
            config = LLMClientConfig.model_validate(config)
        self.config = config

        provider = Provider.resolve(config.provider_id)
        if provider is None:
            logger.warning(
                "Unknown provider, using OpenAI-compatible client",
                requested_provider=config.provider_id,
            )
            provider = Provider.OPENAI
        self.provider = provider

        self.settings = ClientSettings.from_config(config, provider)
        self.client: BaseClient = create_provider_client(
            self.settings,
            transport=transport,
            metrics=metrics,
        )

    async def chat(self, prompt: Prompt, options: OptionsInput = None) -> ChatResult:
        """Generate a complete response."""
        try:
            return await self.client.chat(normalize_prompt(prompt), _to_options(options))
        except UnillmException as e:
            self._log_failure("chat", e)
            raise

    async def chat_stream(self, prompt: Prompt, options: OptionsInput = None) -> StreamAdapter:
        """Stream the answer text only."""
        try:
            return await self.client.chat_stream(normalize_prompt(prompt), _to_options(options))
        except UnillmException as e:
            self._log_failure("chat_stream", e)
            raise

    async def chat_stream_api(self, prompt: Prompt, options: OptionsInput = None) -> StreamAdapter:
        """Stream the answer with reasoning wrapped in <think> markers."""
        try:
            return await self.client.chat_stream_api(normalize_prompt(prompt), _to_options(options))
        except UnillmException as e:
            self._log_failure("chat_stream_api", e)
            raise

    async def get_response(self, prompt: Prompt, options: OptionsInput = None) -> str:
        """Answer text of a complete response."""
        result = await self.chat(prompt, options)
        return result.text

    async def get_response_with_cot(self, prompt: Prompt, options: OptionsInput = None) -> CotResult:
        """
        Answer and chain of thought of a complete response.

        Models that inline their reasoning (``<think>...</think>answer``)
        are split; otherwise the provider's separate reasoning field is used.
        """
        result = await self.chat(prompt, options)
        answer = result.text
        cot = result.reasoning

        if answer.startswith("<think>") or answer.startswith("<thinking>"):
            cot, answer = split_think_chain(answer)

        if answer.startswith("\n\n"):
            answer = answer[2:]
        if cot.endswith("\n\n"):
            cot = cot[:-2]

        return CotResult(answer=answer, cot=cot)

    async def aclose(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    def _log_failure(self, operation: str, error: UnillmException):
        logger.error(
            f"{self.provider.value} API call failed",
            operation=operation,
            code=error.error.code,
            error=str(error),
        )
