"""
unillm - Provider Client Tests

Exercises the provider clients against httpx.MockTransport:
- Request URLs, headers and payloads per provider
- Status and transport failures raised before a stream exists
- Streamed bodies normalized through the stream adapter
- Ollama model listing
"""

import json
import os

import httpx
import pytest

from conftest import ChunkedByteStream, split_every, sse_body
from unillm.core.config import ClientSettings
from unillm.core.errors import (
    ConnectionTimeoutError,
    EmptyResponseError,
    InvalidAPIKeyError,
    ModelNotFoundError,
    RateLimitedError,
    UpstreamError,
)
from unillm.core.models import ChatOptions, Message, ModelConfig, Provider
from unillm.observability.logging import LogContext
from unillm.providers import OllamaClient, OpenAIClient, create_provider_client


class Recorder:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, respond):
        self.respond = respond
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def last_json(self):
        return json.loads(self.requests[-1].content)


def make_client(provider: Provider, handler, metrics=None, **settings_kwargs):
    settings = ClientSettings(
        provider=provider,
        endpoint=settings_kwargs.pop("endpoint", provider.default_endpoint),
        model=settings_kwargs.pop("model", "test-model"),
        **settings_kwargs
    )
    return create_provider_client(
        settings,
        transport=httpx.MockTransport(handler),
        metrics=metrics,
    )


DEEPSEEK_STREAM = sse_body(
    json.dumps({"choices": [{"delta": {"reasoning_content": "because 1+1"}}]}),
    json.dumps({"choices": [{"delta": {"content": "=2"}}]}),
    "[DONE]",
)

OLLAMA_STREAM = (
    '{"message":{"role":"assistant","thinking":"let me think"},"done":false}\n'
    '{"message":{"role":"assistant","content":"42"},"done":false}\n'
    '{"done":true,"eval_count":3}\n'
).encode("utf-8")


# ============================================================
# Factory Tests
# ============================================================

class TestCreateProviderClient:
    """Test provider to client mapping."""

    @pytest.mark.parametrize("provider", [
        Provider.OPENAI,
        Provider.DEEPSEEK,
        Provider.SILICONFLOW,
        Provider.ZHIPU,
        Provider.OPENROUTER,
    ])
    def test_openai_compatible(self, provider):
        client = make_client(provider, Recorder(lambda r: httpx.Response(200)))
        assert isinstance(client, OpenAIClient)

    def test_ollama(self):
        client = make_client(Provider.OLLAMA, Recorder(lambda r: httpx.Response(200)))
        assert isinstance(client, OllamaClient)


# ============================================================
# OpenAI-Compatible Client Tests
# ============================================================

class TestOpenAIClient:
    """Test the OpenAI-compatible client."""

    @pytest.mark.asyncio
    async def test_stream_request(self, metrics):
        """Streaming request goes to chat/completions with reasoning flags."""
        recorder = Recorder(lambda r: httpx.Response(200, content=DEEPSEEK_STREAM))
        client = make_client(
            Provider.DEEPSEEK,
            recorder,
            metrics=metrics,
            api_key="sk-test",
            model="deepseek-reasoner",
            model_config=ModelConfig(temperature=0.2, top_p=0.8, max_tokens=512, top_k=40),
        )

        async with client:
            stream = await client.chat_stream_api([Message.user("What is 1+1?")])
            assert await stream.collect() == "<think>because 1+1</think>=2"

        request = recorder.requests[0]
        assert str(request.url) == "https://api.deepseek.com/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"
        assert recorder.last_json == {
            "model": "deepseek-reasoner",
            "messages": [{"role": "user", "content": "What is 1+1?"}],
            "temperature": 0.2,
            "top_p": 0.8,
            "max_tokens": 512,
            "stream": True,
            "top_k": 40,
            "send_reasoning": True,
            "reasoning": True,
        }

    @pytest.mark.asyncio
    async def test_options_override_defaults(self):
        recorder = Recorder(lambda r: httpx.Response(200, content=DEEPSEEK_STREAM))
        client = make_client(Provider.OPENAI, recorder)

        stream = await client.chat_stream([Message.user("hi")], ChatOptions(temperature=0.0))
        await stream.collect()

        payload = recorder.last_json
        assert payload["temperature"] == 0.0
        assert payload["top_p"] == 0.9
        assert payload["max_tokens"] == 8192
        assert "top_k" not in payload
        assert "reasoning" not in payload

    @pytest.mark.asyncio
    async def test_chat_stream_drops_reasoning(self):
        client = make_client(
            Provider.DEEPSEEK,
            Recorder(lambda r: httpx.Response(200, content=DEEPSEEK_STREAM))
        )

        stream = await client.chat_stream([Message.user("What is 1+1?")])

        assert await stream.collect() == "=2"

    @pytest.mark.asyncio
    async def test_chunked_body(self):
        """Body delivered in small pieces yields the same text."""
        body = ChunkedByteStream(split_every(DEEPSEEK_STREAM, 5))
        client = make_client(
            Provider.SILICONFLOW,
            Recorder(lambda r: httpx.Response(200, stream=body))
        )

        stream = await client.chat_stream_api([Message.user("q")])

        assert await stream.collect() == "<think>because 1+1</think>=2"
        assert body.closed

    @pytest.mark.asyncio
    async def test_custom_endpoint(self):
        recorder = Recorder(lambda r: httpx.Response(200, content=DEEPSEEK_STREAM))
        client = make_client(Provider.OPENAI, recorder, endpoint="http://localhost:8000/v1/")

        stream = await client.chat_stream_api([Message.user("q")])
        await stream.collect()

        assert str(recorder.requests[0].url) == "http://localhost:8000/v1/chat/completions"

    @pytest.mark.asyncio
    async def test_no_authorization_without_key(self):
        recorder = Recorder(lambda r: httpx.Response(200, content=DEEPSEEK_STREAM))
        client = make_client(Provider.OPENAI, recorder)

        stream = await client.chat_stream_api([Message.user("q")])
        await stream.collect()

        assert "authorization" not in recorder.requests[0].headers

    @pytest.mark.asyncio
    async def test_unauthorized_raises_before_stream(self):
        client = make_client(
            Provider.OPENAI,
            Recorder(lambda r: httpx.Response(401, json={"error": {"message": "Incorrect API key"}}))
        )

        with pytest.raises(InvalidAPIKeyError) as exc_info:
            await client.chat_stream_api([Message.user("q")])

        assert "API request failed: 401" in str(exc_info.value)
        assert "Incorrect API key" in str(exc_info.value)
        assert exc_info.value.error.request_id.startswith("req_")

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        client = make_client(
            Provider.OPENROUTER,
            Recorder(lambda r: httpx.Response(429, headers={"retry-after": "3"}))
        )

        with pytest.raises(RateLimitedError) as exc_info:
            await client.chat_stream_api([Message.user("q")])

        assert exc_info.value.error.retry_after == 3

    @pytest.mark.asyncio
    async def test_server_error(self):
        client = make_client(
            Provider.ZHIPU,
            Recorder(lambda r: httpx.Response(500, text="internal error"))
        )

        with pytest.raises(UpstreamError):
            await client.chat_stream_api([Message.user("q")])

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(Provider.OPENAI, refuse)

        with pytest.raises(ConnectionTimeoutError):
            await client.chat_stream_api([Message.user("q")])

    @pytest.mark.asyncio
    async def test_error_body_read_failure(self):
        """An error body that breaks off still maps by status."""
        body = ChunkedByteStream(
            [b'{"error": {"mess'],
            fail_with=httpx.ReadError("reset while reading error body"),
        )
        client = make_client(
            Provider.DEEPSEEK,
            Recorder(lambda r: httpx.Response(500, stream=body))
        )

        with pytest.raises(UpstreamError) as exc_info:
            await client.chat_stream_api([Message.user("q")])

        assert exc_info.value.error.code == "upstream_500"
        assert "API request failed: 500" in str(exc_info.value)
        assert body.closed

    @pytest.mark.asyncio
    async def test_log_context_is_restored(self):
        """Opening a stream leaves the caller's log context as it was."""
        before = LogContext.get_current()
        outer = LogContext(request_id="req_outer")
        handlers = [
            lambda r: httpx.Response(200, content=DEEPSEEK_STREAM),
            lambda r: httpx.Response(401, json={"error": {"message": "Incorrect API key"}}),
        ]

        with outer.scope():
            for handler in handlers:
                client = make_client(Provider.OPENAI, Recorder(handler))
                try:
                    stream = await client.chat_stream_api([Message.user("q")], request_id="req_inner")
                    await stream.collect()
                except InvalidAPIKeyError:
                    pass

                assert LogContext.get_current() is outer

        assert LogContext.get_current() is before

    @pytest.mark.asyncio
    async def test_no_content(self):
        client = make_client(Provider.OPENAI, Recorder(lambda r: httpx.Response(204)))

        with pytest.raises(EmptyResponseError):
            await client.chat_stream_api([Message.user("q")])

    @pytest.mark.asyncio
    async def test_chat_reads_reasoning_content(self):
        recorder = Recorder(lambda r: httpx.Response(200, json={
            "model": "deepseek-reasoner",
            "choices": [{"message": {"role": "assistant", "content": "2", "reasoning_content": "1+1"}}],
        }))
        client = make_client(Provider.DEEPSEEK, recorder)

        result = await client.chat([Message.system("be brief"), Message.user("1+1?")])

        assert result.text == "2"
        assert result.reasoning == "1+1"
        assert result.model == "deepseek-reasoner"
        assert result.provider == "deepseek"
        assert recorder.last_json["stream"] is False
        assert recorder.last_json["messages"][0] == {"role": "system", "content": "be brief"}

    @pytest.mark.asyncio
    async def test_chat_error(self):
        client = make_client(
            Provider.OPENAI,
            Recorder(lambda r: httpx.Response(404, json={"error": {"message": "no such model"}}))
        )

        with pytest.raises(ModelNotFoundError):
            await client.chat([Message.user("q")])


# ============================================================
# Ollama Client Tests
# ============================================================

class TestOllamaClient:
    """Test the native Ollama client."""

    @pytest.mark.asyncio
    async def test_stream_request(self):
        recorder = Recorder(lambda r: httpx.Response(200, content=OLLAMA_STREAM))
        client = make_client(
            Provider.OLLAMA,
            recorder,
            model="qwen3",
            model_config=ModelConfig(temperature=0.5, top_p=0.95, max_tokens=256),
        )

        stream = await client.chat_stream_api([Message.user("6*7?")])

        assert await stream.collect() == "<think>let me think</think>42"
        assert str(recorder.requests[0].url) == "http://localhost:11434/api/chat"
        assert recorder.last_json == {
            "model": "qwen3",
            "messages": [{"role": "user", "content": "6*7?"}],
            "stream": True,
            "options": {"temperature": 0.5, "top_p": 0.95, "num_predict": 256},
        }

    @pytest.mark.asyncio
    async def test_base_url_without_api_suffix(self):
        recorder = Recorder(lambda r: httpx.Response(200, content=OLLAMA_STREAM))
        client = make_client(Provider.OLLAMA, recorder, endpoint="http://gpu-box:11434")

        stream = await client.chat_stream([Message.user("q")])

        assert await stream.collect() == "42"
        assert str(recorder.requests[0].url) == "http://gpu-box:11434/api/chat"

    @pytest.mark.asyncio
    async def test_model_not_found(self):
        client = make_client(
            Provider.OLLAMA,
            Recorder(lambda r: httpx.Response(404, json={"error": "model \"qwen9\" not found"}))
        )

        with pytest.raises(ModelNotFoundError) as exc_info:
            await client.chat_stream_api([Message.user("q")])

        assert "qwen9" in str(exc_info.value)

    def test_image_parts_are_flattened(self):
        client = make_client(Provider.OLLAMA, Recorder(lambda r: httpx.Response(200)))
        message = Message.user([
            {"type": "text", "text": "What is in"},
            {"type": "text", "text": "this picture?"},
            {"type": "image_url", "image_url": {"url": "data:image/png;base64,iVBORw0KGgo="}},
            {"type": "image_url", "image_url": {"url": "https://example.com/cat.png"}},
        ])

        converted = client._convert_messages([message])

        assert converted == [{
            "role": "user",
            "content": "What is in\nthis picture?",
            "images": ["iVBORw0KGgo="],
        }]

    @pytest.mark.asyncio
    async def test_chat_reads_thinking(self):
        client = make_client(
            Provider.OLLAMA,
            Recorder(lambda r: httpx.Response(200, json={
                "model": "qwen3",
                "message": {"role": "assistant", "content": "42", "thinking": "6*7"},
                "done": True,
            }))
        )

        result = await client.chat([Message.user("6*7?")])

        assert result.text == "42"
        assert result.reasoning == "6*7"

    @pytest.mark.asyncio
    async def test_get_models(self):
        recorder = Recorder(lambda r: httpx.Response(200, json={"models": [
            {"name": "qwen3:8b", "modified_at": "2025-05-01T10:00:00Z", "size": 5200000000},
            {"name": "llama3.2"},
        ]}))
        client = make_client(Provider.OLLAMA, recorder)

        models = await client.get_models()

        assert str(recorder.requests[0].url) == "http://localhost:11434/api/tags"
        assert [m.name for m in models] == ["qwen3:8b", "llama3.2"]
        assert models[0].size == 5200000000
        assert models[1].modified_at == ""

    @pytest.mark.asyncio
    async def test_get_models_unreachable(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(Provider.OLLAMA, refuse)

        assert await client.get_models() == []

    @pytest.mark.asyncio
    async def test_get_models_bad_status(self):
        client = make_client(Provider.OLLAMA, Recorder(lambda r: httpx.Response(500)))

        assert await client.get_models() == []


# ============================================================
# Live Server Tests
# ============================================================

@pytest.mark.integration
class TestLocalOllama:
    """Run against a local Ollama server (RUN_INTEGRATION=1)."""

    @pytest.mark.asyncio
    async def test_list_and_stream(self):
        settings = ClientSettings(
            provider=Provider.OLLAMA,
            endpoint=os.getenv("OLLAMA_ENDPOINT", Provider.OLLAMA.default_endpoint),
            model=os.getenv("OLLAMA_MODEL", "qwen3"),
        )

        async with OllamaClient(settings) as client:
            models = await client.get_models()
            assert models, "no local models installed"

            stream = await client.chat_stream_api([Message.user("Reply with the word ok.")])
            text = await stream.collect()

        assert text
        assert text.count("<think>") == text.count("</think>")
