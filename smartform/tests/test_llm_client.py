"""
Tests for the chat-completion client.

Tests cover:
- Missing credential is reported before any model call
- Credential resolution order (store, then environment)
- Timeout reported separately from upstream errors
- Upstream HTTP status carried on the error
- No retries; text returned verbatim
- Request parameters passed through
"""

import asyncio

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from smartform.agent.llm_client import (
    LLMClient,
    LLMTimeoutError,
    MissingCredentialError,
    UpstreamError,
    build_messages,
)
from smartform.core.credentials import API_KEY_ENV_VAR, API_KEY_STORAGE_KEY
from smartform.tests.helpers import ExceptionLLM, ScriptedLLM, SlowLLM

_REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


class TestBuildMessages:
    def test_order_and_roles(self):
        history = [
            {"role": "assistant", "text": "สวัสดีครับ"},
            {"role": "user", "text": "hello"},
            {"role": "system", "text": "ignored"},
        ]
        messages = build_messages("system prompt", history, "I need a notebook")

        assert isinstance(messages[0], SystemMessage)
        assert isinstance(messages[1], AIMessage)
        assert isinstance(messages[2], HumanMessage)
        assert isinstance(messages[-1], HumanMessage)
        assert messages[-1].content == "I need a notebook"
        assert len(messages) == 4


class TestCredentials:
    @pytest.mark.asyncio
    async def test_missing_credential_raises_before_call(self, config, empty_credentials):
        llm = ScriptedLLM(["{}"])
        client = LLMClient(config, credentials=empty_credentials, llm=llm)

        with pytest.raises(MissingCredentialError):
            await client.complete("system", [], "hello")

        assert llm.call_count == 0
        assert client.has_credential() is False

    def test_store_takes_precedence_over_environment(self, config, credentials, monkeypatch):
        monkeypatch.setenv(API_KEY_ENV_VAR, "sk-from-env")
        client = LLMClient(config, credentials=credentials)
        assert client.resolve_api_key() == "sk-test-key"

    def test_environment_fallback(self, config, empty_credentials, monkeypatch):
        monkeypatch.setenv(API_KEY_ENV_VAR, "sk-from-env")
        client = LLMClient(config, credentials=empty_credentials)
        assert client.resolve_api_key() == "sk-from-env"

    @pytest.mark.asyncio
    async def test_factory_receives_resolved_key(self, config, credentials):
        created = []

        def factory(cfg, api_key, **kwargs):
            created.append(api_key)
            return ScriptedLLM(["ok", "ok again"])

        client = LLMClient(config, credentials=credentials, llm_factory=factory)
        await client.complete("system", [], "hello")
        await client.complete("system", [], "hello")

        # The model is built once per key
        assert created == ["sk-test-key"]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_key_change_reuses_http_client(self, config, credentials):
        http_clients = []
        built = []

        def http_client_factory(cfg):
            http_clients.append(httpx.AsyncClient())
            return http_clients[-1]

        def factory(cfg, api_key, http_async_client=None):
            built.append((api_key, http_async_client))
            return ScriptedLLM(["ok"])

        client = LLMClient(
            config,
            credentials=credentials,
            llm_factory=factory,
            http_client_factory=http_client_factory,
        )
        await client.complete("system", [], "hello")
        credentials.set(API_KEY_STORAGE_KEY, "sk-rotated")
        await client.complete("system", [], "hello")

        assert [key for key, _ in built] == ["sk-test-key", "sk-rotated"]
        assert len(http_clients) == 1
        assert built[0][1] is built[1][1] is http_clients[0]

        await client.aclose()
        assert http_clients[0].is_closed


class TestComplete:
    """Tests for LLMClient.complete."""

    @pytest.mark.asyncio
    async def test_returns_text_verbatim(self, config, credentials):
        raw = 'Sure! ```json\n{"equipment_type": "Notebook"}\n```'
        client = LLMClient(config, credentials=credentials, llm=ScriptedLLM([raw]))
        assert await client.complete("system", [], "hello") == raw

    @pytest.mark.asyncio
    async def test_passes_sampling_parameters(self, config, credentials):
        llm = ScriptedLLM(["ok"])
        client = LLMClient(config, credentials=credentials, llm=llm)

        await client.complete("system", [], "hello", temperature=0.7, max_tokens=500)

        assert llm.calls[0]["kwargs"] == {"temperature": 0.7, "max_tokens": 500}

    @pytest.mark.asyncio
    async def test_config_defaults_used(self, config, credentials):
        llm = ScriptedLLM(["ok"])
        client = LLMClient(config, credentials=credentials, llm=llm)

        await client.complete("system", [], "hello")

        assert llm.calls[0]["kwargs"] == {
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }

    @pytest.mark.asyncio
    async def test_client_side_timeout(self, config, credentials):
        llm = SlowLLM(delay=5)
        client = LLMClient(config, credentials=credentials, llm=llm)

        with pytest.raises(LLMTimeoutError) as exc:
            await client.complete("system", [], "hello", timeout=0.05)

        assert exc.value.kind == "timeout"
        assert llm.call_count == 1

    @pytest.mark.asyncio
    async def test_sdk_timeout_mapped(self, config, credentials):
        llm = ExceptionLLM(openai.APITimeoutError(request=_REQUEST))
        client = LLMClient(config, credentials=credentials, llm=llm)

        with pytest.raises(LLMTimeoutError):
            await client.complete("system", [], "hello")

    @pytest.mark.asyncio
    async def test_status_error_carries_status(self, config, credentials):
        response = httpx.Response(500, request=_REQUEST)
        llm = ExceptionLLM(openai.InternalServerError("boom", response=response, body=None))
        client = LLMClient(config, credentials=credentials, llm=llm)

        with pytest.raises(UpstreamError) as exc:
            await client.complete("system", [], "hello")

        assert exc.value.status_code == 500
        assert exc.value.kind == "upstream"

    @pytest.mark.asyncio
    async def test_connection_error_is_upstream(self, config, credentials):
        llm = ExceptionLLM(openai.APIConnectionError(request=_REQUEST))
        client = LLMClient(config, credentials=credentials, llm=llm)

        with pytest.raises(UpstreamError) as exc:
            await client.complete("system", [], "hello")

        assert exc.value.status_code is None

    @pytest.mark.asyncio
    async def test_no_retry_on_failure(self, config, credentials):
        response = httpx.Response(429, request=_REQUEST)
        llm = ExceptionLLM(openai.RateLimitError("slow down", response=response, body=None))
        client = LLMClient(config, credentials=credentials, llm=llm)

        with pytest.raises(UpstreamError):
            await client.complete("system", [], "hello")

        assert llm.call_count == 1

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, config, credentials):
        llm = SlowLLM(delay=5)
        client = LLMClient(config, credentials=credentials, llm=llm)

        task = asyncio.create_task(client.complete("system", [], "hello"))
        await llm.started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
