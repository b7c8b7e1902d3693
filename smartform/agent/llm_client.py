"""
Chat-completion client used by the pipeline.

Wraps a LangChain chat model with the behavior the pipeline relies on:
- the credential is resolved (and its absence reported) before any
  network call
- a hard client-side timeout, reported separately from other failures
- non-2xx responses reported with their HTTP status
- no automatic retries
- the first completion's text returned verbatim
"""

import asyncio
import logging
from typing import Any, Callable, Sequence

import httpx
import openai
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from smartform.agent.config import AssistantConfig
from smartform.agent.llm_provider import build_http_client, get_llm
from smartform.core.credentials import CredentialStore, resolve_api_key

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class LLMClientError(Exception):
    """Base class for failures of an LLM call."""

    kind = "llm_error"


class MissingCredentialError(LLMClientError):
    """No API key could be resolved; no request was sent."""

    kind = "missing_credential"


class LLMTimeoutError(LLMClientError):
    """The request exceeded the client-side deadline."""

    kind = "timeout"


class UpstreamError(LLMClientError):
    """The endpoint answered with a non-success status or was unreachable."""

    kind = "upstream"

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


# ---------------------------------------------------------------------------
# Message conversion
# ---------------------------------------------------------------------------


def build_messages(
    system_prompt: str,
    history: Sequence[dict[str, Any]],
    user_message: str,
) -> list[BaseMessage]:
    """Build the LangChain message list: system, history, latest user message."""
    messages: list[BaseMessage] = [SystemMessage(content=system_prompt)]
    for msg in history:
        role = msg.get("role")
        text = msg.get("text") or msg.get("content") or ""
        if role == "user":
            messages.append(HumanMessage(content=text))
        elif role == "assistant":
            messages.append(AIMessage(content=text))
    messages.append(HumanMessage(content=user_message))
    return messages


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return "" if content is None else str(content)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class LLMClient:
    """Sends one chat-completion request per call.

    Args:
        config: Assistant configuration (model, limits, timeout).
        credentials: Local credential store consulted before the environment.
        llm: A ready chat model. When given, it is used for every call
            (the credential is still required).
        llm_factory: Builds a chat model from (config, api_key,
            http_async_client=...). Every model this client builds shares
            one HTTP client, so a key change does not leave a connection
            pool behind.
        http_client_factory: Builds that shared HTTP client.
    """

    def __init__(
        self,
        config: AssistantConfig,
        credentials: CredentialStore | None = None,
        llm: Any | None = None,
        llm_factory: Callable[..., Any] = get_llm,
        http_client_factory: Callable[[AssistantConfig], httpx.AsyncClient] = build_http_client,
    ):
        self._config = config
        self._credentials = credentials
        self._llm = llm
        self._llm_factory = llm_factory
        self._http_client_factory = http_client_factory
        self._http_client: httpx.AsyncClient | None = None
        self._cached_key: str | None = None
        self._cached_llm: Any | None = None

    @property
    def config(self) -> AssistantConfig:
        return self._config

    def resolve_api_key(self) -> str | None:
        return resolve_api_key(self._credentials)

    def has_credential(self) -> bool:
        return self.resolve_api_key() is not None

    def _get_llm(self, api_key: str) -> Any:
        if self._llm is not None:
            return self._llm
        if self._cached_llm is None or self._cached_key != api_key:
            if self._http_client is None:
                self._http_client = self._http_client_factory(self._config)
            self._cached_llm = self._llm_factory(
                self._config, api_key, http_async_client=self._http_client
            )
            self._cached_key = api_key
        return self._cached_llm

    async def aclose(self) -> None:
        """Close the shared HTTP client, if one was opened."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
        self._cached_llm = None
        self._cached_key = None

    async def complete(
        self,
        system_prompt: str,
        history: Sequence[dict[str, Any]],
        user_message: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> str:
        """Run one chat completion and return the raw text.

        Args:
            system_prompt: The system instruction.
            history: Prior messages ({"role", "text"} dicts), oldest first.
            user_message: The latest user message.
            temperature: Sampling temperature (config default if None).
            max_tokens: Completion token limit (config default if None).
            timeout: Deadline in seconds (config default if None).

        Returns:
            The first completion's text content, unparsed.

        Raises:
            MissingCredentialError: No API key is configured.
            LLMTimeoutError: The deadline passed.
            UpstreamError: Non-2xx status or connection failure.
        """
        api_key = self.resolve_api_key()
        if not api_key:
            raise MissingCredentialError("Missing LLM API key")

        llm = self._get_llm(api_key)
        messages = build_messages(system_prompt, history, user_message)
        deadline = timeout if timeout is not None else self._config.request_timeout
        params = {
            "temperature": self._config.temperature if temperature is None else temperature,
            "max_tokens": self._config.max_tokens if max_tokens is None else max_tokens,
        }

        logger.info(
            "Calling LLM (%d messages, timeout %.1fs)...",
            len(messages),
            deadline,
        )

        try:
            response = await asyncio.wait_for(llm.ainvoke(messages, **params), timeout=deadline)
        except asyncio.TimeoutError as e:
            raise LLMTimeoutError(f"LLM request timed out after {deadline:.1f}s") from e
        except (openai.APITimeoutError, httpx.TimeoutException) as e:
            raise LLMTimeoutError(f"LLM request timed out: {e}") from e
        except openai.APIStatusError as e:
            raise UpstreamError(
                f"LLM API error: {e.status_code}", status_code=e.status_code
            ) from e
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                f"LLM API error: {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except (openai.APIConnectionError, httpx.TransportError) as e:
            raise UpstreamError(f"LLM endpoint unreachable: {e}") from e

        content = _content_text(getattr(response, "content", None))
        logger.debug("LLM raw response (first 500 chars): %s", content[:500])
        return content
