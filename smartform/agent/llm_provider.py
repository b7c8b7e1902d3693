"""
LLM provider factory.

Creates a LangChain BaseChatModel instance pointing to any
OpenAI-compatible chat completions endpoint (OpenRouter by default).

Automatic retries are disabled on the underlying client: a user
re-sending the message is the retry mechanism.
"""

import logging
import os

import httpx
from langchain_core.language_models import BaseChatModel

from smartform.agent.config import AssistantConfig, is_truthy

logger = logging.getLogger(__name__)


def _build_safe_curl(request: httpx.Request) -> str:
    """Build a debug curl command with sensitive headers redacted."""
    curl = f"curl -X {request.method} '{request.url}'"
    for key, value in request.headers.items():
        header_value = value
        if key.lower() in {"authorization", "x-api-key", "api-key"}:
            header_value = "[REDACTED]"
        curl += f" -H '{key}: {header_value}'"

    if request.content:
        body = request.content.decode(errors="ignore")
        max_body_chars = 2000
        if len(body) > max_body_chars:
            body = body[:max_body_chars] + "... [TRUNCATED]"
        curl += f" -d '{body}'"
    return curl


class CurlLoggingAsyncClient(httpx.AsyncClient):
    async def send(self, request, *args, **kwargs):
        if is_truthy(os.getenv("LOG_LLM_CURL"), default=False):
            logger.debug("LLM request (sanitized): %s", _build_safe_curl(request))
        return await super().send(request, *args, **kwargs)


def _base_url(endpoint: str) -> str:
    """Strip a /chat/completions suffix; ChatOpenAI appends it."""
    base_url = endpoint.rstrip("/")
    for suffix in ["/chat/completions", "/completions"]:
        if base_url.endswith(suffix):
            return base_url[: -len(suffix)]
    return base_url


def build_http_client(config: AssistantConfig) -> httpx.AsyncClient:
    """Build the async HTTP client used for chat completions."""
    return CurlLoggingAsyncClient(
        verify=config.ssl_verify,
        timeout=config.request_timeout,
    )


def get_llm(
    config: AssistantConfig,
    api_key: str,
    http_async_client: httpx.AsyncClient | None = None,
    **kwargs,
) -> BaseChatModel:
    """Create an LLM instance for the configured OpenAI-compatible endpoint.

    Args:
        config: The assistant configuration (endpoint, model, limits).
        api_key: The resolved bearer token.
        http_async_client: Shared HTTP client. The caller owns it and closes
            it; a new one is built when omitted.
        **kwargs: Additional keyword arguments passed to the LLM constructor.

    Returns:
        A LangChain BaseChatModel instance.

    Raises:
        ValueError: If the endpoint is not configured.
    """
    from langchain_openai import ChatOpenAI

    if not config.api_endpoint:
        raise ValueError(
            "LLM_API_ENDPOINT is required. "
            "Set it to your OpenAI-compatible chat completions URL."
        )

    defaults = {
        "temperature": config.temperature,
        "max_tokens": config.max_tokens,
        "timeout": config.request_timeout,
        "max_retries": 0,
    }
    merged = {**defaults, **kwargs}

    async_client = http_async_client or build_http_client(config)

    llm = ChatOpenAI(
        api_key=api_key,
        model=config.model,
        base_url=_base_url(config.api_endpoint),
        http_async_client=async_client,
        default_headers={"User-Agent": config.user_agent},
        **merged,
    )

    return llm
