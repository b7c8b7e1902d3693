"""
Test helpers for the SmartForm test suite.

Provides fake chat models (scripted, failing, slow), a fixed clock, and
GraphRunner, a lightweight wrapper around the compiled LangGraph that
gives tests a simple async interface.
"""

import asyncio
import json
from datetime import datetime
from typing import Any
from unittest.mock import MagicMock

from dateutil import tz

from smartform.agent.config import AssistantConfig
from smartform.agent.graph import compile_graph, create_initial_state, prepare_turn_input
from smartform.agent.llm_client import LLMClient
from smartform.core.credentials import CredentialStore

BANGKOK = tz.gettz("Asia/Bangkok")

# Saturday 21 June 2025, 14:30:45 in Bangkok
FIXED_NOW = datetime(2025, 6, 21, 14, 30, 45, tzinfo=BANGKOK)

# Compile once, shared across all tests in the session
_compiled_graph = compile_graph()


# --- Fake LLMs ---


def make_reply(content: str) -> MagicMock:
    """Build a chat-model reply object with a .content attribute."""
    result = MagicMock()
    result.content = content
    return result


class ScriptedLLM:
    """Returns pre-configured responses in order (dicts are JSON-encoded).

    Records every call's messages and keyword arguments.
    """

    def __init__(self, responses: list[Any] | None = None):
        self.responses = list(responses or [])
        self.calls: list[dict[str, Any]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def ainvoke(self, messages, **kwargs):
        self.calls.append({"messages": messages, "kwargs": kwargs})
        if not self.responses:
            raise RuntimeError("No more responses")
        response = self.responses.pop(0)
        if isinstance(response, dict):
            response = json.dumps(response, ensure_ascii=False)
        return make_reply(response)


class ExceptionLLM:
    """Raises the given exception on every call."""

    def __init__(self, error: BaseException):
        self.error = error
        self.call_count = 0

    async def ainvoke(self, messages, **kwargs):
        self.call_count += 1
        raise self.error


class SlowLLM:
    """Sleeps before answering; used for timeout and concurrency tests."""

    def __init__(self, delay: float, response: Any = "{}"):
        self.delay = delay
        self.response = response
        self.call_count = 0
        self.started = asyncio.Event()

    async def ainvoke(self, messages, **kwargs):
        self.call_count += 1
        self.started.set()
        await asyncio.sleep(self.delay)
        response = self.response
        if isinstance(response, dict):
            response = json.dumps(response, ensure_ascii=False)
        return make_reply(response)


# --- Graph runner ---


class GraphRunner:
    """Test helper that runs user turns through the compiled graph.

    Usage:
        runner = GraphRunner(schema, config, client)
        action = await runner.send("ขอยืมโปรเจคเตอร์")
        form = runner.form
    """

    def __init__(self, schema, config: AssistantConfig, llm_client: LLMClient):
        self.state = create_initial_state(schema, config, llm_client)

    async def send(self, user_message: str) -> dict:
        """Process a user message and return the reply action."""
        turn = prepare_turn_input(self.state, user_message)
        self.state = await _compiled_graph.ainvoke(turn)
        return self.state.get("action", {})

    @property
    def form(self) -> dict[str, Any]:
        return dict(self.state.get("form", {}))

    @property
    def messages(self) -> list[dict[str, Any]]:
        return list(self.state.get("messages", []))


def make_client(config: AssistantConfig, credentials: CredentialStore | None, llm: Any) -> LLMClient:
    return LLMClient(config, credentials=credentials, llm=llm)


def make_runner(schema, config, credentials, llm) -> GraphRunner:
    return GraphRunner(schema, config, make_client(config, credentials, llm))
