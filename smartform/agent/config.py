"""
Assistant configuration.

One AssistantConfig object is built at startup (from environment
variables, after loading .env) and passed explicitly into the pipeline,
so tests can swap any value without touching the process environment.
"""

import os
from datetime import datetime, tzinfo
from typing import Callable

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from smartform.core.utils import DEFAULT_TIMEZONE, get_timezone

load_dotenv()

DEFAULT_LLM_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_LLM_MODEL = "qwen/qwen2.5-72b-instruct"
USER_AGENT = "SmartFormAssistant/2.0"


def is_truthy(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class AssistantConfig(BaseModel):
    """Runtime settings for the extraction pipeline and LLM client."""

    api_endpoint: str = DEFAULT_LLM_ENDPOINT
    model: str = DEFAULT_LLM_MODEL
    temperature: float = Field(default=0.1, ge=0, le=2)
    max_tokens: int = Field(default=2000, gt=0)
    request_timeout: float = Field(default=30.0, gt=0)
    ssl_verify: bool = True
    user_agent: str = USER_AGENT

    production: bool = False
    credentials_path: str = "~/.smartform/credentials.json"
    timezone: str = DEFAULT_TIMEZONE
    history_limit: int = Field(default=10, ge=0)
    general_chat_via_llm: bool = True

    # Clock used for the prompt anchor; overridable in tests
    clock: Callable[[], datetime] | None = Field(default=None, exclude=True)

    @classmethod
    def from_env(cls, **overrides) -> "AssistantConfig":
        """Build the config from environment variables.

        Keyword arguments override environment values.
        """
        values = {
            "api_endpoint": os.getenv("LLM_API_ENDPOINT", DEFAULT_LLM_ENDPOINT),
            "model": os.getenv("LLM_MODEL_NAME", DEFAULT_LLM_MODEL),
            "temperature": float(os.getenv("LLM_TEMPERATURE", "0.1")),
            "max_tokens": int(os.getenv("LLM_MAX_TOKENS", "2000")),
            "request_timeout": float(os.getenv("LLM_TIMEOUT_SECONDS", "30")),
            "ssl_verify": is_truthy(os.getenv("LLM_SSL_VERIFY"), default=True),
            "production": os.getenv("SMARTFORM_ENV", "development").strip().lower() == "production",
            "credentials_path": os.getenv(
                "SMARTFORM_CREDENTIALS_PATH", "~/.smartform/credentials.json"
            ),
            "timezone": os.getenv("SMARTFORM_TIMEZONE", DEFAULT_TIMEZONE),
            "history_limit": int(os.getenv("SMARTFORM_HISTORY_LIMIT", "10")),
            "general_chat_via_llm": is_truthy(
                os.getenv("SMARTFORM_GENERAL_CHAT_LLM"), default=True
            ),
        }
        values.update(overrides)
        return cls(**values)

    @property
    def zone(self) -> tzinfo:
        return get_timezone(self.timezone)

    def now(self) -> datetime:
        """Current time in the configured timezone, truncated to the minute."""
        current = self.clock() if self.clock is not None else datetime.now(self.zone)
        if current.tzinfo is None:
            current = current.replace(tzinfo=self.zone)
        else:
            current = current.astimezone(self.zone)
        return current.replace(second=0, microsecond=0)
