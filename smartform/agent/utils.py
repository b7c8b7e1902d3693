"""
Shared utilities for the SmartForm graph nodes.

Contains JSON extraction from noisy LLM output, message-history helpers
and the conversion of LLM failures into an ERROR reply.
"""

import json
import logging
import re
from datetime import datetime
from typing import Any, Sequence

from smartform.agent.replies import error_message
from smartform.core.actions import build_error_action
from smartform.core.language import Locale

logger = logging.getLogger(__name__)

# Greedy: from the first "{" to the last "}" in the text
_JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------


def extract_json(raw: str) -> dict:
    """Extract a JSON object from LLM output.

    Takes the span from the first '{' to the last '}', so markdown fences
    and surrounding prose are ignored. Never raises.

    Args:
        raw: Raw LLM output string.

    Returns:
        The parsed object, or an empty dict if there is no braced span, it
        does not parse, or it is not a JSON object.
    """
    if not isinstance(raw, str):
        return {}

    match = _JSON_OBJECT_PATTERN.search(raw)
    if match is None:
        return {}

    try:
        parsed = json.loads(match.group(0))
    except (json.JSONDecodeError, RecursionError) as e:
        logger.warning("Failed to extract JSON from LLM output: %s", e)
        return {}

    return parsed if isinstance(parsed, dict) else {}


# ---------------------------------------------------------------------------
# Message history
# ---------------------------------------------------------------------------


def make_message(role: str, text: str, timestamp: datetime | None = None) -> dict[str, Any]:
    """Build a chat history entry."""
    return {
        "role": role,
        "text": text,
        "timestamp": (timestamp or datetime.now().astimezone()).isoformat(),
    }


def recent_history(messages: Sequence[dict[str, Any]], limit: int) -> list[dict[str, Any]]:
    """Return the last `limit` messages (all of them if limit is 0)."""
    if limit <= 0:
        return list(messages)
    return list(messages[-limit:])


# ---------------------------------------------------------------------------
# LLM failure handling
# ---------------------------------------------------------------------------


def llm_error_update(error: Exception, locale: Locale, production: bool = False) -> dict[str, Any]:
    """Turn an LLM failure into the partial state update for a failed turn.

    The update carries only the ERROR action and error details: form and
    message history are left exactly as they were before the call.
    """
    kind = getattr(error, "kind", "upstream")
    if kind == "llm_error":
        kind = "upstream"

    text_kind = kind
    if kind == "missing_credential" and production:
        text_kind = "missing_credential_production"

    return {
        "action": build_error_action(kind, error_message(text_kind, locale), Locale(locale)),
        "error": {"kind": kind, "message": str(error)},
    }
