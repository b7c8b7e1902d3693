"""
Classify node: detects the reply locale and whether the message is an
equipment request.

Both checks are keyword/character-class heuristics; no LLM call is made.
A message that answers the field the assistant just asked for ("for a
training session" after the purpose question) carries no request keywords,
so it also counts as a request unless it is a greeting, thanks or a call
for help.
"""

import logging

from smartform.agent.replies import canned_reply
from smartform.agent.state import AssistantState
from smartform.core.intent import is_equipment_request
from smartform.core.language import detect_language

logger = logging.getLogger(__name__)


def classify_node(state: AssistantState) -> dict:
    """Set locale and is_request for the current user message."""
    user_message = state.get("user_message", "")

    locale = detect_language(user_message)
    is_request = is_equipment_request(user_message)

    awaiting_field = state.get("awaiting_field")
    if not is_request and awaiting_field and canned_reply(user_message, locale) is None:
        logger.info("Treating message as an answer for '%s'", awaiting_field)
        is_request = True

    logger.info("Classified message: locale=%s, is_request=%s", locale.value, is_request)

    return {
        "locale": locale.value,
        "is_request": is_request,
    }
