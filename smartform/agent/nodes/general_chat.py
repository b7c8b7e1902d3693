"""
General chat node: replies to messages that are not equipment requests.

Canned greeting/thanks/help replies are tried first. Otherwise the LLM
answers with the general-chat persona when enabled, and the static help
hint is used when it is not.
"""

import logging

from smartform.agent.llm_client import LLMClientError
from smartform.agent.prompts import build_general_chat_prompt
from smartform.agent.replies import canned_reply, help_hint
from smartform.agent.state import AssistantState
from smartform.agent.utils import llm_error_update, recent_history
from smartform.core.language import Locale

logger = logging.getLogger(__name__)

# General chat replies are short
GENERAL_CHAT_MAX_TOKENS = 500
GENERAL_CHAT_TEMPERATURE = 0.7


async def general_chat_node(state: AssistantState) -> dict:
    """Produce the reply text for a non-request message.

    Returns:
        Partial state with reply_text, or action and error if the LLM
        call failed.
    """
    config = state["config"]
    user_message = state.get("user_message", "")
    locale = Locale(state.get("locale", Locale.TH.value))

    reply = canned_reply(user_message, locale)
    if reply is not None:
        return {"reply_text": reply}

    if not config.general_chat_via_llm:
        return {"reply_text": help_hint(locale)}

    client = state["llm_client"]
    history = recent_history(state.get("messages", []), config.history_limit)

    try:
        text = await client.complete(
            build_general_chat_prompt(locale),
            history,
            user_message,
            temperature=GENERAL_CHAT_TEMPERATURE,
            max_tokens=GENERAL_CHAT_MAX_TOKENS,
        )
    except LLMClientError as e:
        logger.error("General chat call failed (%s): %s", e.kind, e)
        return llm_error_update(e, locale, production=config.production)
    except Exception as e:
        logger.exception("Unexpected error during general chat call")
        return llm_error_update(e, locale, production=config.production)

    return {"reply_text": text.strip() or help_hint(locale)}
