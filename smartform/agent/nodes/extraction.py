"""
Extraction node: asks the LLM to turn the user's message into the flat
extraction record.

The prompt is anchored on the turn's datetime. Model output goes through
the permissive JSON extractor and then the typed extraction record; when
nothing usable comes back the result is NoExtraction and the turn carries
on with the unchanged form.
"""

import logging

from smartform.agent.llm_client import LLMClientError
from smartform.agent.prompts import build_extraction_prompt
from smartform.agent.state import AssistantState
from smartform.agent.utils import extract_json, llm_error_update, recent_history
from smartform.core.extraction import NoExtraction, parse_extraction
from smartform.core.language import Locale

logger = logging.getLogger(__name__)


async def extraction_node(state: AssistantState) -> dict:
    """Call the LLM with the extraction prompt and parse its answer.

    LLM failures are caught here: the update then holds only the ERROR
    action and error details, so form and history stay untouched.

    Returns:
        Partial state with raw_response and extraction, or action and error.
    """
    config = state["config"]
    client = state["llm_client"]
    user_message = state.get("user_message", "")
    locale = Locale(state.get("locale", Locale.TH.value))
    anchor = state.get("anchor") or config.now()

    system_prompt = build_extraction_prompt(locale, anchor)
    history = recent_history(state.get("messages", []), config.history_limit)

    try:
        raw = await client.complete(system_prompt, history, user_message)
    except LLMClientError as e:
        logger.error("Extraction call failed (%s): %s", e.kind, e)
        return llm_error_update(e, locale, production=config.production)
    except Exception as e:
        logger.exception("Unexpected error during extraction call")
        return llm_error_update(e, locale, production=config.production)

    extraction = parse_extraction(extract_json(raw))
    if isinstance(extraction, NoExtraction):
        logger.warning("No extraction from LLM output (%s)", extraction.reason)
    else:
        logger.info("Extracted fields: %s", sorted(extraction.present_fields()))

    return {
        "raw_response": raw,
        "extraction": extraction,
    }
