"""
Respond node: builds the reply action and records the exchange in the
message history.
"""

from smartform.agent.replies import compose_reply
from smartform.agent.state import AssistantState
from smartform.agent.utils import make_message
from smartform.core.language import Locale


def respond_node(state: AssistantState) -> dict:
    """Choose the reply and append the user and assistant messages.

    Returns:
        Partial state with action and the two new history entries.
    """
    locale = Locale(state.get("locale", Locale.TH.value))
    next_field = state.get("next_field")

    action = compose_reply(
        is_request=state.get("is_request", False),
        missing_fields=[next_field] if next_field else [],
        locale=locale,
        schema=state["schema"],
        form=state.get("form", {}),
        general_text=state.get("reply_text"),
    )

    anchor = state.get("anchor")
    return {
        "action": action,
        "awaiting_field": action.get("field_id"),
        "messages": [
            make_message("user", state.get("user_message", ""), anchor),
            make_message("assistant", action["text"], anchor),
        ],
    }
