"""
LangGraph definition for the SmartForm assistant turn pipeline.

Defines the StateGraph with nodes, conditional edges, and compiles it
into a runnable graph. One invocation is one user turn.

Flow:
    START -> classify -> {extraction, general_chat}
    extraction   -> {merge, END} (conditional, END if the LLM failed)
    merge        -> respond
    general_chat -> {respond, END} (conditional, END if the LLM failed)
    respond      -> END
"""

import logging
from datetime import datetime
from typing import Any

from langgraph.graph import END, START, StateGraph

from smartform.agent.config import AssistantConfig
from smartform.agent.nodes import (
    classify_node,
    extraction_node,
    general_chat_node,
    merge_node,
    respond_node,
)
from smartform.agent.replies import build_welcome_action, welcome_message
from smartform.agent.state import AssistantState
from smartform.agent.utils import make_message
from smartform.core.form_state import create_initial_form, missing_required_fields
from smartform.core.language import BASE_LOCALE, Locale
from smartform.core.schema import FormSchema

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Routing functions
# ---------------------------------------------------------------------------


def route_after_classify(state: AssistantState) -> str:
    """Equipment requests go through extraction; anything else is general chat."""
    if state.get("is_request"):
        return "extraction"
    return "general_chat"


def route_after_llm(next_node: str):
    """Build a router that stops the turn when the LLM call failed.

    A failed node has already set the ERROR action, and skipping the rest
    of the graph keeps form and history as they were.
    """

    def route(state: AssistantState) -> str:
        if state.get("error"):
            return END
        return next_node

    return route


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------


def build_graph() -> StateGraph:
    """Build the SmartForm state graph (uncompiled).

    Returns:
        A StateGraph instance ready to be compiled.
    """
    graph = StateGraph(AssistantState)

    graph.add_node("classify", classify_node)
    graph.add_node("extraction", extraction_node)
    graph.add_node("merge", merge_node)
    graph.add_node("general_chat", general_chat_node)
    graph.add_node("respond", respond_node)

    graph.add_edge(START, "classify")
    graph.add_conditional_edges("classify", route_after_classify, {
        "extraction": "extraction",
        "general_chat": "general_chat",
    })

    graph.add_conditional_edges("extraction", route_after_llm("merge"), {
        "merge": "merge",
        END: END,
    })
    graph.add_edge("merge", "respond")

    graph.add_conditional_edges("general_chat", route_after_llm("respond"), {
        "respond": "respond",
        END: END,
    })

    graph.add_edge("respond", END)

    return graph


def compile_graph():
    """Build and compile the SmartForm graph.

    Sessions keep their own state, so no checkpointer is attached.

    Returns:
        A compiled graph ready for invocation via ainvoke().
    """
    return build_graph().compile()


# ---------------------------------------------------------------------------
# State initialization helpers
# ---------------------------------------------------------------------------


def create_initial_state(
    schema: FormSchema,
    config: AssistantConfig,
    llm_client: Any,
    locale: Locale = BASE_LOCALE,
) -> AssistantState:
    """Create the initial state for a new form-filling session.

    The form starts from the schema defaults and the history holds the
    welcome message.

    Args:
        schema: The form being filled.
        config: Assistant configuration.
        llm_client: The LLMClient used by this session.
        locale: Locale of the welcome message.

    Returns:
        A fully initialized AssistantState dict.
    """
    locale = Locale(locale)
    form = create_initial_form(schema)

    return AssistantState(
        user_message="",
        anchor=None,
        llm_client=llm_client,
        config=config,
        schema=schema,
        form=form,
        messages=[make_message("assistant", welcome_message(locale), config.now())],
        awaiting_field=None,
        action=build_welcome_action(locale),
        locale=locale.value,
        is_request=False,
        raw_response=None,
        extraction=None,
        changed_fields=[],
        missing_fields=missing_required_fields(form, schema),
        next_field=None,
        reply_text=None,
        error=None,
    )


def prepare_turn_input(
    state: AssistantState,
    user_message: str,
    anchor: datetime | None = None,
) -> AssistantState:
    """Prepare state for a new conversation turn.

    Updates the input fields and resets ephemeral per-turn fields while
    preserving accumulated state (form, messages).

    Args:
        state: The current session state.
        user_message: The new user message.
        anchor: Reference datetime for the turn. Defaults to the config clock.

    Returns:
        Updated state ready for graph invocation.
    """
    updated = dict(state)
    updated["user_message"] = user_message
    updated["anchor"] = anchor or state["config"].now()
    updated["action"] = {}
    updated["raw_response"] = None
    updated["extraction"] = None
    updated["changed_fields"] = []
    updated["next_field"] = None
    updated["reply_text"] = None
    updated["error"] = None
    return AssistantState(**updated)


async def run_turn(graph: Any, state: AssistantState, user_message: str) -> AssistantState:
    """Run one user turn through the compiled graph.

    On a failed turn the returned state keeps the previous form and
    message history and carries the ERROR action.
    """
    turn_input = prepare_turn_input(state, user_message)
    result = await graph.ainvoke(turn_input)
    if result.get("error"):
        logger.warning("Turn failed: %s", result["error"].get("kind"))
    return result
