"""
SmartForm graph state definition.

Defines the typed state that flows through all LangGraph nodes for one
conversation turn.

Only the message history uses a reducer (append). The form is replaced
wholesale by the merge node: monotonicity is enforced by the merge itself,
and a failed turn simply never writes it.
"""

from datetime import datetime
from operator import add
from typing import Annotated, Any, TypedDict


class AssistantState(TypedDict, total=False):
    """Complete state for a form-filling conversation turn.

    Split into sections:
    - Input:        Set by the caller each turn (user message, anchor)
    - Runtime:      Injected dependencies, not serialized
    - Accumulated:  Persists across turns (form, message history)
    - Output:       The action dict returned to the caller after each turn
    - Intermediate: Ephemeral fields used for inter-node communication
    """

    # --- Input (set per request) ---
    user_message: str
    anchor: datetime

    # --- Runtime (injected, not serialized) ---
    llm_client: Any  # LLMClient
    config: Any  # AssistantConfig
    schema: Any  # FormSchema

    # --- Accumulated state (persists across turns) ---
    form: dict[str, Any]
    messages: Annotated[list[dict[str, Any]], add]
    awaiting_field: str | None  # field the last reply asked for

    # --- Output ---
    action: dict[str, Any]

    # --- Intermediate (ephemeral, reset each turn) ---
    locale: str
    is_request: bool
    raw_response: str | None
    extraction: Any  # ExtractionOutcome
    changed_fields: list[str]
    missing_fields: list[str]
    next_field: str | None
    reply_text: str | None
    error: dict[str, str] | None
