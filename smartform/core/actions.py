"""
Assistant action protocol: structured reply models.

Every turn ends with exactly one action. The web client reads the action
JSON, shows `text` in the chat pane and uses the rest (field id, options,
missing fields) to highlight and focus the form.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel

from smartform.core.language import Locale
from smartform.core.schema import FieldType, FormField


# --- Action Type Enum ---


class ActionType(str, Enum):
    """All supported assistant action types."""

    ASK_TEXT = "ASK_TEXT"
    ASK_DATE = "ASK_DATE"
    ASK_TIME = "ASK_TIME"
    ASK_DATETIME = "ASK_DATETIME"
    ASK_DROPDOWN = "ASK_DROPDOWN"
    ASK_CHECKBOX = "ASK_CHECKBOX"
    ASK_FILES = "ASK_FILES"
    FORM_COMPLETE = "FORM_COMPLETE"
    MESSAGE = "MESSAGE"
    ERROR = "ERROR"


# --- Action Models ---


class AskFieldAction(BaseModel):
    """Asks the user for one form field."""

    action: ActionType
    field_id: str
    text: str
    locale: Locale
    options: list[str] | None = None


class FormCompleteAction(BaseModel):
    """All required fields are filled; the user should review and submit."""

    action: ActionType = ActionType.FORM_COMPLETE
    text: str
    locale: Locale
    data: dict[str, Any]


class MessageAction(BaseModel):
    """A conversational message (greeting, thanks, general chat)."""

    action: ActionType = ActionType.MESSAGE
    text: str
    locale: Locale | None = None


class ErrorAction(BaseModel):
    """A failed turn. The form is unchanged."""

    action: ActionType = ActionType.ERROR
    kind: str
    text: str
    locale: Locale | None = None


# --- Mapping from FieldType to ActionType ---

_FIELD_TYPE_TO_ACTION: dict[FieldType, ActionType] = {
    FieldType.TEXT: ActionType.ASK_TEXT,
    FieldType.DATE: ActionType.ASK_DATE,
    FieldType.TIME: ActionType.ASK_TIME,
    FieldType.DATETIME: ActionType.ASK_DATETIME,
    FieldType.DROPDOWN: ActionType.ASK_DROPDOWN,
    FieldType.CHECKBOX: ActionType.ASK_CHECKBOX,
    FieldType.FILES: ActionType.ASK_FILES,
}


# --- Action Builders ---


def build_action_for_field(field: FormField, question: str, locale: Locale) -> dict:
    """Build the ASK_* action dict for a form field.

    Args:
        field: The field being asked for.
        question: The localized question text.
        locale: Locale of the question.

    Returns:
        A dict representing the action JSON. Dropdown and checkbox actions
        carry the field's options.
    """
    action_type = _FIELD_TYPE_TO_ACTION.get(field.type)
    if action_type is None:
        raise ValueError(f"No action mapping for field type: {field.type}")

    options = field.options if field.type in {FieldType.DROPDOWN, FieldType.CHECKBOX} else None
    action = AskFieldAction(
        action=action_type,
        field_id=field.id,
        text=question,
        locale=locale,
        options=options,
    )
    return action.model_dump(mode="json", exclude_none=True)


def build_completion_action(text: str, locale: Locale, form: dict[str, Any]) -> dict:
    """Build the FORM_COMPLETE action carrying a snapshot of the form."""
    return FormCompleteAction(text=text, locale=locale, data=dict(form)).model_dump(mode="json")


def build_message_action(text: str, locale: Locale | None = None) -> dict:
    """Build a MESSAGE action for conversational responses."""
    return MessageAction(text=text, locale=locale).model_dump(mode="json", exclude_none=True)


def build_error_action(kind: str, text: str, locale: Locale | None = None) -> dict:
    """Build an ERROR action.

    Args:
        kind: Machine-readable error kind (e.g. "timeout", "upstream").
        text: The user-facing message.
        locale: Locale of the message.
    """
    return ErrorAction(kind=kind, text=text, locale=locale).model_dump(
        mode="json", exclude_none=True
    )
