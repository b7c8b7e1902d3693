"""
Form state helpers.

A form state is a flat dict of field id -> value. Every operation here
returns a new dict and leaves its input untouched, so callers can keep the
previous state around and compare states for equality.

Covers:
- Explicit emptiness checks (never plain truthiness)
- Creating a fresh form from the schema defaults
- The required-field validator (first missing / all missing)
- Direct user edits, validated per field type
"""

from typing import Any, Iterable, Mapping

from smartform.core.schema import LIST_FIELD_TYPES, FieldType, FormField, FormSchema
from smartform.core.utils import (
    FORM_DATE_FORMAT,
    FORM_DATETIME_FORMAT,
    FORM_TIME_FORMAT,
    parse_form_value,
)


class AnswerValidationError(Exception):
    """Raised when a user edit fails validation for its field type."""

    def __init__(self, field_id: str, message: str):
        self.field_id = field_id
        self.message = message
        super().__init__(f"Field '{field_id}': {message}")


# -----------------------------------------------------------------
# Emptiness
# -----------------------------------------------------------------


def is_empty(value: Any) -> bool:
    """Return True if a form or extraction value carries no information.

    Empty means None, a blank string, or an empty list/tuple. Values such
    as "0", 0 and False are NOT empty.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


# -----------------------------------------------------------------
# Creation
# -----------------------------------------------------------------


def create_initial_form(schema: FormSchema) -> dict[str, Any]:
    """Return a fresh form with every field empty except schema defaults."""
    return {field.id: field.initial_value() for field in schema.fields}


# -----------------------------------------------------------------
# Required-field validation
# -----------------------------------------------------------------


def first_missing(form: Mapping[str, Any], priority_order: Iterable[str]) -> str | None:
    """Return the earliest field in `priority_order` whose value is empty.

    Returns None if every field in the order is populated.
    """
    for field_id in priority_order:
        if is_empty(form.get(field_id)):
            return field_id
    return None


def all_missing(form: Mapping[str, Any], required: Iterable[str]) -> list[str]:
    """Return every field in `required` whose value is empty, in that order."""
    return [field_id for field_id in required if is_empty(form.get(field_id))]


def missing_required_fields(form: Mapping[str, Any], schema: FormSchema) -> list[str]:
    """All missing required fields, priority fields first, then schema order."""
    required = set(schema.required_field_ids)
    ordered = [fid for fid in schema.priority_order if fid in required]
    ordered += [fid for fid in schema.required_field_ids if fid not in ordered]
    return all_missing(form, ordered)


def is_complete(form: Mapping[str, Any], schema: FormSchema) -> bool:
    """Check if all required fields are populated."""
    return not all_missing(form, schema.required_field_ids)


def changed_fields(before: Mapping[str, Any], after: Mapping[str, Any]) -> list[str]:
    """Field ids whose value differs between two form states (after's order)."""
    return [fid for fid, value in after.items() if before.get(fid) != value]


# -----------------------------------------------------------------
# Direct user edits
# -----------------------------------------------------------------


def apply_user_edits(
    form: Mapping[str, Any],
    schema: FormSchema,
    updates: Mapping[str, Any],
) -> dict[str, Any]:
    """Apply edits typed directly into the form by the user.

    Unlike a merge, a user edit may clear a field: an empty value resets
    the field to its empty state.

    Args:
        form: The current form state.
        schema: The form schema used for validation.
        updates: {field_id: value} pairs from the UI.

    Returns:
        A new form state with the edits applied.

    Raises:
        AnswerValidationError: If any value is invalid for its field type,
            or the field does not exist. No edit is applied in that case.
    """
    next_form = dict(form)

    for field_id, value in updates.items():
        field = schema.get_field(field_id)
        if field is None:
            raise AnswerValidationError(field_id, "Field does not exist in the schema")

        if is_empty(value):
            next_form[field_id] = [] if field.type in LIST_FIELD_TYPES else ""
            continue

        _validate_answer(field, value)
        next_form[field_id] = list(value) if isinstance(value, (list, tuple)) else value

    return next_form


# -----------------------------------------------------------------
# Answer validation per field type
# -----------------------------------------------------------------


def _validate_answer(field: FormField, value: Any) -> None:
    """Validate a non-empty value against its field type.

    Raises:
        AnswerValidationError: If the value is invalid.
    """
    match field.type:
        case FieldType.DROPDOWN:
            _validate_dropdown(field, value)
        case FieldType.CHECKBOX:
            _validate_checkbox(field, value)
        case FieldType.TEXT:
            _validate_text(field, value)
        case FieldType.DATE:
            _validate_date(field, value)
        case FieldType.TIME:
            _validate_time(field, value)
        case FieldType.DATETIME:
            _validate_datetime(field, value)
        case FieldType.FILES:
            _validate_files(field, value)


def _validate_dropdown(field: FormField, value: Any) -> None:
    """Dropdown value must be one of the defined options."""
    if not isinstance(value, str):
        raise AnswerValidationError(field.id, "Dropdown answer must be a string")
    if field.options and value not in field.options:
        raise AnswerValidationError(
            field.id,
            f"'{value}' is not a valid option. Choose from: {field.options}",
        )


def _validate_checkbox(field: FormField, value: Any) -> None:
    """Checkbox value(s) must be a list and a subset of defined options."""
    if not isinstance(value, (list, tuple)):
        raise AnswerValidationError(field.id, "Checkbox answer must be a list")
    if field.options:
        invalid = [v for v in value if v not in field.options]
        if invalid:
            raise AnswerValidationError(
                field.id,
                f"Invalid checkbox values: {invalid}. Choose from: {field.options}",
            )


def _validate_text(field: FormField, value: Any) -> None:
    if not isinstance(value, str):
        raise AnswerValidationError(field.id, "Text answer must be a string")


def _validate_date(field: FormField, value: Any) -> None:
    """Date value must be a calendar date written as YYYY-MM-DD."""
    if parse_form_value(value, FORM_DATE_FORMAT) is None:
        raise AnswerValidationError(field.id, f"'{value}' is not a valid date (YYYY-MM-DD)")


def _validate_time(field: FormField, value: Any) -> None:
    """Time value must be a wall-clock time written as HH:MM."""
    if parse_form_value(value, FORM_TIME_FORMAT) is None:
        raise AnswerValidationError(field.id, f"'{value}' is not a valid time (HH:MM)")


def _validate_datetime(field: FormField, value: Any) -> None:
    if parse_form_value(value, FORM_DATETIME_FORMAT) is None:
        raise AnswerValidationError(
            field.id, f"'{value}' is not a valid datetime (YYYY-MM-DDTHH:MM)"
        )


def _validate_files(field: FormField, value: Any) -> None:
    """File lists hold opaque string handles."""
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise AnswerValidationError(field.id, "Attachments must be a list of file handles")
