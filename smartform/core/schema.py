"""
Form schema definition and validation models.

These Pydantic models describe the equipment-borrowing form the assistant
fills in. The schema is the single source of truth for field ids, types,
defaults, options, required flags, the order in which missing fields are
asked about, and the question text for each field.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, model_validator

from smartform.core.language import Locale

SCHEMAS_DIR = Path(__file__).parent.parent / "schemas"

DEFAULT_SCHEMA_FILE = "equipment_borrow.json"


# --- Enums ---


class FieldType(str, Enum):
    """Supported form field types."""

    TEXT = "text"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    DROPDOWN = "dropdown"
    CHECKBOX = "checkbox"
    FILES = "files"


# Field types whose value is a list rather than a string
LIST_FIELD_TYPES = {FieldType.CHECKBOX, FieldType.FILES}


# --- Form Field ---


class FormField(BaseModel):
    """Definition of a single form field.

    Dropdown and checkbox fields must include options. Every field carries
    a question per supported locale, used when the field is the next one
    missing.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Unique field identifier",
    )
    type: FieldType = Field(
        ...,
        description="The widget type for this field",
    )
    required: bool = Field(
        default=False,
        description="Whether this field must be filled before submitting",
    )
    default: Any = Field(
        default=None,
        description="Initial value for a fresh form (empty if absent)",
    )
    options: list[str] | None = Field(
        default=None,
        description="Available options (required for dropdown and checkbox types)",
    )
    prompt: dict[Locale, str] = Field(
        ...,
        description="The question to ask the user for this field, per locale",
    )

    @model_validator(mode="after")
    def validate_options_for_type(self) -> "FormField":
        """Dropdown and checkbox fields must have options defined."""
        types_requiring_options = {FieldType.DROPDOWN, FieldType.CHECKBOX}

        if self.type in types_requiring_options:
            if not self.options:
                raise ValueError(
                    f"Field '{self.id}' of type '{self.type.value}' must have non-empty 'options'"
                )

        if self.type not in types_requiring_options and self.options is not None:
            raise ValueError(
                f"Field '{self.id}' of type '{self.type.value}' should not have 'options'"
            )

        return self

    @model_validator(mode="after")
    def validate_prompt_locales(self) -> "FormField":
        """Every supported locale needs a question."""
        missing = [locale.value for locale in Locale if not self.prompt.get(locale)]
        if missing:
            raise ValueError(f"Field '{self.id}' is missing prompts for: {missing}")
        return self

    def initial_value(self) -> Any:
        """Value of this field in a freshly created form."""
        if self.default is not None:
            return list(self.default) if isinstance(self.default, list) else self.default
        return [] if self.type in LIST_FIELD_TYPES else ""


# --- Top-Level Form Schema ---


class FormSchema(BaseModel):
    """Top-level form schema.

    Validates field uniqueness and that the priority order only names
    existing fields.
    """

    form_id: str = Field(
        ...,
        min_length=1,
        description="Unique form identifier",
    )
    title: dict[Locale, str] = Field(
        default_factory=dict,
        description="Human readable form title, per locale",
    )
    priority_order: list[str] = Field(
        ...,
        min_length=1,
        description="Field ids in the order the assistant asks about them",
    )
    fields: list[FormField] = Field(
        ...,
        min_length=1,
        description="List of form fields (at least one required)",
    )

    @model_validator(mode="after")
    def validate_cross_field_references(self) -> "FormSchema":
        """Validate field ID uniqueness and priority order references."""
        field_ids = set()

        for f in self.fields:
            if f.id in field_ids:
                raise ValueError(f"Duplicate field ID: '{f.id}'")
            field_ids.add(f.id)

        for field_id in self.priority_order:
            if field_id not in field_ids:
                raise ValueError(
                    f"priority_order references non-existent field '{field_id}'"
                )

        if len(set(self.priority_order)) != len(self.priority_order):
            raise ValueError("priority_order contains duplicate field ids")

        return self

    @property
    def field_ids(self) -> list[str]:
        return [f.id for f in self.fields]

    @property
    def required_field_ids(self) -> list[str]:
        """Required field ids in schema order."""
        return [f.id for f in self.fields if f.required]

    def get_field(self, field_id: str) -> FormField | None:
        """Look up a field by its ID."""
        for field in self.fields:
            if field.id == field_id:
                return field
        return None

    def question_for(self, field_id: str, locale: Locale) -> str | None:
        """Return the question text for a field in the given locale."""
        field = self.get_field(field_id)
        if field is None:
            return None
        return field.prompt.get(locale)


def load_form_schema(path: str | Path | None = None) -> FormSchema:
    """Load and validate a form schema JSON file.

    Args:
        path: Path to the schema file. Defaults to the bundled
            equipment-borrowing form.

    Returns:
        A validated FormSchema.
    """
    schema_path = Path(path) if path is not None else SCHEMAS_DIR / DEFAULT_SCHEMA_FILE
    with open(schema_path, encoding="utf-8") as f:
        return FormSchema(**json.load(f))
