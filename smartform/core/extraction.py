"""
Extraction records and the extraction -> form merger.

The LLM answers with a flat snake_case JSON object in which every field
is nullable. The object is validated defensively at the boundary into an
ExtractionResult, renamed into form field ids through a static mapping
table, and merged into the current form without ever erasing a filled
field.

A response with no parseable JSON becomes NoExtraction, an explicit
"nothing new" result that merges to the unchanged form.
"""

import logging
from datetime import tzinfo
from enum import Enum
from typing import Any, Literal, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from smartform.core.form_state import changed_fields, is_empty
from smartform.core.utils import normalize_datetime, split_datetime

logger = logging.getLogger(__name__)


# --- Equipment types ---


class EquipmentType(str, Enum):
    """Equipment types the LLM may emit for `equipment_type`."""

    NOTEBOOK = "Notebook"
    HUB = "Hub"
    ROUTER = "Router"
    PROJECTOR = "Projector"
    MOUSE = "Mouse"
    DOCK = "Dock"
    MONITOR = "Monitor"
    EXTERNAL_HDD = "External HDD"
    HDMI_ADAPTER = "HDMI Adapter"
    OTHER = "Other"


# Extraction enum value (and common spellings) -> form dropdown option
_EQUIPMENT_FORM_VALUES: dict[str, str] = {
    "notebook": "notebook",
    "laptop": "notebook",
    "computer": "notebook",
    "hub": "hub",
    "router": "router",
    "projector": "projector",
    "mouse": "mouse",
    "dock": "dock",
    "docking station": "dock",
    "monitor": "monitor",
    "screen": "monitor",
    "external hdd": "external-hdd",
    "hdmi adapter": "hdmi-cable",
    "hdmi cable": "hdmi-cable",
    "other": "other",
}


def normalize_equipment_type(value: str) -> str:
    """Map an extracted equipment type to the form's dropdown option.

    Unknown types map to "other".
    """
    key = value.strip().lower().replace("-", " ").replace("_", " ")
    key = " ".join(key.split())
    return _EQUIPMENT_FORM_VALUES.get(key, "other")


# --- Extraction records ---

_NULL_STRINGS = {"null", "none", "n/a", "undefined"}

_TEXT_FIELDS = (
    "employee_id",
    "full_name",
    "position",
    "department",
    "division",
    "unit",
    "phone",
    "email",
    "doc_ref_no",
    "doc_date",
    "subject",
    "equipment_type",
    "quantity",
    "purpose",
    "start_datetime",
    "end_datetime",
    "install_location",
    "extra_software_choice",
    "extra_software_name",
    "coordinator",
    "coordinator_phone",
    "receiver",
    "receive_datetime",
    "remark",
    "attachment",
)


class ExtractionResult(BaseModel):
    """One LLM extraction. Every field is optional and None when absent.

    Values of the wrong shape are dropped to None rather than rejected, so
    a partially confused model still contributes whatever it got right.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    kind: Literal["extraction"] = "extraction"

    employee_id: str | None = None
    full_name: str | None = None
    position: str | None = None
    department: str | None = None
    division: str | None = None
    unit: str | None = None
    phone: str | None = None
    email: str | None = None
    doc_ref_no: str | None = None
    doc_date: str | None = None
    subject: str | None = None
    equipment_type: str | None = None
    quantity: str | None = None
    purpose: str | None = None
    start_datetime: str | None = None
    end_datetime: str | None = None
    install_location: str | None = None
    default_software: bool | None = None
    extra_software_choice: str | None = None
    extra_software_name: str | None = None
    coordinator: str | None = None
    coordinator_phone: str | None = None
    receiver: str | None = None
    receive_datetime: str | None = None
    remark: str | None = None
    attachment: str | None = None

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str | None:
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            return str(int(value)) if value.is_integer() else str(value)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or stripped.lower() in _NULL_STRINGS:
                return None
            return stripped
        return None

    @field_validator("default_software", mode="before")
    @classmethod
    def coerce_flag(cls, value: Any) -> bool | None:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in {"true", "yes", "1"}:
                return True
            if lowered in {"false", "no", "0"}:
                return False
        return None

    def present_fields(self) -> dict[str, Any]:
        """Extraction fields that carry a value."""
        return {
            name: value
            for name, value in self.model_dump(exclude={"kind"}).items()
            if not is_empty(value)
        }


class NoExtraction(BaseModel):
    """The model produced nothing parseable; equivalent to no new information."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"
    reason: str = "no_json"


ExtractionOutcome = ExtractionResult | NoExtraction


def parse_extraction(payload: Any) -> ExtractionOutcome:
    """Validate a decoded JSON payload into an extraction outcome.

    Never raises: anything that is not a non-empty JSON object becomes
    NoExtraction.
    """
    if not isinstance(payload, dict) or not payload:
        return NoExtraction()

    fields = {k: v for k, v in payload.items() if k != "kind"}
    try:
        return ExtractionResult.model_validate(fields)
    except ValidationError as e:
        logger.warning("Discarding malformed extraction: %s", e)
        return NoExtraction(reason="invalid_shape")


# --- Mapping ---

# Plain renames: extraction field -> form field
EXTRACTION_TO_FORM: dict[str, str] = {
    "employee_id": "employeeId",
    "full_name": "fullName",
    "position": "position",
    "department": "department",
    "division": "division",
    "unit": "unit",
    "phone": "phone",
    "email": "email",
    "subject": "subject",
    "quantity": "quantity",
    "purpose": "purpose",
    "install_location": "installLocation",
    "extra_software_name": "additionalSoftwareDetails",
    "coordinator": "coordinatorName",
    "coordinator_phone": "coordinatorPhone",
    "receiver": "receiver",
    "remark": "notes",
}

# Combined datetimes split into (date field, time field)
DATETIME_SPLITS: dict[str, tuple[str, str]] = {
    "start_datetime": ("startDate", "startTime"),
    "end_datetime": ("endDate", "endTime"),
}


def to_form_values(extraction: ExtractionOutcome, zone: tzinfo) -> dict[str, Any]:
    """Convert an extraction into form field values.

    Only fields that carry a value are returned. Datetimes that cannot be
    parsed are dropped with a warning.

    Args:
        extraction: The validated extraction.
        zone: Timezone of the form's calendar, used for datetime splits.

    Returns:
        {form_field_id: value} for every present, convertible field.
    """
    if isinstance(extraction, NoExtraction):
        return {}

    present = extraction.present_fields()
    values: dict[str, Any] = {}

    for source, target in EXTRACTION_TO_FORM.items():
        if source in present:
            values[target] = present[source]

    if "equipment_type" in present:
        values["equipmentType"] = normalize_equipment_type(present["equipment_type"])

    for source, (date_field, time_field) in DATETIME_SPLITS.items():
        if source not in present:
            continue
        split = split_datetime(present[source], zone)
        if split is None:
            logger.warning("Extraction rejected %s = '%s': not a datetime", source, present[source])
            continue
        date_value, time_value = split
        values[date_field] = date_value
        if time_value is not None:
            values[time_field] = time_value

    if "receive_datetime" in present:
        normalized = normalize_datetime(present["receive_datetime"], zone)
        if normalized is None:
            logger.warning(
                "Extraction rejected receive_datetime = '%s': not a datetime",
                present["receive_datetime"],
            )
        else:
            values["receiveDateTime"] = normalized

    if present.get("default_software") is True:
        values["basicSoftware"] = ["basic"]

    # "no" is the form default, so only an explicit "yes" carries information
    choice = str(present.get("extra_software_choice", "")).lower()
    if choice == "yes" or "extra_software_name" in present:
        values["additionalSoftware"] = "yes"

    return values


# --- Merge ---


class MergeResult(BaseModel):
    """Outcome of merging one extraction into a form."""

    form: dict[str, Any]
    changed_fields: list[str]


def merge_extraction(
    form: Mapping[str, Any],
    extraction: ExtractionOutcome,
    zone: tzinfo,
) -> MergeResult:
    """Merge an extraction into a copy of the form.

    Present values overwrite the corresponding field; empty or null values
    leave the existing value untouched, so information only accumulates
    across turns. The input form is never mutated.

    Args:
        form: The current form state.
        extraction: The extraction to merge.
        zone: Timezone used for splitting datetimes.

    Returns:
        MergeResult with the new form and the field ids that actually
        changed, in form order.
    """
    next_form = dict(form)
    updates = to_form_values(extraction, zone)

    for field_id, value in updates.items():
        if is_empty(value):
            continue
        next_form[field_id] = value

    return MergeResult(form=next_form, changed_fields=changed_fields(form, next_form))
