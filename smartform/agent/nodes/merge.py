"""
Merge node: folds the extraction into the form and computes what is
still missing.
"""

import logging

from smartform.agent.state import AssistantState
from smartform.core.extraction import NoExtraction, merge_extraction
from smartform.core.form_state import first_missing, missing_required_fields

logger = logging.getLogger(__name__)


def merge_node(state: AssistantState) -> dict:
    """Merge the extraction monotonically and run the required-field checks.

    Returns:
        Partial state with the new form, changed, missing and next fields.
    """
    config = state["config"]
    schema = state["schema"]
    form = state.get("form", {})
    extraction = state.get("extraction") or NoExtraction()

    result = merge_extraction(form, extraction, config.zone)
    missing = missing_required_fields(result.form, schema)
    next_field = first_missing(result.form, schema.priority_order)
    if next_field is None and missing:
        next_field = missing[0]

    if result.changed_fields:
        logger.info("Merged fields: %s", ", ".join(result.changed_fields))
    logger.info("Missing required fields: %d (next: %s)", len(missing), next_field)

    return {
        "form": result.form,
        "changed_fields": result.changed_fields,
        "missing_fields": missing,
        "next_field": next_field,
    }
