"""
Tests for form state helpers: emptiness, required-field checks and
direct user edits.
"""

import pytest

from smartform.core.form_state import (
    AnswerValidationError,
    all_missing,
    apply_user_edits,
    changed_fields,
    create_initial_form,
    first_missing,
    is_complete,
    is_empty,
    missing_required_fields,
)


def _complete_form(schema) -> dict:
    form = create_initial_form(schema)
    form.update({
        "phone": "0812345678",
        "subject": "ขอยืมโปรเจคเตอร์",
        "equipmentType": "projector",
        "purpose": "ประชุม",
        "startDate": "2025-06-27",
        "startTime": "13:00",
        "endDate": "2025-06-27",
        "endTime": "15:00",
        "installLocation": "ห้องประชุม 2",
        "coordinatorName": "Malee",
        "coordinatorPhone": "0898765432",
        "receiveDateTime": "2025-06-27T12:00",
    })
    return form


class TestIsEmpty:
    @pytest.mark.parametrize("value", [None, "", "   ", [], ()])
    def test_empty(self, value):
        assert is_empty(value) is True

    @pytest.mark.parametrize("value", ["0", 0, False, ["basic"], "no"])
    def test_not_empty(self, value):
        assert is_empty(value) is False


class TestInitialForm:
    def test_defaults_applied(self, schema):
        form = create_initial_form(schema)
        assert form["quantity"] == "1"
        assert form["additionalSoftware"] == "no"
        assert form["basicSoftware"] == []
        assert form["attachments"] == []
        assert form["purpose"] == ""

    def test_every_field_present(self, schema):
        assert set(create_initial_form(schema)) == set(schema.field_ids)

    def test_initial_lists_are_independent(self, schema):
        first = create_initial_form(schema)
        first["basicSoftware"].append("basic")
        assert create_initial_form(schema)["basicSoftware"] == []


class TestRequiredFields:
    """Tests for first_missing / all_missing."""

    def test_first_missing_on_fresh_form(self, schema):
        form = create_initial_form(schema)
        assert first_missing(form, schema.priority_order) == "equipmentType"

    def test_first_missing_follows_priority(self, schema):
        form = create_initial_form(schema)
        form["equipmentType"] = "notebook"
        form["startDate"] = "2025-06-27"
        assert first_missing(form, schema.priority_order) == "startTime"

    def test_first_missing_none_when_priority_filled(self, schema):
        assert first_missing(_complete_form(schema), schema.priority_order) is None

    def test_first_missing_deterministic(self, schema):
        form = create_initial_form(schema)
        form["endTime"] = "15:00"
        assert first_missing(form, schema.priority_order) == first_missing(
            form, schema.priority_order
        )

    def test_all_missing_keeps_given_order(self):
        form = {"a": "", "b": "x", "c": None}
        assert all_missing(form, ["c", "b", "a"]) == ["c", "a"]

    def test_missing_required_priority_first(self, schema):
        missing = missing_required_fields(create_initial_form(schema), schema)
        assert missing[: len(schema.priority_order)] == schema.priority_order
        assert missing[len(schema.priority_order):] == ["subject", "receiveDateTime"]

    def test_is_complete(self, schema):
        form = _complete_form(schema)
        assert is_complete(form, schema) is True
        form["subject"] = "  "
        assert is_complete(form, schema) is False


class TestChangedFields:
    def test_changed(self):
        assert changed_fields({"a": "1", "b": ""}, {"a": "1", "b": "x"}) == ["b"]


class TestApplyUserEdits:
    """Tests for apply_user_edits."""

    def test_valid_edits(self, schema):
        form = create_initial_form(schema)
        updated = apply_user_edits(
            form,
            schema,
            {
                "equipmentType": "monitor",
                "startDate": "2025-06-27",
                "startTime": "09:30",
                "receiveDateTime": "2025-06-26T16:00",
                "basicSoftware": ["basic"],
                "attachments": ["memo.pdf"],
            },
        )
        assert updated["equipmentType"] == "monitor"
        assert updated["basicSoftware"] == ["basic"]
        assert form["equipmentType"] == ""

    def test_user_edit_may_clear(self, schema):
        form = _complete_form(schema)
        updated = apply_user_edits(form, schema, {"purpose": "", "basicSoftware": None})
        assert updated["purpose"] == ""
        assert updated["basicSoftware"] == []

    def test_unknown_field_rejected(self, schema):
        with pytest.raises(AnswerValidationError) as exc:
            apply_user_edits(create_initial_form(schema), schema, {"color": "red"})
        assert exc.value.field_id == "color"

    @pytest.mark.parametrize(
        "field_id, value",
        [
            ("equipmentType", "typewriter"),
            ("basicSoftware", ["office", "basic"]),
            ("basicSoftware", "basic"),
            ("startDate", "2025-13-45"),
            ("startDate", "13:00"),
            ("endDate", "June"),
            ("endDate", "2025-6-7"),
            ("startTime", "2025-01-01"),
            ("startTime", "9:30"),
            ("receiveDateTime", "2025-06-26 16:00"),
            ("startTime", "afternoon"),
            ("receiveDateTime", "whenever"),
            ("purpose", 42),
            ("attachments", "memo.pdf"),
        ],
    )
    def test_invalid_values_rejected(self, schema, field_id, value):
        with pytest.raises(AnswerValidationError):
            apply_user_edits(create_initial_form(schema), schema, {field_id: value})
