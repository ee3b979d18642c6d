"""
Payload validation tests
"""
import pytest
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from pdca_tracker.core.exceptions import ValidationError
from pdca_tracker.core.validation import (
    ORDER_REQUIRED_FIELDS, TASK_REQUIRED_FIELDS,
    is_present, pydantic_error_to_validation_error, strip_protected,
    validate_creation_payload, validate_update_payload
)


def full_task(**overrides):
    data = {
        "department": "Quality",
        "pdca_stage": "Plan",
        "source": "Customer complaint",
        "processes": "Crimping",
        "action": "Add a pull test",
        "assignee": "Jane Doe",
        "due_date": "2025-06-30",
        "progress_percent": 0,
    }
    data.update(overrides)
    return data


class TestIsPresent:

    @pytest.mark.parametrize("value", [0, False, "x", 0.0])
    def test_falsy_values_count_as_present(self, value):
        assert is_present({"field": value}, "field")

    @pytest.mark.parametrize("payload", [{}, {"field": None}, {"field": ""}, {"field": "   "}])
    def test_missing_values(self, payload):
        assert not is_present(payload, "field")


class TestCreationPayload:

    def test_complete_payload_is_ok(self):
        result = validate_creation_payload(full_task(), TASK_REQUIRED_FIELDS)
        assert result.ok
        result.raise_for_errors()

    def test_zero_progress_is_not_missing(self):
        result = validate_creation_payload(full_task(progress_percent=0), TASK_REQUIRED_FIELDS)
        assert "progress_percent" not in result.missing_fields

    def test_missing_due_date_is_named(self):
        payload = full_task()
        del payload["due_date"]

        with pytest.raises(ValidationError) as exc:
            validate_creation_payload(payload, TASK_REQUIRED_FIELDS).raise_for_errors()

        assert exc.value.fields == ["due_date"]
        assert "due_date" in exc.value.message

    def test_every_missing_field_is_reported(self):
        result = validate_creation_payload({"department": "Quality"}, TASK_REQUIRED_FIELDS)

        assert result.missing_fields == [name for name in TASK_REQUIRED_FIELDS if name != "department"]

    def test_blank_string_is_missing(self):
        result = validate_creation_payload(full_task(assignee="  "), TASK_REQUIRED_FIELDS)
        assert result.missing_fields == ["assignee"]

    def test_progress_out_of_range(self):
        result = validate_creation_payload(full_task(progress_percent=120), TASK_REQUIRED_FIELDS)
        assert not result.ok
        assert list(result.errors) == ["progress_percent"]

    def test_missing_and_invalid_fields_are_combined(self):
        payload = full_task(progress_percent=-5)
        del payload["action"]

        with pytest.raises(ValidationError) as exc:
            validate_creation_payload(payload, TASK_REQUIRED_FIELDS).raise_for_errors()

        assert exc.value.fields == ["action", "progress_percent"]
        assert exc.value.message.startswith("Missing required fields: action; ")

    def test_invalid_deadline_for_orders(self):
        payload = {name: "x" for name in ORDER_REQUIRED_FIELDS}
        payload["deadline"] = "tomorrow"

        result = validate_creation_payload(payload, ORDER_REQUIRED_FIELDS, date_field="deadline")

        assert result.fields == ["deadline"]


class TestUpdatePayload:

    def test_omitted_fields_are_fine(self):
        assert validate_update_payload({"progress_percent": 60}, TASK_REQUIRED_FIELDS).ok

    def test_blanking_a_required_field_is_rejected(self):
        result = validate_update_payload({"department": ""}, TASK_REQUIRED_FIELDS)
        assert result.missing_fields == ["department"]

    def test_null_due_date_is_rejected(self):
        result = validate_update_payload({"due_date": None}, TASK_REQUIRED_FIELDS)
        assert result.missing_fields == ["due_date"]

    def test_progress_is_range_checked(self):
        result = validate_update_payload({"progress_percent": 101}, TASK_REQUIRED_FIELDS)
        assert result.fields == ["progress_percent"]


def test_strip_protected_drops_server_owned_fields():
    payload = full_task(status="completed", task_number=99, id="abc", done=True)

    clean = strip_protected(payload)

    assert "status" not in clean
    assert "task_number" not in clean
    assert "id" not in clean
    assert "done" not in clean
    assert clean["department"] == "Quality"


def test_pydantic_errors_are_translated():
    class Sample(BaseModel):
        total_price: float = Field(..., ge=0)

    with pytest.raises(PydanticValidationError) as exc:
        Sample.model_validate({"total_price": -1})

    error = pydantic_error_to_validation_error(exc.value)

    assert isinstance(error, ValidationError)
    assert error.fields == ["total_price"]
    assert error.message.startswith("total_price:")
