"""
Creation and update payload validation

Presence is checked explicitly: a field is missing when it is absent, None or
a blank string. 0 and False are present values.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from pdca_tracker.core.exceptions import ValidationError
from pdca_tracker.core.status import check_progress, parse_due_date


TASK_REQUIRED_FIELDS: Sequence[str] = (
    "department",
    "pdca_stage",
    "source",
    "processes",
    "action",
    "assignee",
    "due_date",
    "progress_percent",
)

ORDER_REQUIRED_FIELDS: Sequence[str] = (
    "project",
    "requester",
    "description",
    "category",
    "deadline",
    "pam",
    "supplier",
    "request_frame",
    "process",
)

# Never accepted from a caller
PROTECTED_FIELDS = frozenset({
    "id", "_id", "status", "done", "task_number", "order_number",
    "created_at", "created_by", "updated_at", "order_creation_date",
})


@dataclass
class ValidationResult:
    """Outcome of a payload check"""
    missing_fields: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.missing_fields and not self.errors

    @property
    def fields(self) -> List[str]:
        return self.missing_fields + [f for f in self.errors if f not in self.missing_fields]

    def raise_for_errors(self) -> None:
        if self.ok:
            return
        parts = []
        if self.missing_fields:
            parts.append(f"Missing required fields: {', '.join(self.missing_fields)}")
        parts.extend(self.errors.values())
        raise ValidationError("; ".join(parts), self.fields)


def is_present(payload: Mapping[str, Any], name: str) -> bool:
    if name not in payload:
        return False
    value = payload[name]
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def _check_typed_fields(
    payload: Mapping[str, Any],
    result: ValidationResult,
    progress_field: Optional[str],
    date_field: Optional[str]
) -> None:
    if progress_field and is_present(payload, progress_field):
        try:
            check_progress(payload[progress_field], progress_field)
        except ValidationError as e:
            result.errors[progress_field] = e.message

    if date_field and is_present(payload, date_field):
        try:
            parse_due_date(payload[date_field], date_field)
        except ValidationError as e:
            result.errors[date_field] = e.message


def validate_creation_payload(
    payload: Mapping[str, Any],
    required_fields: Iterable[str],
    progress_field: Optional[str] = "progress_percent",
    date_field: Optional[str] = "due_date"
) -> ValidationResult:
    """
    Check a creation payload.

    Every missing required field is reported, not just the first one. The
    progress percentage and the due date are type/range checked when present.
    """
    result = ValidationResult()
    result.missing_fields = [name for name in required_fields if not is_present(payload, name)]
    _check_typed_fields(payload, result, progress_field, date_field)
    return result


def validate_update_payload(
    payload: Mapping[str, Any],
    required_fields: Iterable[str],
    progress_field: Optional[str] = "progress_percent",
    date_field: Optional[str] = "due_date"
) -> ValidationResult:
    """
    Check a partial update.

    Only the supplied fields are checked; a required field may be left out
    but not blanked.
    """
    result = ValidationResult()
    result.missing_fields = [
        name for name in required_fields
        if name in payload and not is_present(payload, name)
    ]
    _check_typed_fields(payload, result, progress_field, date_field)
    return result


def strip_protected(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop fields the server owns (status, sequence numbers, ids, timestamps)."""
    return {k: v for k, v in payload.items() if k not in PROTECTED_FIELDS}


def pydantic_error_to_validation_error(exc) -> ValidationError:
    """Translate a pydantic.ValidationError into the engine's ValidationError."""
    fields = []
    messages = []
    for err in exc.errors():
        name = ".".join(str(part) for part in err.get("loc", ())) or "payload"
        if name not in fields:
            fields.append(name)
        messages.append(f"{name}: {err.get('msg')}")
    return ValidationError("; ".join(messages), fields)
