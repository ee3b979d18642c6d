"""
Work item status derivation

Status is never stored on its own authority: it is always computed from the
completion percentage and the due date.
"""
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional, Union

from pdca_tracker.core.exceptions import ValidationError


class WorkItemStatus(str, Enum):
    """Lifecycle status of a task or order"""
    COMPLETED = "completed"
    IN_PROGRESS = "in-progress"
    OVERDUE = "overdue"


PROGRESS_MIN = 0
PROGRESS_MAX = 100


def parse_due_date(value: Any, field: str = "due_date") -> date:
    """
    Turn a payload value into a calendar date.

    Accepts ``date``/``datetime`` instances and ISO 8601 strings (``2024-05-01``
    or ``2024-05-01T17:30:00Z``). Aware datetimes are converted to local server
    time before the time of day is dropped.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return parse_due_date(datetime.fromisoformat(text.replace("Z", "+00:00")), field)
        except ValueError:
            pass
    raise ValidationError(f"{field} is not a valid date: {value!r}", [field])


def check_progress(value: Any, field: str = "progress_percent") -> int:
    """Reject anything that is not an integer percentage in [0, 100]."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer, got a boolean", [field])
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer, got {value!r}", [field])
    if value < PROGRESS_MIN or value > PROGRESS_MAX:
        raise ValidationError(
            f"{field} must be between {PROGRESS_MIN} and {PROGRESS_MAX}, got {value}",
            [field]
        )
    return value


def derive_status(
    progress_percent: int,
    due_date: Union[date, datetime, str],
    today: Optional[date] = None
) -> WorkItemStatus:
    """
    Compute the status of a work item.

    A finished item is ``completed`` even when it was finished late. An
    unfinished item is ``overdue`` only when its due date is strictly before
    today; an item due today is still ``in-progress``.
    """
    progress_percent = check_progress(progress_percent)
    due = parse_due_date(due_date)

    if progress_percent == PROGRESS_MAX:
        return WorkItemStatus.COMPLETED

    if today is None:
        today = date.today()
    if due < today:
        return WorkItemStatus.OVERDUE

    return WorkItemStatus.IN_PROGRESS


def to_storage_date(value: date) -> datetime:
    """BSON has no date type; due dates are stored as naive local midnights."""
    return datetime.combine(value, time.min)


def status_query(
    status: WorkItemStatus,
    date_field: str,
    progress_field: str = "progress_percent",
    today: Optional[date] = None
) -> dict:
    """MongoDB filter matching the items whose derived status is ``status``."""
    if status == WorkItemStatus.COMPLETED:
        return {progress_field: PROGRESS_MAX}

    # $ne also matches documents stored without a percentage, which count as 0
    unfinished = {"$ne": PROGRESS_MAX}
    midnight = to_storage_date(today or date.today())
    if status == WorkItemStatus.OVERDUE:
        return {progress_field: unfinished, date_field: {"$lt": midnight}}
    return {progress_field: unfinished, date_field: {"$gte": midnight}}
