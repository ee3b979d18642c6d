"""
Shared model helpers
"""
from datetime import date, datetime
from typing import Any


def coerce_stored_date(value: Any) -> Any:
    """Due dates come back from MongoDB as midnight datetimes."""
    if isinstance(value, datetime):
        return value.date()
    return value
