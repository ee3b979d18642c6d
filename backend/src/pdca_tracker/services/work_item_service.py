"""
Shared plumbing for task and order services
Payload normalisation, storage conversion and error translation
"""
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError

from pdca_tracker.core.exceptions import ConflictError, PersistenceError
from pdca_tracker.core.status import check_progress, parse_due_date, to_storage_date
from pdca_tracker.core.validation import is_present, pydantic_error_to_validation_error


def normalize_payload(
    payload: Mapping[str, Any],
    date_field: str,
    progress_field: str = "progress_percent"
) -> Dict[str, Any]:
    """
    Coerce the due date and the percentage to their canonical types.
    Call only after validation; the coercions raise on bad input anyway.
    """
    clean = dict(payload)
    if is_present(clean, date_field):
        clean[date_field] = parse_due_date(clean[date_field], date_field)
    if is_present(clean, progress_field):
        clean[progress_field] = check_progress(clean[progress_field], progress_field)
    return clean


def parse_model(model_cls, data: Mapping[str, Any]):
    """model_validate with engine-style errors"""
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        raise pydantic_error_to_validation_error(e) from e


def to_mongo(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Enums to their values, plain dates to midnight datetimes"""
    out = {}
    for key, value in data.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, date) and not isinstance(value, datetime):
            value = to_storage_date(value)
        out[key] = value
    return out


def snapshot_filter(
    doc: Mapping[str, Any],
    date_field: str,
    progress_field: str = "progress_percent"
) -> Dict[str, Any]:
    """
    Update filter that only matches while the status inputs are unchanged.

    A status derived from ``doc`` is only written if nobody changed the
    progress or the due date since ``doc`` was read.
    """
    return {
        "id": doc["id"],
        progress_field: doc[progress_field] if progress_field in doc else {"$exists": False},
        date_field: doc.get(date_field),
    }


class MongoErrorTranslator:
    """
    Context manager turning driver errors into engine errors

        async with MongoErrorTranslator("create task"):
            await collection.insert_one(doc)
    """

    def __init__(self, operation: str, logger=None):
        self.operation = operation
        self.logger = logger

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb) -> Optional[bool]:
        if exc is None:
            return None
        if isinstance(exc, DuplicateKeyError):
            if self.logger:
                self.logger.warning("%s hit a duplicate key: %s", self.operation, exc)
            raise ConflictError(f"{self.operation} conflicted with an existing record, try again") from exc
        if isinstance(exc, PyMongoError):
            if self.logger:
                self.logger.error("%s failed: %s", self.operation, exc)
            raise PersistenceError(f"{self.operation} failed: {exc}") from exc
        return None
