"""
Work item errors

ValidationError is permanent: the caller has to fix the request.
ConflictError and PersistenceError are retryable, but the retry belongs to
the caller.
"""
from typing import Iterable, List, Optional


class WorkItemError(Exception):
    """Base class for task/order engine errors"""
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(WorkItemError):
    """Missing or invalid input"""

    def __init__(self, message: str, fields: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.fields: List[str] = list(fields or [])


class ConflictError(WorkItemError):
    """Sequence or unique-key collision"""
    retryable = True


class PersistenceError(WorkItemError):
    """Underlying storage unavailable or failing"""
    retryable = True
