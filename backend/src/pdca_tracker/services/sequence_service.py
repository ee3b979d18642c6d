"""
Sequence Service - atomic counters for task and order numbers

Each counter is a single document ``{"_id": key, "value": n}`` in the
counters collection. Allocation is one ``$inc`` round trip, so two requests
creating items at the same moment can never read the same "current max".
"""
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError
import logging

from pdca_tracker.core.config import settings
from pdca_tracker.core.exceptions import ConflictError, PersistenceError
from pdca_tracker.db.mongo import Collections

logger = logging.getLogger(__name__)


def format_sequence(value: int, prefix: str = "ORD", width: int = 4) -> str:
    """
    Format an allocated number, e.g. 7 -> ORD0007
    Numbers wider than ``width`` are not truncated.
    """
    return f"{prefix}{value:0{width}d}"


def parse_sequence(text: str, prefix: str = "ORD") -> int:
    """Inverse of format_sequence; ValueError on foreign formats."""
    if not text.startswith(prefix):
        raise ValueError(f"{text!r} does not start with {prefix!r}")
    return int(text[len(prefix):])


class SequenceService:
    """Counter allocation on top of MongoDB's atomic increment"""

    def __init__(self, db: AsyncIOMotorDatabase, max_upsert_retries: Optional[int] = None):
        self.db = db
        self.counters = db[Collections.COUNTERS]
        if max_upsert_retries is None:
            max_upsert_retries = settings.SEQUENCE_UPSERT_RETRIES
        self.max_upsert_retries = max(1, max_upsert_retries)

    async def _upsert(self, counter_key: str, update: dict, action: str) -> int:
        """
        Apply ``update`` to the counter document, creating it on first use.

        Two first-use upserts racing on the same key can make one of them
        fail with a duplicate ``_id``; that attempt changed nothing and is
        retried, at most ``max_upsert_retries`` times. Any other storage
        failure is raised as PersistenceError straight away.
        """
        for attempt in range(1, self.max_upsert_retries + 1):
            try:
                doc = await self.counters.find_one_and_update(
                    {"_id": counter_key},
                    update,
                    upsert=True,
                    return_document=ReturnDocument.AFTER
                )
            except DuplicateKeyError:
                logger.warning(
                    "Counter %s upsert collided (attempt %d/%d)",
                    counter_key, attempt, self.max_upsert_retries
                )
                continue
            except PyMongoError as e:
                logger.error("Counter %s %s failed: %s", counter_key, action, e)
                raise PersistenceError(f"Could not {action} counter {counter_key}: {e}") from e

            if doc is None or "value" not in doc:
                raise PersistenceError(f"Counter {counter_key} returned no value")
            return int(doc["value"])

        raise ConflictError(f"Counter {counter_key} is contended, try again")

    async def next_sequence(self, counter_key: str) -> int:
        """Allocate the next value of ``counter_key``."""
        return await self._upsert(counter_key, {"$inc": {"value": 1}}, "advance")

    async def next_formatted(
        self,
        counter_key: str,
        prefix: Optional[str] = None,
        width: Optional[int] = None
    ) -> str:
        """Allocate, then format; nothing is formatted for a failed allocation."""
        value = await self.next_sequence(counter_key)
        return format_sequence(
            value,
            prefix if prefix is not None else settings.ORDER_NUMBER_PREFIX,
            width if width is not None else settings.ORDER_NUMBER_WIDTH
        )

    async def current_value(self, counter_key: str) -> int:
        """Last allocated value, 0 when nothing was allocated yet"""
        try:
            doc = await self.counters.find_one({"_id": counter_key})
        except PyMongoError as e:
            raise PersistenceError(f"Could not read counter {counter_key}: {e}") from e
        return int(doc["value"]) if doc else 0

    async def ensure_floor(self, counter_key: str, value: int) -> int:
        """
        Raise the counter to at least ``value``.
        Used at start-up so numbers already present in the collections are
        never handed out again.
        """
        return await self._upsert(counter_key, {"$max": {"value": int(value)}}, "raise")
