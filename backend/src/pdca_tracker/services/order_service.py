"""
Order Service - purchase order business logic
"""
from typing import Any, Dict, List, Mapping, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from datetime import date, datetime, timezone
import logging
import uuid

from pdca_tracker.core.config import settings
from pdca_tracker.core.exceptions import ConflictError
from pdca_tracker.core.status import WorkItemStatus, derive_status, status_query
from pdca_tracker.core.validation import (
    ORDER_REQUIRED_FIELDS, strip_protected,
    validate_creation_payload, validate_update_payload
)
from pdca_tracker.db.mongo import Collections
from pdca_tracker.models.order import OrderCreate, OrderOut, OrderProcess, OrderUpdate
from pdca_tracker.services.sequence_service import SequenceService, parse_sequence
from pdca_tracker.services.work_item_service import (
    MongoErrorTranslator, normalize_payload, parse_model, snapshot_filter, to_mongo
)

logger = logging.getLogger(__name__)

DATE_FIELD = "deadline"


class OrderService:
    """Order business logic service"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.orders = db[Collections.ORDERS]
        self.sequences = SequenceService(db)

    @staticmethod
    def to_out(doc: Mapping[str, Any], today: Optional[date] = None) -> OrderOut:
        data = {k: v for k, v in doc.items() if k != "_id"}
        data.setdefault("progress_percent", 0)
        status = derive_status(data["progress_percent"], data[DATE_FIELD], today)
        data["status"] = status
        data["done"] = status == WorkItemStatus.COMPLETED
        return OrderOut(**data)

    async def create_order(self, payload: Mapping[str, Any], created_by: str) -> OrderOut:
        """
        Create an order with the next ORDnnnn number.
        progress_percent is optional for orders and starts at 0.
        """
        validate_creation_payload(payload, ORDER_REQUIRED_FIELDS, date_field=DATE_FIELD).raise_for_errors()

        clean = normalize_payload(strip_protected(payload), DATE_FIELD)
        order_data = parse_model(OrderCreate, clean)

        status = derive_status(order_data.progress_percent, order_data.deadline)
        order_number = await self.sequences.next_formatted(
            settings.ORDER_COUNTER_KEY,
            settings.ORDER_NUMBER_PREFIX,
            settings.ORDER_NUMBER_WIDTH
        )

        now = datetime.now(timezone.utc)
        order_doc = {
            "id": str(uuid.uuid4()),
            "order_number": order_number,
            **to_mongo(order_data.model_dump()),
            "status": status.value,
            "done": status == WorkItemStatus.COMPLETED,
            "order_creation_date": now,
            "created_by": created_by,
            "created_at": now,
            "updated_at": now
        }

        async with MongoErrorTranslator("Create order", logger):
            await self.orders.insert_one(order_doc)

        logger.info("Created order %s (%s)", order_number, order_doc["id"])
        return self.to_out(order_doc)

    async def get_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        async with MongoErrorTranslator("Fetch order", logger):
            return await self.orders.find_one({"id": order_id}, {"_id": 0})

    async def list_orders(
        self,
        status: Optional[WorkItemStatus] = None,
        process: Optional[OrderProcess] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[OrderOut]:
        """List orders, newest first"""
        query: Dict[str, Any] = {}
        if process:
            query["process"] = process.value
        if status:
            query.update(status_query(status, DATE_FIELD))

        async with MongoErrorTranslator("List orders", logger):
            docs = await self.orders.find(query, {"_id": 0}) \
                .sort("created_at", DESCENDING).skip(skip).limit(limit).to_list(length=limit)

        today = date.today()
        return [self.to_out(doc, today) for doc in docs]

    async def all_orders(self) -> List[Dict[str, Any]]:
        async with MongoErrorTranslator("Load orders", logger):
            return await self.orders.find({}, {"_id": 0}).to_list(length=None)

    async def update_order(self, order_id: str, payload: Mapping[str, Any]) -> Optional[OrderOut]:
        """
        Update an order; status and done are re-derived, never taken from the caller.
        Same conditional write as TaskService.update_task.
        """
        clean = strip_protected(payload)
        validate_update_payload(clean, ORDER_REQUIRED_FIELDS, date_field=DATE_FIELD).raise_for_errors()
        clean = normalize_payload(clean, DATE_FIELD)
        changes = to_mongo(parse_model(OrderUpdate, clean).model_dump(exclude_unset=True, exclude_none=True))

        attempts = max(1, settings.UPDATE_RETRIES)
        for attempt in range(1, attempts + 1):
            order = await self.get_order(order_id)
            if not order:
                return None

            merged = {**order, **changes}
            status = derive_status(merged.get("progress_percent", 0), merged[DATE_FIELD])
            update_data = {
                **changes,
                "status": status.value,
                "done": status == WorkItemStatus.COMPLETED,
                "updated_at": datetime.now(timezone.utc)
            }

            async with MongoErrorTranslator("Update order", logger):
                result = await self.orders.update_one(
                    snapshot_filter(order, DATE_FIELD),
                    {"$set": update_data}
                )

            if result.matched_count:
                return self.to_out({**order, **update_data})

            logger.warning("Order %s changed during update (attempt %d/%d)", order_id, attempt, attempts)

        raise ConflictError(f"Order {order_id} is being updated concurrently, try again")

    async def delete_order(self, order_id: str) -> bool:
        async with MongoErrorTranslator("Delete order", logger):
            result = await self.orders.delete_one({"id": order_id})
        if result.deleted_count:
            logger.info("Deleted order %s", order_id)
        return result.deleted_count > 0

    async def sync_counter(self) -> int:
        """
        Raise the order counter to the highest stored order number.
        Numbers are zero padded, so the lexical maximum is the numeric one
        as long as they fit the configured width.
        """
        async with MongoErrorTranslator("Read highest order number", logger):
            last = await self.orders.find_one(
                {"order_number": {"$regex": f"^{settings.ORDER_NUMBER_PREFIX}\\d+$"}},
                {"order_number": 1},
                sort=[("order_number", DESCENDING)]
            )
        highest = 0
        if last:
            try:
                highest = parse_sequence(last["order_number"], settings.ORDER_NUMBER_PREFIX)
            except ValueError:
                logger.warning("Ignoring unparseable order number %s", last["order_number"])
        return await self.sequences.ensure_floor(settings.ORDER_COUNTER_KEY, highest)
