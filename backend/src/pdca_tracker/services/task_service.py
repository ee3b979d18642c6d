"""
Task Service - PDCA task business logic
Validation, status derivation, task numbering
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
    TASK_REQUIRED_FIELDS, strip_protected,
    validate_creation_payload, validate_update_payload
)
from pdca_tracker.db.mongo import Collections
from pdca_tracker.models.task import PdcaStage, TaskCreate, TaskOut, TaskUpdate
from pdca_tracker.services.sequence_service import SequenceService
from pdca_tracker.services.work_item_service import (
    MongoErrorTranslator, normalize_payload, parse_model, snapshot_filter, to_mongo
)

logger = logging.getLogger(__name__)

DATE_FIELD = "due_date"


class TaskService:
    """Task business logic service"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.tasks = db[Collections.TASKS]
        self.sequences = SequenceService(db)

    @staticmethod
    def to_out(doc: Mapping[str, Any], today: Optional[date] = None) -> TaskOut:
        """Build the API model; status is re-derived so it is never stale."""
        data = {k: v for k, v in doc.items() if k != "_id"}
        data["status"] = derive_status(data["progress_percent"], data[DATE_FIELD], today)
        return TaskOut(**data)

    # ========================================================================
    # CREATE
    # ========================================================================

    async def create_task(self, payload: Mapping[str, Any], created_by: str) -> TaskOut:
        """
        Create a task.

        Order of operations: required fields and value checks, status
        derivation, then task number allocation. A number is only spent on a
        payload that passed validation.
        """
        validate_creation_payload(payload, TASK_REQUIRED_FIELDS, date_field=DATE_FIELD).raise_for_errors()

        clean = normalize_payload(strip_protected(payload), DATE_FIELD)
        task_data = parse_model(TaskCreate, clean)

        status = derive_status(task_data.progress_percent, task_data.due_date)
        task_number = await self.sequences.next_sequence(settings.TASK_COUNTER_KEY)

        now = datetime.now(timezone.utc)
        task_doc = {
            "id": str(uuid.uuid4()),
            "task_number": task_number,
            **to_mongo(task_data.model_dump()),
            "status": status.value,
            "created_by": created_by,
            "created_at": now,
            "updated_at": now
        }

        async with MongoErrorTranslator("Create task", logger):
            await self.tasks.insert_one(task_doc)

        logger.info("Created task #%d (%s) for %s", task_number, task_doc["id"], task_data.assignee)
        return self.to_out(task_doc)

    # ========================================================================
    # READ
    # ========================================================================

    async def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        async with MongoErrorTranslator("Fetch task", logger):
            return await self.tasks.find_one({"id": task_id}, {"_id": 0})

    async def list_tasks(
        self,
        assignee: Optional[str] = None,
        status: Optional[WorkItemStatus] = None,
        pdca_stage: Optional[PdcaStage] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[TaskOut]:
        """List tasks, newest task number first"""
        query: Dict[str, Any] = {}
        if assignee:
            query["assignee"] = assignee
        if pdca_stage:
            query["pdca_stage"] = pdca_stage.value
        if status:
            query.update(status_query(status, DATE_FIELD))

        async with MongoErrorTranslator("List tasks", logger):
            docs = await self.tasks.find(query, {"_id": 0}) \
                .sort("task_number", DESCENDING).skip(skip).limit(limit).to_list(length=limit)

        today = date.today()
        return [self.to_out(doc, today) for doc in docs]

    async def all_tasks(self, assignee: Optional[str] = None) -> List[Dict[str, Any]]:
        """Raw task documents for statistics"""
        query = {"assignee": assignee} if assignee else {}
        async with MongoErrorTranslator("Load tasks", logger):
            return await self.tasks.find(query, {"_id": 0}).to_list(length=None)

    # ========================================================================
    # UPDATE / DELETE
    # ========================================================================

    async def update_task(self, task_id: str, payload: Mapping[str, Any]) -> Optional[TaskOut]:
        """
        Update the supplied fields and re-derive the status from the merged
        progress and due date. A caller-supplied status is discarded.

        The write is conditional on the progress and due date it was derived
        from; when a concurrent update changed them, the task is re-read and
        the status derived again, up to UPDATE_RETRIES times.
        """
        clean = strip_protected(payload)
        validate_update_payload(clean, TASK_REQUIRED_FIELDS, date_field=DATE_FIELD).raise_for_errors()
        clean = normalize_payload(clean, DATE_FIELD)
        changes = to_mongo(parse_model(TaskUpdate, clean).model_dump(exclude_unset=True, exclude_none=True))

        attempts = max(1, settings.UPDATE_RETRIES)
        for attempt in range(1, attempts + 1):
            task = await self.get_task(task_id)
            if not task:
                return None

            merged = {**task, **changes}
            update_data = {
                **changes,
                "status": derive_status(merged["progress_percent"], merged[DATE_FIELD]).value,
                "updated_at": datetime.now(timezone.utc)
            }

            async with MongoErrorTranslator("Update task", logger):
                result = await self.tasks.update_one(
                    snapshot_filter(task, DATE_FIELD),
                    {"$set": update_data}
                )

            if result.matched_count:
                return self.to_out({**task, **update_data})

            logger.warning("Task %s changed during update (attempt %d/%d)", task_id, attempt, attempts)

        raise ConflictError(f"Task {task_id} is being updated concurrently, try again")

    async def delete_task(self, task_id: str) -> bool:
        async with MongoErrorTranslator("Delete task", logger):
            result = await self.tasks.delete_one({"id": task_id})
        if result.deleted_count:
            logger.info("Deleted task %s", task_id)
        return result.deleted_count > 0

    async def delete_tasks_for_assignee(self, assignee: str) -> int:
        async with MongoErrorTranslator("Delete tasks", logger):
            result = await self.tasks.delete_many({"assignee": assignee})
        return result.deleted_count

    async def rename_assignee(self, old_name: str, new_name: str) -> int:
        async with MongoErrorTranslator("Rename assignee", logger):
            result = await self.tasks.update_many(
                {"assignee": old_name},
                {"$set": {"assignee": new_name}}
            )
        return result.modified_count

    # ========================================================================
    # COUNTER
    # ========================================================================

    async def sync_counter(self) -> int:
        """Make sure the counter is not behind the highest stored task number"""
        async with MongoErrorTranslator("Read highest task number", logger):
            last = await self.tasks.find_one({}, {"task_number": 1}, sort=[("task_number", DESCENDING)])
        highest = int(last["task_number"]) if last and last.get("task_number") else 0
        return await self.sequences.ensure_floor(settings.TASK_COUNTER_KEY, highest)
