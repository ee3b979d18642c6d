"""
Task API
PDCA task CRUD with role scoping
"""
from fastapi import APIRouter, Body, Depends, HTTPException, status, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Any, Dict, List, Optional

from pdca_tracker.core.exceptions import WorkItemError
from pdca_tracker.core.status import WorkItemStatus
from pdca_tracker.db.mongo import get_db
from pdca_tracker.api.v1.deps import get_current_user, http_error, is_admin, scoped_assignee
from pdca_tracker.models.task import PdcaStage, TaskOut
from pdca_tracker.services.task_service import TaskService


router = APIRouter(prefix="/tasks", tags=["Tasks"])


async def load_task_for_user(service: TaskService, task_id: str, current_user: dict) -> dict:
    """
    Fetch a task the current user may see, 404 otherwise
    Regular users only reach tasks assigned to or created by them.
    """
    try:
        task = await service.get_task(task_id)
    except WorkItemError as e:
        raise http_error(e)

    if not task or not (
        is_admin(current_user)
        or task.get("assignee") == current_user["name"]
        or task.get("created_by") == current_user["id"]
    ):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return task


@router.get("/", response_model=List[TaskOut])
async def list_tasks(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[WorkItemStatus] = Query(None, alias="status"),
    pdca_stage: Optional[PdcaStage] = None,
    assignee: Optional[str] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    List tasks
    Admins see every task; users see the tasks assigned to them.
    """
    service = TaskService(db)
    try:
        return await service.list_tasks(
            assignee=scoped_assignee(current_user, assignee),
            status=status_filter,
            pdca_stage=pdca_stage,
            skip=skip,
            limit=limit
        )
    except WorkItemError as e:
        raise http_error(e)


@router.post("/", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: Dict[str, Any] = Body(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Create a task
    Users without the admin role can only assign tasks to themselves.
    """
    if not is_admin(current_user):
        payload = {**payload, "assignee": current_user["name"]}

    service = TaskService(db)
    try:
        return await service.create_task(payload, current_user["id"])
    except WorkItemError as e:
        raise http_error(e)


@router.get("/{task_id}", response_model=TaskOut)
async def get_task(
    task_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    service = TaskService(db)
    task = await load_task_for_user(service, task_id, current_user)
    try:
        return service.to_out(task)
    except WorkItemError as e:
        raise http_error(e)


@router.patch("/{task_id}", response_model=TaskOut)
async def update_task(
    task_id: str,
    payload: Dict[str, Any] = Body(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Update a task; the status is recomputed from progress and due date
    """
    service = TaskService(db)
    await load_task_for_user(service, task_id, current_user)

    if not is_admin(current_user):
        payload = {k: v for k, v in payload.items() if k != "assignee"}

    try:
        task = await service.update_task(task_id, payload)
    except WorkItemError as e:
        raise http_error(e)

    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return task


@router.delete("/{task_id}")
async def delete_task(
    task_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    service = TaskService(db)
    await load_task_for_user(service, task_id, current_user)

    try:
        deleted = await service.delete_task(task_id)
    except WorkItemError as e:
        raise http_error(e)

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    return {"message": "Task deleted successfully"}
