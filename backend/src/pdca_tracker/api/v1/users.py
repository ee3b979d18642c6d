"""
User Management API
Admin-only user administration
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError
from typing import List, Optional
import logging

from pdca_tracker.core.exceptions import WorkItemError
from pdca_tracker.db.mongo import Collections, get_db
from pdca_tracker.api.v1.auth import (
    check_password_policy, duplicate_user_error, hash_password, insert_user, new_user_doc
)
from pdca_tracker.api.v1.deps import http_error, require_admin
from pdca_tracker.models.user import UserCreate, UserOut, UserUpdate
from pdca_tracker.services.task_service import TaskService


router = APIRouter(prefix="/users", tags=["Users"])
logger = logging.getLogger(__name__)


@router.get("/", response_model=List[UserOut])
async def list_users(
    name: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_db),
    _=Depends(require_admin)
):
    """
    List users, optionally filtered by name
    """
    query = {"name": name} if name else {}
    users = await db[Collections.USERS].find(query, {"_id": 0, "password": 0}) \
        .sort("name", 1).to_list(length=1000)
    return [UserOut(**user) for user in users]


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    _=Depends(require_admin)
):
    """
    Create a user with any role
    """
    check_password_policy(user_data.password)
    user_doc = new_user_doc(
        user_data.name,
        user_data.email,
        user_data.password,
        role=user_data.role,
        status_=user_data.status,
        profile_picture=user_data.profile_picture
    )
    return await insert_user(db, user_doc)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    _=Depends(require_admin)
):
    user = await db[Collections.USERS].find_one({"id": user_id}, {"_id": 0, "password": 0})
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return UserOut(**user)


@router.patch("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: str,
    user_update: UserUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    _=Depends(require_admin)
):
    """
    Update a user
    Renaming a user carries their tasks over to the new name.
    """
    users = db[Collections.USERS]
    user = await users.find_one({"id": user_id}, {"_id": 0})
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    update_data = user_update.model_dump(exclude_unset=True, exclude_none=True)

    if "email" in update_data:
        update_data["email"] = update_data["email"].lower()
        clash = await users.find_one({"email": update_data["email"], "id": {"$ne": user_id}})
        if clash:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already exists"
            )

    if "name" in update_data and update_data["name"] != user["name"]:
        clash = await users.find_one({"name": update_data["name"], "id": {"$ne": user_id}})
        if clash:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Name already exists"
            )

    if "password" in update_data:
        check_password_policy(update_data["password"])
        update_data["password"] = hash_password(update_data["password"])

    for key in ("role", "status"):
        if key in update_data:
            update_data[key] = update_data[key].value

    if update_data:
        try:
            await users.update_one({"id": user_id}, {"$set": update_data})
        except DuplicateKeyError as e:
            raise duplicate_user_error(e)

    if "name" in update_data and update_data["name"] != user["name"]:
        try:
            moved = await TaskService(db).rename_assignee(user["name"], update_data["name"])
        except WorkItemError as e:
            raise http_error(e)
        logger.info("Moved %d tasks from %s to %s", moved, user["name"], update_data["name"])

    return UserOut(**{**user, **update_data})


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    current_user: dict = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Delete a user together with the tasks assigned to them
    """
    if user_id == current_user["id"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account"
        )

    users = db[Collections.USERS]
    user = await users.find_one({"id": user_id})
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    try:
        removed = await TaskService(db).delete_tasks_for_assignee(user["name"])
    except WorkItemError as e:
        raise http_error(e)

    await users.delete_one({"id": user_id})
    logger.info("Deleted user %s and %d tasks", user["email"], removed)

    return {"message": "User and their tasks deleted successfully", "deleted_tasks": removed}
