"""
Order API
Purchase order CRUD
"""
from fastapi import APIRouter, Body, Depends, HTTPException, status, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Any, Dict, List, Optional

from pdca_tracker.core.exceptions import WorkItemError
from pdca_tracker.core.status import WorkItemStatus
from pdca_tracker.db.mongo import get_db
from pdca_tracker.api.v1.deps import get_current_user, http_error
from pdca_tracker.models.order import OrderOut, OrderProcess
from pdca_tracker.services.order_service import OrderService


router = APIRouter(prefix="/orders", tags=["Orders"])


def order_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail="Order not found"
    )


@router.get("/", response_model=List[OrderOut])
async def list_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    status_filter: Optional[WorkItemStatus] = Query(None, alias="status"),
    process: Optional[OrderProcess] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    List orders, newest first
    """
    try:
        return await OrderService(db).list_orders(
            status=status_filter,
            process=process,
            skip=skip,
            limit=limit
        )
    except WorkItemError as e:
        raise http_error(e)


@router.post("/", response_model=OrderOut, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: Dict[str, Any] = Body(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Create an order; the order number is allocated by the server
    """
    try:
        return await OrderService(db).create_order(payload, current_user["id"])
    except WorkItemError as e:
        raise http_error(e)


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(
    order_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    service = OrderService(db)
    try:
        order = await service.get_order(order_id)
        if not order:
            raise order_not_found()
        return service.to_out(order)
    except WorkItemError as e:
        raise http_error(e)


@router.patch("/{order_id}", response_model=OrderOut)
async def update_order(
    order_id: str,
    payload: Dict[str, Any] = Body(...),
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Update an order; status and done are recomputed
    """
    try:
        order = await OrderService(db).update_order(order_id, payload)
    except WorkItemError as e:
        raise http_error(e)

    if order is None:
        raise order_not_found()
    return order


@router.delete("/{order_id}")
async def delete_order(
    order_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    try:
        deleted = await OrderService(db).delete_order(order_id)
    except WorkItemError as e:
        raise http_error(e)

    if not deleted:
        raise order_not_found()
    return {"message": "Order deleted successfully"}
