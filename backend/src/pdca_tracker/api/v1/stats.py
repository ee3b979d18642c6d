"""
Statistics API
Figures behind the admin and user dashboards
"""
from fastapi import APIRouter, Depends, HTTPException, status, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import List, Optional

from pdca_tracker.core.exceptions import WorkItemError
from pdca_tracker.db.mongo import get_db
from pdca_tracker.api.v1.deps import get_current_user, http_error, require_admin, scoped_assignee
from pdca_tracker.models.stats import MonthlyOrders, PdcaDistribution, TaskSummary, UserPerformance
from pdca_tracker.services.stats_service import PERIOD_DAYS, StatsService


router = APIRouter(prefix="/stats", tags=["Stats"])


@router.get("/tasks/summary", response_model=TaskSummary)
async def task_summary(
    assignee: Optional[str] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Task totals by status
    """
    try:
        return await StatsService(db).task_summary(scoped_assignee(current_user, assignee))
    except WorkItemError as e:
        raise http_error(e)


@router.get("/tasks/users", response_model=List[UserPerformance])
async def task_user_performance(
    db: AsyncIOMotorDatabase = Depends(get_db),
    _=Depends(require_admin)
):
    """
    Per-user performance, best completion rate first
    """
    try:
        return await StatsService(db).user_performance()
    except WorkItemError as e:
        raise http_error(e)


@router.get("/tasks/pdca", response_model=PdcaDistribution)
async def task_pdca_distribution(
    period: str = Query("30days"),
    assignee: Optional[str] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Tasks created in the period, by PDCA stage
    """
    if period not in PERIOD_DAYS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"period must be one of: {', '.join(PERIOD_DAYS)}"
        )
    try:
        return await StatsService(db).pdca_distribution(period, scoped_assignee(current_user, assignee))
    except WorkItemError as e:
        raise http_error(e)


@router.get("/orders/monthly", response_model=List[MonthlyOrders])
async def orders_monthly(
    months: int = Query(6, ge=1, le=24),
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Order counts and value over the last months
    """
    try:
        return await StatsService(db).monthly_orders(months)
    except WorkItemError as e:
        raise http_error(e)
