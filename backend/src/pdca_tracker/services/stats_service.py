"""
Statistics Service
Aggregates behind the dashboard widgets, computed from derived statuses
"""
from typing import Dict, Iterable, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from datetime import date, datetime, timedelta, timezone

from pdca_tracker.core.status import WorkItemStatus, derive_status
from pdca_tracker.models.stats import (
    MonthlyOrders, PdcaDistribution, StageCount, TaskSummary, UserPerformance
)
from pdca_tracker.models.task import PdcaStage
from pdca_tracker.services.order_service import OrderService
from pdca_tracker.services.task_service import TaskService


PERIOD_DAYS = {
    "7days": 7,
    "30days": 30,
    "90days": 90,
    "365days": 365,
}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _month_key(value: datetime) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def _last_months(count: int, today: date) -> List[str]:
    """YYYY-MM keys for the last ``count`` months, oldest first"""
    keys = []
    year, month = today.year, today.month
    for _ in range(count):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def summarize_tasks(tasks: Iterable[dict], today: Optional[date] = None) -> TaskSummary:
    summary = TaskSummary()
    for task in tasks:
        status = derive_status(task["progress_percent"], task["due_date"], today)
        summary.total += 1
        if status == WorkItemStatus.COMPLETED:
            summary.completed += 1
        elif status == WorkItemStatus.OVERDUE:
            summary.overdue += 1
        else:
            summary.pending += 1
    if summary.total:
        summary.completion_rate = round(summary.completed / summary.total * 100)
    return summary


def user_performance(tasks: Iterable[dict], today: Optional[date] = None) -> List[UserPerformance]:
    """Per-assignee figures, best completion rate first"""
    by_user: Dict[str, UserPerformance] = {}
    for task in tasks:
        name = task.get("assignee")
        if not name:
            continue
        perf = by_user.setdefault(name, UserPerformance(name=name))
        perf.total_tasks += 1
        status = derive_status(task["progress_percent"], task["due_date"], today)
        if status == WorkItemStatus.COMPLETED:
            perf.completed_tasks += 1
        elif status == WorkItemStatus.OVERDUE:
            perf.overdue_tasks += 1

    for perf in by_user.values():
        perf.completion_rate = round(perf.completed_tasks / perf.total_tasks * 100, 1)

    return sorted(by_user.values(), key=lambda p: (-p.completion_rate, p.name))


def pdca_distribution(tasks: Iterable[dict], period: str, now: Optional[datetime] = None) -> PdcaDistribution:
    days = PERIOD_DAYS[period]
    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=days)

    counts = {stage.value: 0 for stage in PdcaStage}
    for task in tasks:
        created = task.get("created_at")
        if created is None or _as_utc(created) < start:
            continue
        if task.get("pdca_stage") in counts:
            counts[task["pdca_stage"]] += 1

    return PdcaDistribution(
        period_days=days,
        stages=[StageCount(stage=stage, count=count) for stage, count in counts.items()]
    )


def monthly_orders(orders: Iterable[dict], months: int, today: Optional[date] = None) -> List[MonthlyOrders]:
    today = today or date.today()
    buckets = {key: MonthlyOrders(month=key) for key in _last_months(months, today)}

    for order in orders:
        created = order.get("order_creation_date") or order.get("created_at")
        if created is None:
            continue
        # stored timestamps are UTC; the window is built from the local date
        bucket = buckets.get(_month_key(_as_utc(created).astimezone()))
        if bucket is None:
            continue
        status = derive_status(order.get("progress_percent", 0), order["deadline"], today)
        bucket.total += 1
        if status == WorkItemStatus.COMPLETED:
            bucket.completed += 1
        else:
            bucket.in_progress += 1
        bucket.value += float(order.get("total_price") or 0)

    return list(buckets.values())


class StatsService:
    """Dashboard statistics"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.task_service = TaskService(db)
        self.order_service = OrderService(db)

    async def task_summary(self, assignee: Optional[str] = None) -> TaskSummary:
        return summarize_tasks(await self.task_service.all_tasks(assignee))

    async def user_performance(self) -> List[UserPerformance]:
        return user_performance(await self.task_service.all_tasks())

    async def pdca_distribution(self, period: str, assignee: Optional[str] = None) -> PdcaDistribution:
        return pdca_distribution(await self.task_service.all_tasks(assignee), period)

    async def monthly_orders(self, months: int = 6) -> List[MonthlyOrders]:
        return monthly_orders(await self.order_service.all_orders(), months)
