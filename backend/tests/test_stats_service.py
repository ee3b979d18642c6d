"""
Dashboard statistics tests
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from pdca_tracker.services.stats_service import (
    StatsService, monthly_orders, pdca_distribution, summarize_tasks, user_performance
)
from pdca_tracker.services.task_service import TaskService

from conftest import task_payload


TODAY = date(2025, 6, 15)
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def task(assignee="Jane Doe", progress=0, due="2025-06-30", stage="Plan", created=NOW):
    return {
        "assignee": assignee,
        "progress_percent": progress,
        "due_date": due,
        "pdca_stage": stage,
        "created_at": created,
    }


def test_summary_counts_by_derived_status():
    tasks = [
        task(progress=100),
        task(progress=100, due="2025-01-01"),
        task(progress=50, due="2025-06-01"),
        task(progress=10),
    ]

    summary = summarize_tasks(tasks, TODAY)

    assert summary.total == 4
    assert summary.completed == 2
    assert summary.overdue == 1
    assert summary.pending == 1
    assert summary.completion_rate == 50


def test_summary_of_nothing():
    summary = summarize_tasks([], TODAY)
    assert summary.total == 0
    assert summary.completion_rate == 0


def test_user_performance_ranking():
    tasks = [
        task("Jane Doe", 100),
        task("Jane Doe", 20, due="2025-06-01"),
        task("Max Mustermann", 100),
        task("Ali Veli", 100),
        task("Ali Veli", 100),
        task("Ali Veli", 0),
        task(""),
    ]

    ranking = user_performance(tasks, TODAY)

    assert [p.name for p in ranking] == ["Max Mustermann", "Ali Veli", "Jane Doe"]
    assert ranking[1].completion_rate == 66.7
    assert ranking[2].overdue_tasks == 1
    assert ranking[2].total_tasks == 2


def test_pdca_distribution_only_counts_the_period():
    tasks = [
        task(stage="Plan", created=NOW - timedelta(days=2)),
        task(stage="Plan", created=NOW - timedelta(days=6)),
        task(stage="Act", created=NOW - timedelta(days=20)),
        task(stage="Do", created=datetime(2025, 6, 14)),
    ]

    week = pdca_distribution(tasks, "7days", NOW)
    counts = {s.stage: s.count for s in week.stages}

    assert week.period_days == 7
    assert counts == {"Plan": 2, "Do": 1, "Check": 0, "Act": 0}

    month = pdca_distribution(tasks, "30days", NOW)
    assert {s.stage: s.count for s in month.stages}["Act"] == 1


def test_monthly_orders_buckets():
    orders = [
        {"order_creation_date": datetime(2025, 6, 2, 12), "deadline": "2025-07-01",
         "progress_percent": 100, "total_price": 100.0},
        {"order_creation_date": datetime(2025, 6, 10), "deadline": "2025-07-01",
         "progress_percent": 0, "total_price": 50.5},
        {"order_creation_date": datetime(2025, 4, 1, 12), "deadline": "2025-05-01",
         "total_price": None},
        {"order_creation_date": datetime(2024, 1, 1), "deadline": "2024-02-01"},
    ]

    buckets = monthly_orders(orders, 3, TODAY)

    assert [b.month for b in buckets] == ["2025-04", "2025-05", "2025-06"]
    assert buckets[2].total == 2
    assert buckets[2].completed == 1
    assert buckets[2].in_progress == 1
    assert buckets[2].value == 150.5
    assert buckets[0].total == 1
    assert buckets[1].total == 0


def test_monthly_orders_use_the_local_month():
    created = datetime(2025, 5, 31, 23, 30, tzinfo=timezone.utc)
    orders = [{"order_creation_date": created, "deadline": "2025-07-01", "progress_percent": 0}]

    buckets = {b.month: b for b in monthly_orders(orders, 3, TODAY)}

    assert buckets[created.astimezone().strftime("%Y-%m")].total == 1
    assert sum(b.total for b in buckets.values()) == 1


def test_monthly_orders_across_year_boundary():
    buckets = monthly_orders([], 3, date(2025, 1, 20))
    assert [b.month for b in buckets] == ["2024-11", "2024-12", "2025-01"]


@pytest.mark.asyncio
async def test_stats_service_scopes_by_assignee(db):
    service = TaskService(db)
    await service.create_task(task_payload(assignee="Jane Doe", progress_percent=100), "u")
    await service.create_task(task_payload(assignee="Max Mustermann"), "u")

    stats = StatsService(db)

    everyone = await stats.task_summary()
    jane = await stats.task_summary("Jane Doe")

    assert everyone.total == 2
    assert jane.total == 1
    assert jane.completed == 1

    distribution = await stats.pdca_distribution("7days")
    assert {s.stage: s.count for s in distribution.stages}["Do"] == 2
