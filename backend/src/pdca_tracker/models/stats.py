"""
Dashboard statistics models
"""
from pydantic import BaseModel
from typing import List


class TaskSummary(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    overdue: int = 0
    completion_rate: int = 0


class UserPerformance(BaseModel):
    name: str
    total_tasks: int = 0
    completed_tasks: int = 0
    overdue_tasks: int = 0
    completion_rate: float = 0.0


class StageCount(BaseModel):
    stage: str
    count: int = 0


class PdcaDistribution(BaseModel):
    period_days: int
    stages: List[StageCount]


class MonthlyOrders(BaseModel):
    month: str  # YYYY-MM
    total: int = 0
    completed: int = 0
    in_progress: int = 0
    value: float = 0.0
