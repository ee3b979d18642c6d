"""
Task Models - PDCA tasks
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date, datetime
from enum import Enum

from pdca_tracker.core.status import WorkItemStatus
from pdca_tracker.models.common import coerce_stored_date


class PdcaStage(str, Enum):
    """PDCA stages"""
    PLAN = "Plan"
    DO = "Do"
    CHECK = "Check"
    ACT = "Act"


class TaskCreate(BaseModel):
    """Task creation, after required-field validation"""
    department: str = Field(..., min_length=1, max_length=200)
    pdca_stage: PdcaStage
    source: str = Field(..., min_length=1, max_length=200)
    processes: str = Field(..., min_length=1, max_length=500)
    action: str = Field(..., min_length=1, max_length=2000)
    assignee: str = Field(..., min_length=1, max_length=150)
    due_date: date
    progress_percent: int = Field(..., ge=0, le=100)
    comments: str = Field(default="", max_length=5000)


class TaskUpdate(BaseModel):
    """Task update; status is never accepted"""
    department: Optional[str] = Field(None, min_length=1, max_length=200)
    pdca_stage: Optional[PdcaStage] = None
    source: Optional[str] = Field(None, min_length=1, max_length=200)
    processes: Optional[str] = Field(None, min_length=1, max_length=500)
    action: Optional[str] = Field(None, min_length=1, max_length=2000)
    assignee: Optional[str] = Field(None, min_length=1, max_length=150)
    due_date: Optional[date] = None
    progress_percent: Optional[int] = Field(None, ge=0, le=100)
    comments: Optional[str] = Field(None, max_length=5000)


class TaskOut(BaseModel):
    """Task as returned by the API"""
    id: str
    task_number: int
    department: str
    pdca_stage: PdcaStage
    source: str
    processes: str
    action: str
    assignee: str
    due_date: date
    progress_percent: int
    comments: str = ""
    status: WorkItemStatus
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def coerce_due_date(cls, value):
        return coerce_stored_date(value)

    class Config:
        json_schema_extra = {
            "example": {
                "id": "0c7a6f0e-3f57-4a0e-9a43-1d0f5b1e2c11",
                "task_number": 12,
                "department": "Assembly",
                "pdca_stage": "Do",
                "source": "Internal audit",
                "processes": "Cable cutting",
                "action": "Recalibrate the cutting station",
                "assignee": "Jane Doe",
                "due_date": "2025-11-30",
                "progress_percent": 50,
                "comments": "",
                "status": "in-progress"
            }
        }
