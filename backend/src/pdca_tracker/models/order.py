"""
Order Models - purchase orders
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date, datetime
from enum import Enum

from pdca_tracker.core.status import WorkItemStatus
from pdca_tracker.models.common import coerce_stored_date


class OrderProcess(str, Enum):
    """Production process an order is raised for"""
    TESTING = "Testing"
    ASSEMBLAGE = "Assemblage"
    CONNECTING = "Connecting"
    CUTTING_WPA = "Cutting/WPA"


class OrderCreate(BaseModel):
    """Order creation, after required-field validation"""
    project: str = Field(..., min_length=1, max_length=200)
    requester: str = Field(..., min_length=1, max_length=150)
    description: str = Field(..., min_length=1, max_length=2000)
    category: str = Field(..., min_length=1, max_length=100)
    deadline: date
    total_price: float = Field(default=0, ge=0)
    pam: str = Field(..., min_length=1, max_length=150)
    supplier: str = Field(..., min_length=1, max_length=200)
    request_frame: str = Field(..., min_length=1, max_length=200)
    process: OrderProcess = OrderProcess.TESTING
    progress_percent: int = Field(default=0, ge=0, le=100)


class OrderUpdate(BaseModel):
    """Order update; status, done and order number are server-owned"""
    project: Optional[str] = Field(None, min_length=1, max_length=200)
    requester: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    deadline: Optional[date] = None
    total_price: Optional[float] = Field(None, ge=0)
    pam: Optional[str] = Field(None, min_length=1, max_length=150)
    supplier: Optional[str] = Field(None, min_length=1, max_length=200)
    request_frame: Optional[str] = Field(None, min_length=1, max_length=200)
    process: Optional[OrderProcess] = None
    progress_percent: Optional[int] = Field(None, ge=0, le=100)


class OrderOut(BaseModel):
    """Order as returned by the API"""
    id: str
    order_number: str
    project: str
    requester: str
    description: str
    category: str
    deadline: date
    total_price: float = 0
    pam: str
    supplier: str
    request_frame: str
    process: OrderProcess
    progress_percent: int = 0
    status: WorkItemStatus
    done: bool = False
    order_creation_date: datetime
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @field_validator("deadline", mode="before")
    @classmethod
    def coerce_deadline(cls, value):
        return coerce_stored_date(value)
