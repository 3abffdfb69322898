from datetime import datetime
from enum import Enum
from typing import Any, Generic, Optional, TypeVar
from pydantic import BaseModel, Field

T = TypeVar("T")


class TaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_TASK_STATUSES = {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED}


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class TaskRead(BaseModel):
    id: str
    tenant_id: str
    agent_id: str
    status: TaskStatus
    input_data: dict[str, Any]
    output_data: Optional[dict[str, Any]] = None
    error_message: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None


class MetricRead(BaseModel):
    id: str
    tenant_id: str
    agent_id: str
    metric_name: str
    metric_value: float
    processing_time: int
    success: bool
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class TaskOutcome(BaseModel, Generic[T]):
    task_id: str
    result: T
    processing_time_ms: int


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T
    message: str = ""


class ActivityStatistics(BaseModel):
    total_tasks: int
    completed_tasks: int
    failed_tasks: int
    average_processing_time: float
    success_rate: float
    total_recommendations: Optional[float] = None


class AgentActivity(BaseModel):
    agent_id: str
    status: str = "operational"
    statistics: ActivityStatistics
    recent_metrics: list[MetricRead]
    recent_tasks: list[TaskRead]


class ServiceHealth(BaseModel):
    success: bool
    status: str  # healthy, unhealthy
    timestamp: datetime
    services: dict[str, str]
    error: Optional[str] = None
