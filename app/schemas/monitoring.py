from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class AlertSeverity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlertType(str, Enum):
    ERROR_RATE = "error_rate"
    PROCESSING_TIME = "processing_time"
    INACTIVITY = "inactivity"


class PerformanceMetrics(BaseModel):
    total_tasks: int = 0
    completed_tasks: int = 0
    failed_tasks: int = 0
    pending_tasks: int = 0
    processing_tasks: int = 0
    success_rate: float = 0.0
    error_rate: float = 0.0
    average_processing_time: float = 0.0
    tasks_last_24h: int = 0
    tasks_last_7d: int = 0
    error_logs: int = 0
    warning_logs: int = 0
    info_logs: int = 0


class Alert(BaseModel):
    type: AlertType
    severity: AlertSeverity
    message: str
    threshold: float
    current_value: float


class AgentInfo(BaseModel):
    id: str
    name: str
    type: str
    status: str
    version: str


class HealthSnapshot(BaseModel):
    agent_info: AgentInfo
    performance_metrics: PerformanceMetrics
    overall_health_score: int = Field(ge=0, le=100)
    health_status: HealthStatus
    alerts: list[Alert] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    monitoring_timestamp: datetime


class SystemHealth(BaseModel):
    overall_success_rate: float = 0.0
    average_processing_time: float = 0.0
    total_operations: int = 0
    successful_operations: int = 0
    failed_operations: int = 0


class AgentPerformance(BaseModel):
    agent_id: str
    agent_name: str
    total_operations: int
    successful_operations: int
    total_processing_time: int
    success_rate: float
    average_processing_time: float


class HourlyTrend(BaseModel):
    hour: int = Field(ge=0, le=23)
    success_rate: float
    total_operations: int


class MonitoringReport(BaseModel):
    tenant_id: str
    agents_count: int
    active_agents: int
    system_health: SystemHealth
    top_performing_agents: list[AgentPerformance]
    performance_trends: list[HourlyTrend]
    generated_at: datetime


class MonitorRequest(BaseModel):
    agent_id: str = Field(min_length=1)
    monitoring_type: str = "comprehensive"


class SweepJob(BaseModel):
    job_id: str
    tenant_id: str
    queue: str
