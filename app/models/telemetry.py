from datetime import datetime
from typing import Optional
from uuid import uuid4
from sqlmodel import SQLModel, Field, Column, JSON

from app.core.clock import utcnow
from app.core.db import UTCDateTime

# ``metadata`` is reserved on SQLModel classes, so the attribute is ``meta``
# while the column keeps its public name.


class AgentTask(SQLModel, table=True):
    __tablename__ = "agent_tasks"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    tenant_id: str = Field(index=True)
    agent_id: str = Field(index=True)
    status: str = Field(index=True)  # pending, processing, completed, failed, cancelled
    input_data: dict = Field(default_factory=dict, sa_column=Column(JSON))
    output_data: Optional[dict] = Field(default=None, sa_column=Column(JSON, nullable=True))
    error_message: Optional[str] = None
    meta: dict = Field(default_factory=dict, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, index=True, nullable=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, nullable=False))
    completed_at: Optional[datetime] = Field(default=None, sa_column=Column(UTCDateTime, nullable=True))


class AgentMetric(SQLModel, table=True):
    __tablename__ = "agent_metrics"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    tenant_id: str = Field(index=True)
    agent_id: str = Field(index=True)
    metric_name: str = Field(index=True)
    metric_value: float = 0.0
    processing_time: int = 0  # ms
    success: bool = Field(default=True, index=True)
    meta: dict = Field(default_factory=dict, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, index=True, nullable=False))


class AgentLog(SQLModel, table=True):
    __tablename__ = "agent_logs"

    id: str = Field(default_factory=lambda: str(uuid4()), primary_key=True)
    tenant_id: str = Field(index=True)
    agent_id: Optional[str] = Field(default=None, index=True)
    level: str = Field(index=True)  # debug, info, warn, error, fatal
    message: str
    meta: dict = Field(default_factory=dict, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(UTCDateTime, index=True, nullable=False))
