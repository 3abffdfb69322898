from datetime import datetime
from typing import Optional

from sqlmodel import Session

from app.core.clock import utcnow
from app.models.telemetry import AgentMetric, AgentTask
from app.repositories.metrics_repo import MetricsRepository
from app.repositories.task_repo import TaskRepository
from app.schemas.task import ActivityStatistics, AgentActivity, MetricRead, TaskRead, TaskStatus
from app.schemas.tenant import TenantContext
from app.services.health_scoring import METRICS_WINDOW


def task_read(task: AgentTask) -> TaskRead:
    return TaskRead(
        id=task.id,
        tenant_id=task.tenant_id,
        agent_id=task.agent_id,
        status=task.status,
        input_data=task.input_data,
        output_data=task.output_data,
        error_message=task.error_message,
        metadata=task.meta,
        created_at=task.created_at,
        updated_at=task.updated_at,
        completed_at=task.completed_at,
    )


def metric_read(metric: AgentMetric) -> MetricRead:
    return MetricRead(
        id=metric.id,
        tenant_id=metric.tenant_id,
        agent_id=metric.agent_id,
        metric_name=metric.metric_name,
        metric_value=metric.metric_value,
        processing_time=metric.processing_time,
        success=metric.success,
        metadata=metric.meta,
        created_at=metric.created_at,
    )


def get_agent_activity(
    session: Session,
    ctx: TenantContext,
    agent_id: str,
    include_recommendation_total: bool = False,
    now: Optional[datetime] = None,
) -> AgentActivity:
    """Recent task/metric statistics for one agent of the caller's tenant."""
    now = now or utcnow()
    tasks = TaskRepository(session).get_tasks(ctx.tenant_id, agent_id=agent_id)
    metrics = MetricsRepository(session).get_metrics(
        ctx.tenant_id, agent_id=agent_id, from_date=now - METRICS_WINDOW
    )

    total = len(tasks)
    completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED.value)
    statistics = ActivityStatistics(
        total_tasks=total,
        completed_tasks=completed,
        failed_tasks=sum(1 for t in tasks if t.status == TaskStatus.FAILED.value),
        average_processing_time=(
            sum(m.processing_time for m in metrics) / len(metrics) if metrics else 0.0
        ),
        success_rate=completed / total if total else 0.0,
    )
    if include_recommendation_total:
        statistics.total_recommendations = sum(m.metric_value for m in metrics)

    return AgentActivity(
        agent_id=agent_id,
        statistics=statistics,
        recent_metrics=[metric_read(m) for m in reversed(metrics[-10:])],
        recent_tasks=[task_read(t) for t in tasks[:5]],
    )
