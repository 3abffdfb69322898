"""Health scoring for a single agent.

The score starts at 100 and loses points for every breached threshold; the
deductions stack, so an error rate of 25% costs both the 10% and the 20% tier.
Alerts and recommendations are derived from the same performance snapshot but
independently of the score, except for the low-score recommendation.
"""
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlmodel import Session

from app.core.clock import as_utc, utcnow
from app.core.logging import get_logger, log_event
from app.models.agent import Agent
from app.models.telemetry import AgentLog, AgentMetric, AgentTask
from app.repositories.agent_repo import AgentRepository
from app.repositories.log_repo import LogRepository
from app.repositories.metrics_repo import MetricsRepository
from app.repositories.task_repo import TaskRepository
from app.schemas.monitoring import (
    AgentInfo,
    Alert,
    AlertSeverity,
    AlertType,
    HealthSnapshot,
    HealthStatus,
    PerformanceMetrics,
)
from app.schemas.task import LogLevel, TaskStatus
from app.schemas.tenant import TenantContext
from app.services.events import EventPublisher

logger = get_logger(__name__)

METRICS_WINDOW = timedelta(hours=24)
WEEK_WINDOW = timedelta(days=7)

ERROR_RATE_WARN = 0.1
ERROR_RATE_CRITICAL = 0.2
PROCESSING_TIME_WARN_MS = 5000
PROCESSING_TIME_CRITICAL_MS = 10000
ERROR_LOGS_LIMIT = 5

HEALTHY_MIN_SCORE = 80
WARNING_MIN_SCORE = 60


def _ratio(part: int, whole: int) -> float:
    return part / whole if whole else 0.0


def _mean(values: list[int]) -> float:
    return sum(values) / len(values) if values else 0.0


def compute_performance(
    tasks: Iterable[AgentTask],
    metrics: Iterable[AgentMetric],
    logs: Iterable[AgentLog],
    now: datetime,
) -> PerformanceMetrics:
    """Aggregate task, metric and log history into a performance snapshot.

    ``metrics`` is expected to be windowed already; tasks and logs are counted
    as given.
    """
    tasks = list(tasks)
    created = [as_utc(t.created_at) for t in tasks]
    now = as_utc(now)
    statuses = [t.status for t in tasks]
    levels = [entry.level for entry in logs]
    total = len(tasks)
    completed = statuses.count(TaskStatus.COMPLETED.value)
    failed = statuses.count(TaskStatus.FAILED.value)

    return PerformanceMetrics(
        total_tasks=total,
        completed_tasks=completed,
        failed_tasks=failed,
        pending_tasks=statuses.count(TaskStatus.PENDING.value),
        processing_tasks=statuses.count(TaskStatus.PROCESSING.value),
        success_rate=_ratio(completed, total),
        error_rate=_ratio(failed, total),
        average_processing_time=_mean([m.processing_time for m in metrics]),
        tasks_last_24h=sum(1 for c in created if c > now - METRICS_WINDOW),
        tasks_last_7d=sum(1 for c in created if c > now - WEEK_WINDOW),
        error_logs=levels.count(LogLevel.ERROR.value),
        warning_logs=levels.count(LogLevel.WARN.value),
        info_logs=levels.count(LogLevel.INFO.value),
    )


def score_health(performance: PerformanceMetrics) -> int:
    """0-100 health score."""
    score = 100

    if performance.error_rate > ERROR_RATE_WARN:
        score -= 20
    if performance.error_rate > ERROR_RATE_CRITICAL:
        score -= 30

    if performance.average_processing_time > PROCESSING_TIME_WARN_MS:
        score -= 15
    if performance.average_processing_time > PROCESSING_TIME_CRITICAL_MS:
        score -= 25

    if performance.tasks_last_24h == 0:
        score -= 10

    if performance.error_logs > ERROR_LOGS_LIMIT:
        score -= 15

    return max(0, score)


def health_status(score: int) -> HealthStatus:
    if score >= HEALTHY_MIN_SCORE:
        return HealthStatus.HEALTHY
    if score >= WARNING_MIN_SCORE:
        return HealthStatus.WARNING
    return HealthStatus.CRITICAL


def generate_alerts(performance: PerformanceMetrics) -> list[Alert]:
    alerts = []

    if performance.error_rate > ERROR_RATE_CRITICAL:
        alerts.append(
            Alert(
                type=AlertType.ERROR_RATE,
                severity=AlertSeverity.HIGH,
                message=f"High error rate detected: {performance.error_rate * 100:.1f}%",
                threshold=ERROR_RATE_CRITICAL * 100,
                current_value=performance.error_rate * 100,
            )
        )

    if performance.average_processing_time > PROCESSING_TIME_CRITICAL_MS:
        alerts.append(
            Alert(
                type=AlertType.PROCESSING_TIME,
                severity=AlertSeverity.MEDIUM,
                message=f"Slow processing time: {performance.average_processing_time:.0f}ms",
                threshold=PROCESSING_TIME_CRITICAL_MS,
                current_value=performance.average_processing_time,
            )
        )

    if performance.tasks_last_24h == 0:
        alerts.append(
            Alert(
                type=AlertType.INACTIVITY,
                severity=AlertSeverity.LOW,
                message="No tasks processed in the last 24 hours",
                threshold=1,
                current_value=0,
            )
        )

    return alerts


def generate_recommendations(performance: PerformanceMetrics, score: int) -> list[str]:
    recommendations = []

    if performance.error_rate > ERROR_RATE_WARN:
        recommendations.append("Review error logs and fix recurring issues")
    if performance.average_processing_time > PROCESSING_TIME_WARN_MS:
        recommendations.append("Optimize processing algorithms or increase resources")
    if performance.tasks_last_24h == 0:
        recommendations.append("Check agent configuration and input sources")
    if score < WARNING_MIN_SCORE:
        recommendations.append("Consider agent restart or reconfiguration")

    return recommendations


def build_snapshot(agent: Agent, performance: PerformanceMetrics, now: datetime) -> HealthSnapshot:
    score = score_health(performance)
    return HealthSnapshot(
        agent_info=AgentInfo(
            id=agent.id,
            name=agent.name,
            type=agent.type,
            status=agent.status,
            version=agent.version,
        ),
        performance_metrics=performance,
        overall_health_score=score,
        health_status=health_status(score),
        alerts=generate_alerts(performance),
        recommendations=generate_recommendations(performance, score),
        monitoring_timestamp=now,
    )


class HealthScoringEngine:
    """Loads one agent's history and scores it."""

    def __init__(self, session: Session, events: Optional[EventPublisher] = None):
        self.agent_repo = AgentRepository(session)
        self.task_repo = TaskRepository(session)
        self.metrics_repo = MetricsRepository(session)
        self.log_repo = LogRepository(session)
        self.events = events

    def compute_health(self, ctx: TenantContext, agent_id: str, now: Optional[datetime] = None) -> HealthSnapshot:
        """Score an agent from all its tasks and logs and its last 24h of metrics."""
        now = now or utcnow()
        agent = self.agent_repo.get_tenant_agent(ctx.tenant_id, agent_id)

        # Tasks and logs are read unwindowed; only metrics are limited to 24h
        tasks = self.task_repo.get_tasks(ctx.tenant_id, agent_id=agent_id)
        metrics = self.metrics_repo.get_metrics(
            ctx.tenant_id, agent_id=agent_id, from_date=now - METRICS_WINDOW
        )
        logs = self.log_repo.get_logs(ctx.tenant_id, agent_id=agent_id)

        snapshot = build_snapshot(agent, compute_performance(tasks, metrics, logs, now), now)
        log_event(
            logger,
            "health.computed",
            agent_id=agent_id,
            score=snapshot.overall_health_score,
            status=snapshot.health_status.value,
            alerts=len(snapshot.alerts),
        )
        return snapshot

    def record_alerts(self, ctx: TenantContext, agent_id: str, alerts: list[Alert]) -> list[AgentLog]:
        """Persist one audit log entry per alert and publish it."""
        entries = []
        for alert in alerts:
            level = LogLevel.ERROR if alert.severity == AlertSeverity.HIGH else LogLevel.WARN
            entries.append(
                self.log_repo.insert_log(
                    tenant_id=ctx.tenant_id,
                    agent_id=agent_id,
                    level=level,
                    message=f"ALERT: {alert.message}",
                    metadata={"alert_type": alert.type.value, "alert_data": alert.model_dump(mode="json")},
                )
            )
            if self.events:
                self.events.publish(
                    ctx.tenant_id, "alert", agent_id=agent_id, payload=alert.model_dump(mode="json")
                )
        return entries
