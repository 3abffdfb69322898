from datetime import datetime
from typing import Iterable, Optional

from sqlmodel import Session

from app.core.clock import to_local, utcnow
from app.models.agent import Agent
from app.models.telemetry import AgentMetric
from app.repositories.agent_repo import AgentRepository
from app.repositories.metrics_repo import MetricsRepository
from app.schemas.agent import AgentStatus
from app.schemas.monitoring import AgentPerformance, HourlyTrend, MonitoringReport, SystemHealth
from app.services.health_scoring import METRICS_WINDOW

TOP_PERFORMERS_LIMIT = 5


def calculate_system_health(metrics: list[AgentMetric]) -> SystemHealth:
    total = len(metrics)
    successful = sum(1 for m in metrics if m.success)
    return SystemHealth(
        overall_success_rate=successful / total if total else 0.0,
        average_processing_time=sum(m.processing_time for m in metrics) / total if total else 0.0,
        total_operations=total,
        successful_operations=successful,
        failed_operations=total - successful,
    )


def top_performing_agents(
    metrics: Iterable[AgentMetric],
    agents: Iterable[Agent],
    limit: int = TOP_PERFORMERS_LIMIT,
) -> list[AgentPerformance]:
    """Agents ranked by success rate over the given metrics.

    Agents appear in first-seen order before ranking, so equal success rates
    keep that order.
    """
    stats: dict[str, dict[str, int]] = {}
    for metric in metrics:
        entry = stats.setdefault(
            metric.agent_id,
            {"total_operations": 0, "successful_operations": 0, "total_processing_time": 0},
        )
        entry["total_operations"] += 1
        if metric.success:
            entry["successful_operations"] += 1
        entry["total_processing_time"] += metric.processing_time

    names = {agent.id: agent.name for agent in agents}
    performers = [
        AgentPerformance(
            agent_id=agent_id,
            agent_name=names.get(agent_id, "Unknown"),
            success_rate=entry["successful_operations"] / entry["total_operations"],
            average_processing_time=entry["total_processing_time"] / entry["total_operations"],
            **entry,
        )
        for agent_id, entry in stats.items()
    ]
    performers.sort(key=lambda p: p.success_rate, reverse=True)
    return performers[:limit]


def calculate_performance_trends(metrics: Iterable[AgentMetric]) -> list[HourlyTrend]:
    """Success rate per local hour of day, only for hours that saw traffic."""
    hourly: dict[int, list[int]] = {}
    for metric in metrics:
        counts = hourly.setdefault(to_local(metric.created_at).hour, [0, 0])
        counts[0] += 1
        if metric.success:
            counts[1] += 1

    return [
        HourlyTrend(hour=hour, success_rate=successful / total, total_operations=total)
        for hour, (total, successful) in sorted(hourly.items())
    ]


class FleetReportAggregator:
    def __init__(self, session: Session):
        self.agent_repo = AgentRepository(session)
        self.metrics_repo = MetricsRepository(session)

    def build_report(self, tenant_id: str, now: Optional[datetime] = None) -> MonitoringReport:
        now = now or utcnow()
        agents = self.agent_repo.get_agents(tenant_id)
        metrics = self.metrics_repo.get_metrics(tenant_id, from_date=now - METRICS_WINDOW)

        return MonitoringReport(
            tenant_id=tenant_id,
            agents_count=len(agents),
            active_agents=sum(1 for a in agents if a.status == AgentStatus.ACTIVE.value),
            system_health=calculate_system_health(metrics),
            top_performing_agents=top_performing_agents(metrics, agents),
            performance_trends=calculate_performance_trends(metrics),
            generated_at=now,
        )
