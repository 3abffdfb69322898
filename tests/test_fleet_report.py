from datetime import datetime, timedelta, timezone

from app.core.clock import to_local, utcnow
from app.models.agent import Agent
from app.models.telemetry import AgentMetric
from app.repositories.metrics_repo import MetricsRepository
from app.services.fleet_report import (
    FleetReportAggregator,
    calculate_performance_trends,
    calculate_system_health,
    top_performing_agents,
)

BASE = datetime(2024, 5, 1, 0, 0, 0, tzinfo=timezone.utc)


def _metric(agent_id, success=True, processing_time=100, created_at=BASE):
    return AgentMetric(
        tenant_id="t",
        agent_id=agent_id,
        metric_name="m",
        success=success,
        processing_time=processing_time,
        created_at=created_at,
    )


def test_system_health_with_no_metrics():
    health = calculate_system_health([])

    assert health.total_operations == 0
    assert health.overall_success_rate == 0.0
    assert health.average_processing_time == 0.0


def test_system_health_counts():
    health = calculate_system_health([_metric("a"), _metric("a", success=False, processing_time=300)])

    assert health.total_operations == 2
    assert health.successful_operations == 1
    assert health.failed_operations == 1
    assert health.overall_success_rate == 0.5
    assert health.average_processing_time == 200


def test_top_performers_limited_to_five():
    metrics = []
    for i in range(7):
        metrics += [_metric(f"agent-{i}"), _metric(f"agent-{i}", success=i % 2 == 0)]
    agents = [Agent(id=f"agent-{i}", tenant_id="t", name=f"Agent {i}", type="sentiment") for i in range(7)]

    top = top_performing_agents(metrics, agents)

    assert len(top) == 5
    assert [p.success_rate for p in top] == sorted((p.success_rate for p in top), reverse=True)
    # Ties keep first-seen order
    assert [p.agent_id for p in top[:4]] == ["agent-0", "agent-2", "agent-4", "agent-6"]
    assert top[4].agent_id == "agent-1"


def test_top_performers_use_unknown_for_deleted_agents():
    top = top_performing_agents([_metric("gone", processing_time=50)], [])

    assert top[0].agent_name == "Unknown"
    assert top[0].total_operations == 1
    assert top[0].average_processing_time == 50


def test_trends_only_include_hours_with_traffic():
    times = [BASE + timedelta(hours=h) for h in (5, 1, 5, 9)]
    metrics = [_metric("a", success=i != 0, created_at=t) for i, t in enumerate(times)]

    trends = calculate_performance_trends(metrics)

    hours = sorted({to_local(t).hour for t in times})
    assert [t.hour for t in trends] == hours
    busiest = next(t for t in trends if t.hour == to_local(times[0]).hour)
    assert busiest.total_operations == 2
    assert busiest.success_rate == 0.5


def test_report_uses_the_last_24_hours_of_the_tenant(session, make_agent):
    agent = make_agent(name="Scorer", status="active")
    make_agent(name="Idle")
    make_agent(tenant_id="tenant-b", name="Other")

    repo = MetricsRepository(session)
    repo.record_metric("tenant-a", agent.id, "m", 1.0, 100, True)
    repo.record_metric("tenant-b", "x", "m", 1.0, 100, False)
    stale = repo.record_metric("tenant-a", agent.id, "m", 1.0, 100, False)
    stale.created_at = utcnow() - timedelta(hours=25)
    session.add(stale)
    session.commit()

    report = FleetReportAggregator(session).build_report("tenant-a")

    assert report.agents_count == 2
    assert report.active_agents == 1
    assert report.system_health.total_operations == 1
    assert report.system_health.overall_success_rate == 1.0
    assert [p.agent_name for p in report.top_performing_agents] == ["Scorer"]
