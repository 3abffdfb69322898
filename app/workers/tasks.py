from sqlmodel import Session
from app.core.db import engine
from app.core.logging import setup_logging, get_logger
from app.core.redis_clients import get_sync_redis
from app.repositories.agent_repo import AgentRepository
from app.schemas.agent import AgentStatus
from app.schemas.tenant import Role, TenantContext
from app.services.events import EventPublisher
from app.use_cases.performance_monitor import PerformanceMonitor

setup_logging()
logger = get_logger(__name__)


def run_monitoring_sweep(tenant_id: str, user_id: str, role: str = Role.USER.value) -> dict:
    """RQ task: monitor every active agent of a tenant.

    One agent failing is logged and does not stop the sweep.
    """
    ctx = TenantContext(tenant_id=tenant_id, user_id=user_id, role=Role(role))
    logger.info(f"Starting monitoring sweep for tenant {tenant_id}")

    summary = {"tenant_id": tenant_id, "monitored": [], "failed": []}
    with Session(engine) as session:
        agents = AgentRepository(session).get_agents(tenant_id, status=AgentStatus.ACTIVE.value)
        monitor = PerformanceMonitor(session, events=EventPublisher(get_sync_redis()))
        for agent in agents:
            try:
                outcome = monitor.monitor(ctx, agent.id, monitoring_type="scheduled")
            except Exception:
                logger.exception(f"Monitoring failed for agent {agent.id}")
                summary["failed"].append(agent.id)
                continue
            summary["monitored"].append(
                {"agent_id": agent.id, "task_id": outcome.task_id, "score": outcome.result.overall_health_score}
            )

    logger.info(
        f"Completed monitoring sweep for tenant {tenant_id}: "
        f"{len(summary['monitored'])} monitored, {len(summary['failed'])} failed"
    )
    return summary
