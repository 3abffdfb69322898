from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.errors import BookkeepingError
from app.core.logging import get_logger
from app.repositories.agent_repo import AgentRepository
from app.schemas.monitoring import HealthSnapshot
from app.schemas.task import TaskOutcome
from app.schemas.tenant import TenantContext
from app.services.events import EventPublisher
from app.services.health_scoring import HealthScoringEngine
from app.use_cases.task_lifecycle import TaskDescriptor, TaskLifecycleOrchestrator

logger = get_logger(__name__)


class PerformanceMonitor:
    """Runs health scoring for an agent as a recorded task."""

    def __init__(self, session: Session, events: Optional[EventPublisher] = None):
        self.session = session
        self.agent_repo = AgentRepository(session)
        self.engine = HealthScoringEngine(session, events=events)
        self.orchestrator = TaskLifecycleOrchestrator(session, events=events)

    def monitor(
        self, ctx: TenantContext, agent_id: str, monitoring_type: str = "comprehensive"
    ) -> TaskOutcome[HealthSnapshot]:
        # Unknown or foreign agents are rejected before a task exists
        self.agent_repo.get_tenant_agent(ctx.tenant_id, agent_id)

        descriptor = TaskDescriptor[HealthSnapshot](
            metric_name="performance_monitoring",
            label="Performance monitoring",
            input_data={"monitoring_type": monitoring_type},
            metric_value=lambda snapshot: snapshot.overall_health_score,
            metric_metadata={"monitoring_type": monitoring_type},
        )
        outcome = self.orchestrator.run_task(
            ctx, agent_id, descriptor, lambda: self.engine.compute_health(ctx, agent_id)
        )

        alerts = outcome.result.alerts
        if alerts:
            try:
                self.engine.record_alerts(ctx, agent_id, alerts)
            except SQLAlchemyError as e:
                self.session.rollback()
                raise BookkeepingError("record_alerts", e, task_id=outcome.task_id) from e
            logger.info(f"Recorded {len(alerts)} alerts for agent {agent_id}")

        return outcome
