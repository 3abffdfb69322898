from datetime import datetime
from typing import Any, Optional
from sqlmodel import Session, select
from app.models.telemetry import AgentMetric


class MetricsRepository:
    def __init__(self, session: Session):
        self.session = session

    def record_metric(
        self,
        tenant_id: str,
        agent_id: str,
        metric_name: str,
        metric_value: float,
        processing_time: int,
        success: bool,
        metadata: Optional[dict[str, Any]] = None,
    ) -> AgentMetric:
        """Append one metric row."""
        metric = AgentMetric(
            tenant_id=tenant_id,
            agent_id=agent_id,
            metric_name=metric_name,
            metric_value=metric_value,
            processing_time=processing_time,
            success=success,
            meta=metadata or {},
        )
        self.session.add(metric)
        self.session.commit()
        self.session.refresh(metric)
        return metric

    def get_metrics(
        self,
        tenant_id: str,
        agent_id: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> list[AgentMetric]:
        """Metrics for the tenant within [from_date, to_date], oldest first."""
        query = select(AgentMetric).where(AgentMetric.tenant_id == tenant_id)
        if agent_id:
            query = query.where(AgentMetric.agent_id == agent_id)
        if from_date:
            query = query.where(AgentMetric.created_at >= from_date)
        if to_date:
            query = query.where(AgentMetric.created_at <= to_date)
        return list(self.session.exec(query.order_by(AgentMetric.created_at)).all())
