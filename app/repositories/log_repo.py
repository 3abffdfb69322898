from typing import Any, Optional
from sqlmodel import Session, select
from app.models.telemetry import AgentLog
from app.schemas.task import LogLevel


class LogRepository:
    def __init__(self, session: Session):
        self.session = session

    def insert_log(
        self,
        tenant_id: str,
        agent_id: Optional[str],
        level: LogLevel,
        message: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> AgentLog:
        """Append one audit log entry."""
        entry = AgentLog(
            tenant_id=tenant_id,
            agent_id=agent_id,
            level=level.value,
            message=message,
            meta=metadata or {},
        )
        self.session.add(entry)
        self.session.commit()
        self.session.refresh(entry)
        return entry

    def get_logs(
        self,
        tenant_id: str,
        agent_id: Optional[str] = None,
        level: Optional[str] = None,
    ) -> list[AgentLog]:
        """Logs for the tenant, newest first."""
        query = select(AgentLog).where(AgentLog.tenant_id == tenant_id)
        if agent_id:
            query = query.where(AgentLog.agent_id == agent_id)
        if level:
            query = query.where(AgentLog.level == level)
        return list(self.session.exec(query.order_by(AgentLog.created_at.desc())).all())
