from typing import Any, Optional
from sqlmodel import Session, select
from app.core.clock import utcnow
from app.core.errors import NotFoundError, TenantAccessError
from app.models.agent import Agent, User


class AgentRepository:
    def __init__(self, session: Session):
        self.session = session

    def create_agent(self, tenant_id: str, **fields: Any) -> Agent:
        """Create an agent owned by the tenant."""
        agent = Agent(tenant_id=tenant_id, **fields)
        self.session.add(agent)
        self.session.commit()
        self.session.refresh(agent)
        return agent

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        """Get agent by ID, regardless of owner. Callers check tenant ownership."""
        return self.session.get(Agent, agent_id)

    def get_tenant_agent(self, tenant_id: str, agent_id: str) -> Agent:
        """Get an agent the tenant owns; missing or foreign agents raise."""
        agent = self.get_agent(agent_id)
        if not agent:
            raise NotFoundError("Agent not found", {"agent_id": agent_id})
        if agent.tenant_id != tenant_id:
            raise TenantAccessError("Access denied", {"agent_id": agent_id})
        return agent

    def get_agents(
        self,
        tenant_id: str,
        status: Optional[str] = None,
        agent_type: Optional[str] = None,
    ) -> list[Agent]:
        """List a tenant's agents, oldest first."""
        query = select(Agent).where(Agent.tenant_id == tenant_id)
        if status:
            query = query.where(Agent.status == status)
        if agent_type:
            query = query.where(Agent.type == agent_type)
        return list(self.session.exec(query.order_by(Agent.created_at)).all())

    def update_agent(self, agent: Agent, updates: dict[str, Any]) -> Agent:
        """Apply a patch and bump updated_at."""
        for key, value in updates.items():
            setattr(agent, key, value)
        agent.updated_at = utcnow()
        self.session.add(agent)
        self.session.commit()
        self.session.refresh(agent)
        return agent

    def delete_agent(self, agent: Agent) -> None:
        """Delete the agent row only; tasks, metrics and logs keep referencing its id."""
        self.session.delete(agent)
        self.session.commit()


class UserRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_user(self, user_id: str) -> Optional[User]:
        return self.session.get(User, user_id)
