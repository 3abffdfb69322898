import math
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError as PydanticValidationError
from sqlmodel import Session

from app.api.deps import require_permission
from app.core.db import get_session
from app.core.errors import ValidationError
from app.core.logging import get_logger
from app.models.agent import Agent
from app.repositories.agent_repo import AgentRepository
from app.repositories.log_repo import LogRepository
from app.schemas.agent import (
    AgentConfig,
    AgentCreate,
    AgentListResponse,
    AgentRead,
    AgentStatistics,
    AgentStatus,
    AgentType,
    AgentUpdate,
    Pagination,
    build_config,
)
from app.schemas.task import ApiResponse, LogLevel
from app.schemas.tenant import TenantContext

router = APIRouter(prefix="/agent-factory", tags=["Agent Factory"])
logger = get_logger(__name__)


def _agent_read(agent: Agent) -> AgentRead:
    return AgentRead.model_validate(agent, from_attributes=True)


def _validated_config(agent_type: AgentType, overrides: dict, base: Optional[dict] = None) -> AgentConfig:
    try:
        return build_config(agent_type, overrides, base=base)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid agent config",
            {"errors": [{"loc": list(err["loc"]), "message": err["msg"]} for err in e.errors()]},
        ) from e


@router.post("", status_code=201, response_model=ApiResponse[AgentRead])
def create_agent(
    payload: AgentCreate,
    session: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_permission("create")),
):
    """Create an agent with the type's default config merged under the supplied one."""
    config = _validated_config(payload.type, payload.config)
    agent = AgentRepository(session).create_agent(
        ctx.tenant_id,
        name=payload.name,
        type=payload.type.value,
        description=payload.description or f"{payload.type.value} analysis agent",
        status=AgentStatus.INACTIVE.value,
        version="1.0.0",
        endpoint_url=f"/api/{payload.type.value}-agent",
        config=config.model_dump(mode="json"),
        created_by=ctx.user_id,
    )

    LogRepository(session).insert_log(
        tenant_id=ctx.tenant_id,
        agent_id=agent.id,
        level=LogLevel.INFO,
        message=f"Agent created: {agent.name}",
        metadata={"type": agent.type, "config": agent.config},
    )
    logger.info(f"Created agent {agent.id} ({agent.type}) for tenant {ctx.tenant_id}")
    return ApiResponse(data=_agent_read(agent), message="Agent created successfully")


@router.get("", response_model=AgentListResponse)
def list_agents(
    status: Optional[AgentStatus] = None,
    type: Optional[AgentType] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    session: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_permission("read")),
):
    """List the tenant's agents with pagination and per-status/type statistics."""
    agents = AgentRepository(session).get_agents(
        ctx.tenant_id,
        status=status.value if status else None,
        agent_type=type.value if type else None,
    )
    start = (page - 1) * limit
    page_items = agents[start:start + limit]

    return AgentListResponse(
        data=[_agent_read(a) for a in page_items],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=len(agents),
            pages=math.ceil(len(agents) / limit),
        ),
        statistics=AgentStatistics(
            total=len(agents),
            active=sum(1 for a in agents if a.status == AgentStatus.ACTIVE.value),
            inactive=sum(1 for a in agents if a.status == AgentStatus.INACTIVE.value),
            by_type={t.value: sum(1 for a in agents if a.type == t.value) for t in AgentType},
        ),
    )


@router.get("/{agent_id}", response_model=ApiResponse[AgentRead])
def get_agent(
    agent_id: str,
    session: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_permission("read")),
):
    agent = AgentRepository(session).get_tenant_agent(ctx.tenant_id, agent_id)
    return ApiResponse(data=_agent_read(agent))


@router.put("/{agent_id}", response_model=ApiResponse[AgentRead])
def update_agent(
    agent_id: str,
    payload: AgentUpdate,
    session: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_permission("update")),
):
    """Partially update an agent; config changes are merged over the current config."""
    repo = AgentRepository(session)
    agent = repo.get_tenant_agent(ctx.tenant_id, agent_id)

    updates = payload.model_dump(exclude_unset=True, exclude_none=True, mode="json")
    if "config" in updates:
        config = _validated_config(AgentType(agent.type), updates["config"], base=agent.config)
        updates["config"] = config.model_dump(mode="json")
    if not updates:
        raise ValidationError("No updates supplied")

    agent = repo.update_agent(agent, updates)
    LogRepository(session).insert_log(
        tenant_id=ctx.tenant_id,
        agent_id=agent.id,
        level=LogLevel.INFO,
        message=f"Agent updated: {agent.name}",
        metadata={"updates": updates},
    )
    return ApiResponse(data=_agent_read(agent), message="Agent updated successfully")


@router.delete("/{agent_id}", response_model=ApiResponse[None])
def delete_agent(
    agent_id: str,
    session: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_permission("delete")),
):
    repo = AgentRepository(session)
    agent = repo.get_tenant_agent(ctx.tenant_id, agent_id)
    deleted = _agent_read(agent).model_dump(mode="json")
    repo.delete_agent(agent)

    LogRepository(session).insert_log(
        tenant_id=ctx.tenant_id,
        agent_id=agent_id,
        level=LogLevel.INFO,
        message=f"Agent deleted: {deleted['name']}",
        metadata={"deleted_agent": deleted},
    )
    return ApiResponse(data=None, message="Agent deleted successfully")
