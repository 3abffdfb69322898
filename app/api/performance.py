from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from rq import Queue
from sqlmodel import Session

from app.api.deps import get_event_publisher, require_permission
from app.api.probes import probe_services
from app.core.db import get_session
from app.core.errors import TenantAccessError, ValidationError
from app.core.logging import get_logger
from app.core.redis_clients import get_monitoring_queue
from app.repositories.metrics_repo import MetricsRepository
from app.schemas.monitoring import HealthSnapshot, MonitoringReport, MonitorRequest, SweepJob
from app.schemas.task import ApiResponse, TaskOutcome
from app.schemas.tenant import TenantContext
from app.services.events import EventPublisher
from app.services.fleet_report import FleetReportAggregator
from app.services.health_scoring import HealthScoringEngine
from app.use_cases.performance_monitor import PerformanceMonitor

router = APIRouter(prefix="/performance-monitor", tags=["Performance Monitor"])
logger = get_logger(__name__)


@router.post("", response_model=ApiResponse[TaskOutcome[HealthSnapshot]])
def perform_monitoring(
    request: MonitorRequest,
    session: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_permission("create")),
    events: EventPublisher = Depends(get_event_publisher),
):
    """Score an agent's health as a recorded task and persist any alerts."""
    outcome = PerformanceMonitor(session, events=events).monitor(
        ctx, request.agent_id, request.monitoring_type
    )
    return ApiResponse(data=outcome, message="Performance monitoring completed successfully")


@router.get("/health")
def health_check(session: Session = Depends(get_session)):
    health = probe_services(
        session, {"monitoring_system": lambda: MetricsRepository(session).get_metrics("health-check")}
    )
    return JSONResponse(status_code=200 if health.success else 503, content=health.model_dump(mode="json"))


@router.get("/report", response_model=ApiResponse[MonitoringReport])
def get_monitoring_report(
    tenantId: Optional[str] = Query(None),
    session: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_permission("read")),
):
    """Fleet report over the tenant's last 24 hours of metrics."""
    if not tenantId:
        raise ValidationError("tenantId parameter is required")
    if tenantId != ctx.tenant_id:
        raise TenantAccessError("Access denied", {"tenant_id": tenantId})

    report = FleetReportAggregator(session).build_report(tenantId)
    return ApiResponse(data=report, message="Monitoring report generated successfully")


@router.get("/status", response_model=ApiResponse[HealthSnapshot])
def get_agent_status(
    agentId: Optional[str] = Query(None),
    session: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_permission("read")),
):
    """Current health snapshot for one agent. Read-only: alerts are not persisted."""
    if not agentId:
        raise ValidationError("agentId parameter is required")
    snapshot = HealthScoringEngine(session).compute_health(ctx, agentId)
    return ApiResponse(data=snapshot)


@router.post("/sweep", status_code=202, response_model=ApiResponse[SweepJob])
def enqueue_monitoring_sweep(
    ctx: TenantContext = Depends(require_permission("create")),
    queue: Queue = Depends(get_monitoring_queue),
):
    """Queue a background monitoring run over every active agent of the tenant."""
    job = queue.enqueue(
        "app.workers.tasks.run_monitoring_sweep",
        ctx.tenant_id,
        ctx.user_id,
        ctx.role.value,
    )
    logger.info(f"Enqueued monitoring sweep {job.id} for tenant {ctx.tenant_id}")
    return ApiResponse(
        data=SweepJob(job_id=job.id, tenant_id=ctx.tenant_id, queue=queue.name),
        message="Monitoring sweep queued",
    )
