from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlmodel import Session

from app.api.deps import get_event_publisher, get_inference_provider, require_permission
from app.api.probes import probe_services
from app.core.db import get_session
from app.core.errors import ValidationError
from app.core.settings import settings
from app.repositories.agent_repo import AgentRepository
from app.schemas.inference import SentimentRequest
from app.schemas.task import AgentActivity, ApiResponse, TaskOutcome
from app.schemas.tenant import TenantContext
from app.services.activity import get_agent_activity
from app.services.events import EventPublisher
from app.services.inference import MODELS, InferenceProvider
from app.services.sentiment import SentimentAnalyzer
from app.use_cases.agent_tasks import AgentTaskRunner, SentimentOutput

router = APIRouter(prefix="/sentiment-agent", tags=["Sentiment Agent"])


@router.post("", response_model=ApiResponse[TaskOutcome[SentimentOutput]])
def process_sentiment_task(
    request: SentimentRequest,
    session: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_permission("create")),
    provider: InferenceProvider = Depends(get_inference_provider),
    events: EventPublisher = Depends(get_event_publisher),
):
    """Classify one text, or a batch of texts, as a recorded task."""
    runner = AgentTaskRunner(session, provider, events=events, max_workers=settings.inference_max_workers)
    outcome = runner.analyze_sentiment(ctx, request)
    return ApiResponse(data=outcome, message="Sentiment analysis completed successfully")


@router.get("/health")
def health_check(
    session: Session = Depends(get_session),
    provider: InferenceProvider = Depends(get_inference_provider),
):
    """Probe the inference model and the store."""
    analyzer = SentimentAnalyzer(provider, MODELS["sentiment"])
    health = probe_services(
        session, {"huggingface_api": lambda: analyzer.analyze_sentiment("This is a test message")}
    )
    return JSONResponse(status_code=200 if health.success else 503, content=health.model_dump(mode="json"))


@router.get("/status", response_model=ApiResponse[AgentActivity])
def get_agent_status(
    agentId: Optional[str] = Query(None),
    session: Session = Depends(get_session),
    ctx: TenantContext = Depends(require_permission("read")),
):
    if not agentId:
        raise ValidationError("agentId parameter is required")
    AgentRepository(session).get_tenant_agent(ctx.tenant_id, agentId)
    return ApiResponse(data=get_agent_activity(session, ctx, agentId))
