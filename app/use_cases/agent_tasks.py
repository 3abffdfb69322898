from typing import Optional, Union

from sqlmodel import Session

from app.repositories.agent_repo import AgentRepository
from app.schemas.agent import AgentType, RecommendationConfig, SentimentConfig, build_config
from app.schemas.inference import (
    BatchSentimentResult,
    RecommendationRequest,
    RecommendationResult,
    SentimentRequest,
    SentimentResult,
)
from app.schemas.task import TaskOutcome
from app.schemas.tenant import TenantContext
from app.services.events import EventPublisher
from app.services.inference import InferenceProvider
from app.services.recommendation import RecommendationEngine
from app.services.sentiment import SentimentAnalyzer
from app.use_cases.task_lifecycle import TaskDescriptor, TaskLifecycleOrchestrator

SentimentOutput = Union[SentimentResult, BatchSentimentResult]


class AgentTaskRunner:
    """Sentiment and recommendation work, each run as a recorded task."""

    def __init__(
        self,
        session: Session,
        provider: InferenceProvider,
        events: Optional[EventPublisher] = None,
        max_workers: int = 8,
    ):
        self.agent_repo = AgentRepository(session)
        self.orchestrator = TaskLifecycleOrchestrator(session, events=events)
        self.provider = provider
        self.max_workers = max_workers

    def _agent_config(self, ctx: TenantContext, agent_id: str, agent_type: AgentType):
        agent = self.agent_repo.get_tenant_agent(ctx.tenant_id, agent_id)
        # Agents of another kind still run, with this kind's defaults
        base = agent.config if agent.type == agent_type.value else None
        return build_config(agent_type, base=base)

    def analyze_sentiment(self, ctx: TenantContext, request: SentimentRequest) -> TaskOutcome[SentimentOutput]:
        config: SentimentConfig = self._agent_config(ctx, request.agent_id, AgentType.SENTIMENT)
        analyzer = SentimentAnalyzer(self.provider, config.model, self.max_workers)
        batch_mode = request.batch_mode

        def work() -> SentimentOutput:
            if batch_mode:
                return analyzer.analyze_batch(request.input_data.texts)
            return analyzer.analyze_sentiment(request.input_data.text)

        descriptor = TaskDescriptor[SentimentOutput](
            metric_name="sentiment_analysis",
            label="Sentiment analysis",
            input_data=request.input_data.model_dump(exclude_none=True),
            metric_value=lambda result: len(result.results) if batch_mode else 1,
            task_metadata={"batch_mode": batch_mode},
            metric_metadata={"batch_mode": batch_mode},
        )
        return self.orchestrator.run_task(ctx, request.agent_id, descriptor, work)

    def generate_recommendations(
        self, ctx: TenantContext, request: RecommendationRequest
    ) -> TaskOutcome[RecommendationResult]:
        config: RecommendationConfig = self._agent_config(ctx, request.agent_id, AgentType.RECOMMENDATION)
        engine = RecommendationEngine(self.provider, config.model, self.max_workers)
        data = request.input_data
        threshold = data.threshold if data.threshold is not None else config.similarity_threshold

        descriptor = TaskDescriptor[RecommendationResult](
            metric_name="recommendation_generation",
            label="Recommendation generation",
            input_data=data.model_dump(mode="json", exclude_none=True),
            metric_value=lambda result: result.total,
            metric_metadata={
                "query_length": len(data.query),
                "items_count": len(data.items),
                "threshold": threshold,
            },
            completion_metadata=lambda result: {"recommendations_count": result.total},
        )
        return self.orchestrator.run_task(
            ctx,
            request.agent_id,
            descriptor,
            lambda: engine.recommend(data.query, data.items, threshold, limit=config.max_recommendations),
        )
