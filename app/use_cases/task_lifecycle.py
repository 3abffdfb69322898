import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.clock import utcnow
from app.core.errors import BookkeepingError
from app.core.logging import get_logger, log_event
from app.repositories.log_repo import LogRepository
from app.repositories.metrics_repo import MetricsRepository
from app.repositories.task_repo import TaskRepository
from app.schemas.task import LogLevel, TaskOutcome
from app.schemas.tenant import TenantContext
from app.services.events import EventPublisher

logger = get_logger(__name__)

R = TypeVar("R", bound=BaseModel)


@dataclass
class TaskDescriptor(Generic[R]):
    """What a lifecycle run records around one unit of work."""

    metric_name: str  # failures are recorded as f"{metric_name}_error"
    label: str  # human-readable, used in log messages
    input_data: dict[str, Any]
    metric_value: Callable[[R], float]
    task_metadata: dict[str, Any] = field(default_factory=dict)
    metric_metadata: dict[str, Any] = field(default_factory=dict)
    completion_metadata: Callable[[R], dict[str, Any]] = lambda result: {}


class TaskLifecycleOrchestrator:
    """Wraps agent work with task, metric and log bookkeeping.

    Every run ends with exactly one terminal task update, one metric row and
    one log entry, written in that order. The three writes commit separately;
    if one of them fails a BookkeepingError is raised and the earlier writes
    stay as they are.
    """

    def __init__(self, session: Session, events: Optional[EventPublisher] = None):
        self.session = session
        self.task_repo = TaskRepository(session)
        self.metrics_repo = MetricsRepository(session)
        self.log_repo = LogRepository(session)
        self.events = events

    def run_task(
        self,
        ctx: TenantContext,
        agent_id: str,
        descriptor: TaskDescriptor[R],
        work: Callable[[], R],
    ) -> TaskOutcome[R]:
        """Create a task, run the work, record the outcome.

        Failures raised by ``work`` are recorded and then re-raised unchanged.
        """
        task = self._bookkeep(
            "create_task",
            None,
            self.task_repo.create_task,
            tenant_id=ctx.tenant_id,
            agent_id=agent_id,
            input_data=descriptor.input_data,
            metadata={**descriptor.task_metadata, "started_at": utcnow().isoformat()},
        )
        log_event(logger, "task.started", task_id=task.id, agent_id=agent_id, metric=descriptor.metric_name)

        start = time.perf_counter()
        try:
            result = work()
        except Exception as e:
            processing_time = _elapsed_ms(start)
            if isinstance(e, SQLAlchemyError):
                # Failed reads leave the session unusable until rolled back
                self.session.rollback()
            self._record_failure(ctx, agent_id, descriptor, task, e, processing_time)
            raise

        processing_time = _elapsed_ms(start)
        self._record_success(ctx, agent_id, descriptor, task, result, processing_time)
        return TaskOutcome(task_id=task.id, result=result, processing_time_ms=processing_time)

    def _record_success(self, ctx, agent_id, descriptor, task, result, processing_time: int) -> None:
        self._bookkeep(
            "update_task",
            task.id,
            self.task_repo.complete_task,
            task,
            output_data=result.model_dump(mode="json"),
            metadata={"processing_time_ms": processing_time, **descriptor.completion_metadata(result)},
        )
        self._bookkeep(
            "record_metric",
            task.id,
            self.metrics_repo.record_metric,
            tenant_id=ctx.tenant_id,
            agent_id=agent_id,
            metric_name=descriptor.metric_name,
            metric_value=float(descriptor.metric_value(result)),
            processing_time=processing_time,
            success=True,
            metadata=descriptor.metric_metadata,
        )
        self._bookkeep(
            "insert_log",
            task.id,
            self.log_repo.insert_log,
            tenant_id=ctx.tenant_id,
            agent_id=agent_id,
            level=LogLevel.INFO,
            message=f"{descriptor.label} completed for task {task.id}",
            metadata={"task_id": task.id, "processing_time": processing_time},
        )
        log_event(logger, "task.completed", task_id=task.id, agent_id=agent_id, processing_time_ms=processing_time)
        if self.events:
            self.events.publish(
                ctx.tenant_id,
                "task.completed",
                agent_id=agent_id,
                payload={"task_id": task.id, "processing_time_ms": processing_time},
            )

    def _record_failure(self, ctx, agent_id, descriptor, task, error: Exception, processing_time: int) -> None:
        reason = str(error) or type(error).__name__
        self._bookkeep("update_task", task.id, self.task_repo.fail_task, task, error_message=reason)
        self._bookkeep(
            "record_metric",
            task.id,
            self.metrics_repo.record_metric,
            tenant_id=ctx.tenant_id,
            agent_id=agent_id,
            metric_name=f"{descriptor.metric_name}_error",
            metric_value=0.0,
            processing_time=processing_time,
            success=False,
            metadata={"error": reason},
        )
        self._bookkeep(
            "insert_log",
            task.id,
            self.log_repo.insert_log,
            tenant_id=ctx.tenant_id,
            agent_id=agent_id,
            level=LogLevel.ERROR,
            message=f"{descriptor.label} failed for task {task.id}",
            metadata={"task_id": task.id, "error": reason},
        )
        log_event(
            logger,
            "task.failed",
            level=logging.WARNING,
            task_id=task.id,
            agent_id=agent_id,
            error=reason,
        )
        if self.events:
            self.events.publish(
                ctx.tenant_id,
                "task.failed",
                agent_id=agent_id,
                payload={"task_id": task.id, "error": reason},
            )

    def _bookkeep(self, step: str, task_id: Optional[str], write: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return write(*args, **kwargs)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Bookkeeping step {step} failed for task {task_id}: {e}")
            raise BookkeepingError(step, e, task_id=task_id) from e


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
