from typing import Any, Optional
from sqlmodel import Session, select
from app.core.clock import utcnow
from app.core.errors import ConflictError
from app.models.telemetry import AgentTask
from app.schemas.task import TaskStatus, TERMINAL_TASK_STATUSES


class TaskRepository:
    def __init__(self, session: Session):
        self.session = session

    def create_task(
        self,
        tenant_id: str,
        agent_id: str,
        input_data: dict[str, Any],
        metadata: Optional[dict[str, Any]] = None,
        status: TaskStatus = TaskStatus.PROCESSING,
    ) -> AgentTask:
        """Create a task row."""
        task = AgentTask(
            tenant_id=tenant_id,
            agent_id=agent_id,
            status=status.value,
            input_data=input_data,
            meta=metadata or {},
        )
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def get_task(self, task_id: str) -> Optional[AgentTask]:
        """Get task by ID."""
        return self.session.get(AgentTask, task_id)

    def get_tasks(
        self,
        tenant_id: str,
        agent_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> list[AgentTask]:
        """All tasks for the tenant, newest first."""
        query = select(AgentTask).where(AgentTask.tenant_id == tenant_id)
        if agent_id:
            query = query.where(AgentTask.agent_id == agent_id)
        if status:
            query = query.where(AgentTask.status == status)
        return list(self.session.exec(query.order_by(AgentTask.created_at.desc())).all())

    def complete_task(
        self,
        task: AgentTask,
        output_data: dict[str, Any],
        metadata: Optional[dict[str, Any]] = None,
    ) -> AgentTask:
        """Move a processing task to completed."""
        return self._finish(
            task,
            TaskStatus.COMPLETED,
            output_data=output_data,
            meta={**task.meta, **(metadata or {})},
        )

    def fail_task(
        self,
        task: AgentTask,
        error_message: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> AgentTask:
        """Move a processing task to failed."""
        return self._finish(
            task,
            TaskStatus.FAILED,
            error_message=error_message,
            meta={**task.meta, **(metadata or {})},
        )

    def _finish(self, task: AgentTask, status: TaskStatus, **fields: Any) -> AgentTask:
        # Terminal tasks are immutable history
        if TaskStatus(task.status) in TERMINAL_TASK_STATUSES:
            raise ConflictError(
                f"Task {task.id} is already {task.status}",
                {"task_id": task.id, "status": task.status},
            )

        now = utcnow()
        task.status = status.value
        task.completed_at = now
        task.updated_at = now
        for key, value in fields.items():
            setattr(task, key, value)

        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task
