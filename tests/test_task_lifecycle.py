import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import BookkeepingError, ConflictError, UpstreamError
from app.repositories.log_repo import LogRepository
from app.repositories.metrics_repo import MetricsRepository
from app.repositories.task_repo import TaskRepository
from app.schemas.inference import Classification
from app.use_cases.task_lifecycle import TaskDescriptor, TaskLifecycleOrchestrator


def _descriptor():
    return TaskDescriptor[Classification](
        metric_name="sentiment_analysis",
        label="Sentiment analysis",
        input_data={"text": "hello"},
        metric_value=lambda result: result.score,
        metric_metadata={"batch_mode": False},
    )


def test_successful_run_records_task_metric_and_log(session, ctx, make_agent, publisher):
    agent = make_agent()
    orchestrator = TaskLifecycleOrchestrator(session, events=publisher)

    outcome = orchestrator.run_task(ctx, agent.id, _descriptor(), lambda: Classification(label="POSITIVE", score=0.8))

    task = TaskRepository(session).get_task(outcome.task_id)
    assert task.status == "completed"
    assert task.output_data == {"label": "POSITIVE", "score": 0.8}
    assert task.completed_at is not None
    assert "started_at" in task.meta
    assert task.meta["processing_time_ms"] == outcome.processing_time_ms

    metrics = MetricsRepository(session).get_metrics("tenant-a", agent_id=agent.id)
    assert [(m.metric_name, m.metric_value, m.success) for m in metrics] == [("sentiment_analysis", 0.8, True)]

    logs = LogRepository(session).get_logs("tenant-a", agent_id=agent.id)
    assert [(entry.level, entry.message) for entry in logs] == [
        ("info", f"Sentiment analysis completed for task {task.id}")
    ]
    assert publisher.types() == ["task.completed"]


def test_failed_run_is_recorded_and_reraised(session, ctx, make_agent, publisher):
    agent = make_agent()
    orchestrator = TaskLifecycleOrchestrator(session, events=publisher)

    def work():
        raise UpstreamError("Inference request failed")

    with pytest.raises(UpstreamError):
        orchestrator.run_task(ctx, agent.id, _descriptor(), work)

    tasks = TaskRepository(session).get_tasks("tenant-a", agent_id=agent.id)
    assert len(tasks) == 1
    assert tasks[0].status == "failed"
    assert tasks[0].error_message == "Inference request failed"

    metrics = MetricsRepository(session).get_metrics("tenant-a", agent_id=agent.id)
    assert [(m.metric_name, m.metric_value, m.success) for m in metrics] == [
        ("sentiment_analysis_error", 0.0, False)
    ]
    assert metrics[0].meta == {"error": "Inference request failed"}

    logs = LogRepository(session).get_logs("tenant-a", agent_id=agent.id)
    assert [entry.level for entry in logs] == ["error"]
    assert publisher.types() == ["task.failed"]


def test_failed_metric_write_raises_bookkeeping_error(session, ctx, make_agent, monkeypatch):
    agent = make_agent()
    orchestrator = TaskLifecycleOrchestrator(session)

    def broken_record_metric(**kwargs):
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(orchestrator.metrics_repo, "record_metric", broken_record_metric)

    with pytest.raises(BookkeepingError) as exc_info:
        orchestrator.run_task(ctx, agent.id, _descriptor(), lambda: Classification(label="NEGATIVE", score=0.6))

    assert exc_info.value.step == "record_metric"
    assert exc_info.value.status_code == 500
    # The task update already committed; the log write never happened
    tasks = TaskRepository(session).get_tasks("tenant-a", agent_id=agent.id)
    assert tasks[0].status == "completed"
    assert LogRepository(session).get_logs("tenant-a", agent_id=agent.id) == []


def test_terminal_tasks_cannot_be_finished_again(session):
    repo = TaskRepository(session)
    task = repo.create_task("tenant-a", "agent-1", {"text": "x"})
    repo.complete_task(task, output_data={"ok": True})

    with pytest.raises(ConflictError):
        repo.fail_task(task, error_message="late failure")
    with pytest.raises(ConflictError):
        repo.complete_task(task, output_data={"ok": False})

    assert repo.get_task(task.id).status == "completed"
