import pytest

from app.api.deps import get_inference_provider
from app.core.errors import ConfigurationError
from app.core.settings import settings
from app.main import app
from app.repositories.metrics_repo import MetricsRepository
from app.repositories.task_repo import TaskRepository
from app.services.inference import MODELS, HuggingFaceClient


def test_single_sentiment(client, auth_headers, make_agent, provider):
    agent = make_agent()
    provider.labels = {"I love it": "POSITIVE"}

    response = client.post(
        "/sentiment-agent",
        json={"agent_id": agent.id, "input_data": {"text": "I love it"}},
        headers=auth_headers(),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Sentiment analysis completed successfully"
    assert body["data"]["result"]["sentiment"] == "POSITIVE"
    assert body["data"]["result"]["confidence"] == 0.9


def test_batch_sentiment_records_result_count(client, auth_headers, session, make_agent, provider):
    agent = make_agent()
    provider.labels = {"bad": "NEGATIVE"}

    response = client.post(
        "/sentiment-agent",
        json={"agent_id": agent.id, "input_data": {"texts": ["good", "bad", "ok"]}, "batch_mode": True},
        headers=auth_headers(),
    )

    assert response.status_code == 200
    summary = response.json()["data"]["result"]["summary"]
    assert summary == {"total": 3, "positive": 2, "negative": 1, "neutral": 0}
    metrics = MetricsRepository(session).get_metrics("tenant-a", agent_id=agent.id)
    assert [(m.metric_name, m.metric_value) for m in metrics] == [("sentiment_analysis", 3.0)]


def test_sentiment_input_must_match_mode(client, auth_headers, session, make_agent):
    agent = make_agent()

    response = client.post(
        "/sentiment-agent",
        json={"agent_id": agent.id, "input_data": {"text": "single"}, "batch_mode": True},
        headers=auth_headers(),
    )

    assert response.status_code == 400
    assert TaskRepository(session).get_tasks("tenant-a") == []


def test_inference_failure_is_recorded_as_bad_gateway(client, auth_headers, session, make_agent, provider):
    agent = make_agent()
    provider.failing = {"boom"}

    response = client.post(
        "/sentiment-agent",
        json={"agent_id": agent.id, "input_data": {"text": "boom"}},
        headers=auth_headers(),
    )

    assert response.status_code == 502
    assert response.json()["details"] == {"status": 503}
    session.expire_all()
    tasks = TaskRepository(session).get_tasks("tenant-a", agent_id=agent.id)
    assert [t.status for t in tasks] == ["failed"]
    metrics = MetricsRepository(session).get_metrics("tenant-a", agent_id=agent.id)
    assert [(m.metric_name, m.success) for m in metrics] == [("sentiment_analysis_error", False)]


def test_sentiment_status(client, auth_headers, make_agent):
    agent = make_agent()
    headers = auth_headers()
    for text in ("a", "b"):
        client.post("/sentiment-agent", json={"agent_id": agent.id, "input_data": {"text": text}}, headers=headers)

    response = client.get("/sentiment-agent/status", params={"agentId": agent.id}, headers=headers)

    assert response.status_code == 200
    activity = response.json()["data"]
    assert activity["statistics"]["total_tasks"] == 2
    assert activity["statistics"]["completed_tasks"] == 2
    assert activity["statistics"]["success_rate"] == 1.0
    assert activity["statistics"]["total_recommendations"] is None
    assert len(activity["recent_tasks"]) == 2
    assert len(activity["recent_metrics"]) == 2


def test_sentiment_health(client):
    response = client.get("/sentiment-agent/health")

    assert response.status_code == 200
    assert response.json()["services"]["huggingface_api"] == "operational"


def test_recommendations_use_agent_config(client, auth_headers, session, make_agent, provider):
    agent = make_agent(type="recommendation", config={"similarity_threshold": 0.9, "max_recommendations": 1})
    provider.vectors = {"laptops": [1.0, 0.0], "notebook": [1.0, 0.1], "desk": [0.0, 1.0], "laptop": [1.0, 0.0]}

    response = client.post(
        "/recommendation-agent",
        json={
            "agent_id": agent.id,
            "input_data": {
                "query": "laptops",
                "items": [{"text": "desk"}, {"text": "notebook", "id": 7}, {"content": "laptop", "id": 8}],
            },
        },
        headers=auth_headers(),
    )

    assert response.status_code == 200
    result = response.json()["data"]["result"]
    assert result["threshold"] == 0.9
    assert result["total"] == 1
    assert result["recommendations"][0]["id"] == 8
    assert result["enhanced"]["recommendations"][0]["rank"] == 1

    metrics = MetricsRepository(session).get_metrics("tenant-a", agent_id=agent.id)
    assert metrics[0].metric_name == "recommendation_generation"
    assert metrics[0].meta == {"query_length": 7, "items_count": 3, "threshold": 0.9}


def test_recommendation_status_totals(client, auth_headers, make_agent):
    agent = make_agent(type="recommendation")
    headers = auth_headers()
    payload = {"agent_id": agent.id, "input_data": {"query": "q", "items": [{"text": "a"}, {"text": "b"}], "threshold": 0.5}}
    client.post("/recommendation-agent", json=payload, headers=headers)

    response = client.get("/recommendation-agent/status", params={"agentId": agent.id}, headers=headers)

    assert response.status_code == 200
    assert response.json()["data"]["statistics"]["total_recommendations"] == 2.0


def test_recommendation_requires_items(client, auth_headers, make_agent):
    agent = make_agent(type="recommendation")

    response = client.post(
        "/recommendation-agent",
        json={"agent_id": agent.id, "input_data": {"query": "q", "items": []}},
        headers=auth_headers(),
    )

    assert response.status_code == 400


@pytest.fixture
def unconfigured_inference(client, monkeypatch):
    monkeypatch.setattr(settings, "huggingface_api_key", "")
    app.dependency_overrides.pop(get_inference_provider, None)


@pytest.mark.parametrize(
    "path,service",
    [("/sentiment-agent/health", "huggingface_api"), ("/recommendation-agent/health", "recommendation_engine")],
)
def test_health_without_api_key_is_unhealthy(client, unconfigured_inference, path, service):
    response = client.get(path)

    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["status"] == "unhealthy"
    assert body["services"] == {"database": "operational", service: "error"}
    assert "HUGGINGFACE_API_KEY" in body["error"]


def test_sentiment_without_api_key_fails_the_task(client, unconfigured_inference, auth_headers, session, make_agent):
    agent = make_agent()

    response = client.post(
        "/sentiment-agent",
        json={"agent_id": agent.id, "input_data": {"text": "hello"}},
        headers=auth_headers(),
    )

    assert response.status_code == 503
    assert response.json()["error"] == "HUGGINGFACE_API_KEY environment variable is required"
    tasks = TaskRepository(session).get_tasks("tenant-a", agent_id=agent.id)
    assert [t.status for t in tasks] == ["failed"]


def test_client_checks_api_key_before_any_request():
    client = HuggingFaceClient("", "https://inference.invalid")
    try:
        with pytest.raises(ConfigurationError):
            client.classify("text", MODELS["sentiment"])
    finally:
        client.close()
