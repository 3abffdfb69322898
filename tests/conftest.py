import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_ENV"] = "test"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["HUGGINGFACE_API_KEY"] = "test-key"

from types import SimpleNamespace
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from app.api.deps import get_event_publisher, get_inference_provider
from app.core.db import engine, init_db
from app.core.errors import UpstreamError
from app.core.redis_clients import get_monitoring_queue
from app.core.settings import settings
from app.main import app
from app.repositories.agent_repo import AgentRepository
from app.schemas.inference import Classification
from app.schemas.tenant import Role, TenantContext
from app.services.identity import ApiKeyManager


class FakeInferenceProvider:
    """Deterministic stand-in for the HuggingFace client."""

    def __init__(self):
        self.labels: dict[str, str] = {}
        self.vectors: dict[str, list[float]] = {}
        self.failing: set[str] = set()

    def classify(self, text: str, model: str) -> Classification:
        if text in self.failing:
            raise UpstreamError(f"Inference request to {model} failed", {"status": 503})
        return Classification(label=self.labels.get(text, "POSITIVE"), score=0.9)

    def embed(self, text: str, model: str) -> list[float]:
        if text in self.failing:
            raise UpstreamError(f"Inference request to {model} failed", {"status": 503})
        return self.vectors.get(text, [1.0, 0.0])


class RecordingPublisher:
    def __init__(self):
        self.events: list[dict] = []

    def publish(self, tenant_id: str, event_type: str, agent_id: Optional[str] = None, payload=None) -> None:
        self.events.append(
            {"tenant_id": tenant_id, "type": event_type, "agent_id": agent_id, "payload": payload or {}}
        )

    def get_latest_event(self, tenant_id: str, agent_id: str):
        matching = [e for e in self.events if e["tenant_id"] == tenant_id and e["agent_id"] == agent_id]
        return matching[-1] if matching else None

    def types(self) -> list[str]:
        return [e["type"] for e in self.events]


class FakeQueue:
    name = "monitoring"

    def __init__(self):
        self.jobs: list[tuple] = []

    def enqueue(self, func, *args):
        self.jobs.append((func, args))
        return SimpleNamespace(id=f"job-{len(self.jobs)}")


@pytest.fixture(autouse=True)
def reset_db():
    SQLModel.metadata.drop_all(engine)
    init_db()
    yield


@pytest.fixture
def session():
    with Session(engine) as session:
        yield session


@pytest.fixture
def provider():
    return FakeInferenceProvider()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def queue():
    return FakeQueue()


@pytest.fixture
def client(provider, publisher, queue):
    app.dependency_overrides[get_inference_provider] = lambda: provider
    app.dependency_overrides[get_event_publisher] = lambda: publisher
    app.dependency_overrides[get_monitoring_queue] = lambda: queue
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build Authorization headers carrying a tenant API key."""
    manager = ApiKeyManager(settings.jwt_secret, settings.jwt_algorithm)

    def make(tenant_id: str = "tenant-a", role: Role = Role.USER, user_id: str = "user-1") -> dict:
        return {"Authorization": f"Bearer {manager.generate_api_key(user_id, tenant_id, role)}"}

    return make


@pytest.fixture
def ctx():
    return TenantContext(tenant_id="tenant-a", user_id="user-1", role=Role.USER)


@pytest.fixture
def make_agent(session):
    def make(tenant_id: str = "tenant-a", name: str = "agent", type: str = "sentiment", **fields):
        return AgentRepository(session).create_agent(tenant_id, name=name, type=type, **fields)

    return make
