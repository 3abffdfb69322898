import json
from typing import Any, Optional

import redis

from app.core.clock import utcnow
from app.core.logging import get_logger

logger = get_logger(__name__)


def tenant_channel(tenant_id: str) -> str:
    return f"tenant:{tenant_id}:events"


class EventPublisher:
    """Publishes task and alert events to a tenant's Redis pub/sub channel."""

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client

    def _latest_key(self, tenant_id: str, agent_id: str) -> str:
        return f"tenant:{tenant_id}:agent:{agent_id}:latest"

    def publish(
        self,
        tenant_id: str,
        event_type: str,
        agent_id: Optional[str] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> None:
        """Publish an event. Redis being unavailable never fails the caller."""
        event = {
            "type": event_type,
            "tenant_id": tenant_id,
            "agent_id": agent_id,
            "payload": payload or {},
            "published_at": utcnow().isoformat(),
        }
        message = json.dumps(event, default=str)
        try:
            if agent_id:
                self.redis.set(self._latest_key(tenant_id, agent_id), message)
            self.redis.publish(tenant_channel(tenant_id), message)
        except redis.RedisError as e:
            logger.warning(f"Event {event_type} for tenant {tenant_id} not published: {e}")

    def get_latest_event(self, tenant_id: str, agent_id: str) -> Optional[dict[str, Any]]:
        """Last event published for an agent, if any."""
        data = self.redis.get(self._latest_key(tenant_id, agent_id))
        if not data:
            return None
        # Redis returns bytes when decode_responses=False
        if isinstance(data, bytes):
            data = data.decode()
        return json.loads(data)
