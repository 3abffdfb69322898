import asyncio
import json
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sse_starlette.sse import EventSourceResponse

from app.api.deps import get_event_publisher, require_permission
from app.core.redis_clients import get_async_redis
from app.schemas.tenant import TenantContext
from app.services.events import EventPublisher, tenant_channel

router = APIRouter(prefix="/events", tags=["Events"])


async def event_generator(tenant_id: str, latest: Optional[dict] = None):
    """Relay a tenant's Redis pub/sub channel as SSE events."""
    redis = get_async_redis()
    pubsub = redis.pubsub()
    channel = tenant_channel(tenant_id)

    try:
        await pubsub.subscribe(channel)

        # Replay the agent's last event so clients start from current state
        if latest:
            yield {"event": latest["type"], "data": json.dumps(latest)}

        async for message in pubsub.listen():
            if message["type"] == "message":
                yield {"data": message["data"]}

    except asyncio.CancelledError:
        pass
    finally:
        await pubsub.unsubscribe(channel)
        await pubsub.close()


@router.get("/stream")
async def stream_events(
    agentId: Optional[str] = Query(None),
    ctx: TenantContext = Depends(require_permission("read")),
    events: EventPublisher = Depends(get_event_publisher),
):
    """Stream task and alert events for the caller's tenant via SSE."""
    latest = events.get_latest_event(ctx.tenant_id, agentId) if agentId else None
    return EventSourceResponse(event_generator(ctx.tenant_id, latest))
