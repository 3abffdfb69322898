import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.api import agents, api_keys, performance, recommendation, sentiment, stream
from app.core.db import init_db
from app.core.errors import register_error_handlers
from app.core.logging import get_logger, request_id_var, setup_logging
from app.core.settings import settings

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle management."""
    setup_logging()
    init_db()
    logger.info(f"Agent platform started (env={settings.app_env})")
    yield


app = FastAPI(
    title="FMAA Agent Platform",
    description="Multi-tenant sentiment, recommendation and performance monitoring agents",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware - MUST be added before routers
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],  # Required for SSE to work properly
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


register_error_handlers(app)

# Include routers
app.include_router(agents.router)
app.include_router(sentiment.router)
app.include_router(recommendation.router)
app.include_router(performance.router)
app.include_router(stream.router)
app.include_router(api_keys.router)


@app.get("/")
def root():
    """Health check."""
    return {"status": "ok", "service": "fmaa-agent-platform"}
