from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator
from sqlmodel import create_engine, Session, SQLModel

from app.core.clock import as_utc
from app.core.settings import settings


class UTCDateTime(TypeDecorator):
    """Timestamp column that always binds and returns aware UTC datetimes.

    SQLite drops the offset on storage, so values read back are re-tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        return as_utc(value)

    def process_result_value(self, value: Optional[datetime], dialect: Any) -> Optional[datetime]:
        if value is None:
            return None
        return as_utc(value)


def _engine_kwargs(url: str) -> dict:
    if url.startswith("sqlite"):
        # Single shared connection so in-memory databases survive across sessions
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    return {"pool_pre_ping": True}


engine = create_engine(
    settings.database_url,
    echo=settings.app_env == "development",
    **_engine_kwargs(settings.database_url),
)


def init_db() -> None:
    """Create all tables."""
    # Table modules must be imported so their metadata is registered
    import app.models.agent  # noqa: F401
    import app.models.telemetry  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session() -> Session:
    """Get a database session."""
    with Session(engine) as session:
        yield session
