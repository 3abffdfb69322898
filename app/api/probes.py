from typing import Any, Callable

from sqlmodel import Session

from app.core.clock import utcnow
from app.core.logging import get_logger
from app.repositories.task_repo import TaskRepository
from app.schemas.task import ServiceHealth

logger = get_logger(__name__)


def probe_services(session: Session, checks: dict[str, Callable[[], Any]]) -> ServiceHealth:
    """Run the store probe plus the given checks; any failure marks the service unhealthy."""
    probes = {"database": lambda: TaskRepository(session).get_tasks("health-check"), **checks}
    services = {}
    errors = []
    for name, probe in probes.items():
        try:
            probe()
            services[name] = "operational"
        except Exception as e:
            logger.warning(f"Health probe {name} failed: {e}")
            services[name] = "error"
            errors.append(f"{name}: {e}")

    return ServiceHealth(
        success=not errors,
        status="healthy" if not errors else "unhealthy",
        timestamp=utcnow(),
        services=services,
        error="; ".join(errors) or None,
    )
