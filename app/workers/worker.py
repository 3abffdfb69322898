#!/usr/bin/env python
"""RQ worker for background monitoring sweeps.

Usage: python -m app.workers.worker [--burst] [queue ...]
"""
import sys
from rq import Worker
from app.core.redis_clients import get_sync_redis
from app.core.settings import settings
from app.core.logging import setup_logging, get_logger

setup_logging()
logger = get_logger(__name__)


def main(argv: list[str]) -> None:
    burst = "--burst" in argv
    queues = [arg for arg in argv if not arg.startswith("--")] or [settings.rq_queue_name]

    logger.info(f"Starting monitoring worker for queues {queues} (burst={burst})")
    Worker(queues, connection=get_sync_redis()).work(burst=burst)


if __name__ == "__main__":
    try:
        main(sys.argv[1:])
    except KeyboardInterrupt:
        logger.info("Monitoring worker stopped")
        sys.exit(0)
