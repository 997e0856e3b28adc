"""
Generic background worker runner.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable and runs it once. Scheduling (cron, platform scheduler) is external.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from avara.db.pool import db_pool
from avara.infrastructure.observability.logging import get_logger, setup_logging
from avara.jobs.featured_teacher_job import run_featured_teacher_job
from avara.jobs.feed_sync_job import run_stale_feed_sync

logger = get_logger(__name__)

JobCoroutine = Callable[[], Awaitable[None]]

JOB_REGISTRY: dict[str, JobCoroutine] = {
    "featured_teacher": run_featured_teacher_job,
    "sync_stale_feeds": run_stale_feed_sync,
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "sync_stale_feeds").strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested background job."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting background worker", job=name)
    await JOB_REGISTRY[name]()


async def _run_with_pool(job_name: str) -> None:
    await db_pool.initialize()
    try:
        await run_worker(job_name)
    finally:
        await db_pool.close()


def main() -> None:
    """CLI entrypoint."""
    setup_logging(log_level="INFO")
    job_name = _resolve_job_name()
    asyncio.run(_run_with_pool(job_name))


if __name__ == "__main__":
    main()
