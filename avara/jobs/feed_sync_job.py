"""
Stale feed sync job.

Syncs every feed that has never been synced or was last synced longer ago
than STALE_FEED_MINUTES. Individual feed failures are counted, not raised.
"""

from avara.config import settings
from avara.infrastructure.observability.logging import get_logger
from avara.services.sync.sync_orchestrator import sync_orchestrator

logger = get_logger(__name__)


async def run_stale_feed_sync() -> None:
    summary = await sync_orchestrator.sync_stale_feeds(settings.STALE_FEED_MINUTES)
    logger.info(
        "Stale feed sync job completed",
        total_feeds=summary.total_feeds,
        successful_syncs=summary.successful_syncs,
        failed_syncs=summary.failed_syncs,
        total_events=summary.total_events,
    )
