"""
Feed synchronization orchestrator.

Event ingestion itself happens in the hosted sync-feed function; this module
triggers it per feed, fans out across feeds and keeps per-feed failures from
leaking into the others.

Delivery is at-least-once: two syncs of the same feed in quick succession
both run. The sync-feed function must upsert events idempotently by their
external UID (plus recurrence id) for that to be harmless.
"""

import asyncio
from datetime import UTC, datetime, timedelta

from avara.config import settings
from avara.db.helpers import DatabaseError
from avara.errors import AvaraError, NotFound
from avara.infrastructure.observability.logging import get_logger
from avara.models.domain.calendar_domain import SyncResult, SyncSummary
from avara.repositories.feed_repository import FeedRepository, feed_repository
from avara.services.remote_functions import RemoteFunctionsClient, remote_functions

logger = get_logger(__name__)

SYNC_FUNCTION_NAME = "sync-feed"


class SyncOrchestrator:
    def __init__(
        self,
        feeds: FeedRepository = feed_repository,
        functions: RemoteFunctionsClient = remote_functions,
    ):
        self.feeds = feeds
        self.functions = functions

    async def sync_one_feed(
        self, feed_id: str, *, window_days: int | None = None, mode: str = "default"
    ) -> SyncResult:
        """
        Sync a single feed through the remote function.

        Never raises; any failure becomes SyncResult(success=False, count=0).
        """
        body = {"feed_id": feed_id, "mode": mode}
        if window_days is not None:
            body["window_days"] = window_days

        try:
            data = await self.functions.invoke(SYNC_FUNCTION_NAME, body)
        except (AvaraError, asyncio.TimeoutError) as e:
            logger.warning("Feed sync failed", feed_id=feed_id, error=str(e), error_type=type(e).__name__)
            return SyncResult.failed(feed_id, str(e))
        except Exception as e:
            # Unknown failures are still contained to this feed
            logger.exception("Unexpected error syncing feed", feed_id=feed_id)
            return SyncResult.failed(feed_id, f"Unexpected error: {e}")

        success = bool(data.get("success"))
        try:
            count = int(data.get("count") or 0)
        except (TypeError, ValueError):
            count = 0

        if not success:
            logger.warning("Sync function reported failure", feed_id=feed_id)
            return SyncResult.failed(feed_id, data.get("error") or "Sync function reported failure")

        await self._record_sync(feed_id)

        logger.info("Feed synced", feed_id=feed_id, event_count=count, mode=mode)
        return SyncResult(success=True, count=count, feed_id=feed_id)

    async def _record_sync(self, feed_id: str) -> None:
        try:
            await self.feeds.mark_synced(feed_id, datetime.now(UTC))
        except DatabaseError as e:
            logger.warning("Could not record last_synced_at", feed_id=feed_id, error=str(e))

    async def sync_feeds(self, feed_ids: list[str], **kwargs) -> SyncSummary:
        """Sync feeds concurrently. One coroutine per feed, no concurrency cap."""
        if not feed_ids:
            return SyncSummary()

        outcomes = await asyncio.gather(
            *(self.sync_one_feed(feed_id, **kwargs) for feed_id in feed_ids),
            return_exceptions=True,
        )

        results = [
            outcome
            if isinstance(outcome, SyncResult)
            else SyncResult.failed(feed_id, f"Unexpected error: {outcome}")
            for feed_id, outcome in zip(feed_ids, outcomes, strict=True)
        ]
        return SyncSummary.from_results(results)

    async def sync_all_feeds_for_user(self, user_id: str) -> SyncSummary:
        """
        Sync every feed a user owns.

        Returns:
            SyncSummary: counts for the caller to inspect; partial failure is
            not an error, and a failed feed listing yields an empty summary.
        """
        try:
            feeds = await self.feeds.list_feeds(user_id)
        except DatabaseError as e:
            logger.error("Could not list feeds for sync", user_id=user_id, error=str(e))
            return SyncSummary()

        summary = await self.sync_feeds([feed.id for feed in feeds])

        logger.info(
            "User feed sync completed",
            user_id=user_id,
            successful_syncs=summary.successful_syncs,
            total_feeds=summary.total_feeds,
            total_events=summary.total_events,
        )
        return summary

    async def sync_latest_feed(self, user_id: str) -> tuple[str, SyncResult]:
        """
        Sync the user's most recently created feed over the default window.

        Raises:
            NotFound: the user has no feed
        """
        feed_id = await self.feeds.get_latest_feed_id(user_id)
        if not feed_id:
            raise NotFound("No calendar feed found for user", error_code="no_feed")

        result = await self.sync_one_feed(feed_id, window_days=settings.SYNC_WINDOW_DAYS)
        return feed_id, result

    async def sync_stale_feeds(self, max_age_minutes: int | None = None) -> SyncSummary:
        """Scheduler entry point: sync every feed not synced within max_age_minutes."""
        if max_age_minutes is None:
            max_age_minutes = settings.STALE_FEED_MINUTES
        cutoff = datetime.now(UTC) - timedelta(minutes=max_age_minutes)

        feed_ids = await self.feeds.list_stale_feed_ids(cutoff)
        summary = await self.sync_feeds(feed_ids)

        logger.info(
            "Stale feed sync completed",
            max_age_minutes=max_age_minutes,
            successful_syncs=summary.successful_syncs,
            failed_syncs=summary.failed_syncs,
            total_events=summary.total_events,
        )
        return summary


sync_orchestrator = SyncOrchestrator()
