"""
Feed registry: create, list, update and delete a user's calendar feeds.
"""

import uuid

from avara.errors import NotFound
from avara.infrastructure.observability.logging import get_logger
from avara.models.domain.calendar_domain import (
    CalendarFeed,
    FeedCreationResult,
    FeedSpec,
    SyncApproach,
)
from avara.repositories.feed_repository import FeedRepository, feed_repository
from avara.services.sync.sync_orchestrator import SyncOrchestrator, sync_orchestrator

logger = get_logger(__name__)


def _parse_feed_id(feed_id: str) -> str:
    """Feed ids are UUIDs; anything else cannot name a feed."""
    try:
        return str(uuid.UUID(feed_id))
    except (TypeError, ValueError):
        raise NotFound("Feed not found", error_code="feed_not_found") from None


class FeedRegistry:
    def __init__(
        self,
        feeds: FeedRepository = feed_repository,
        orchestrator: SyncOrchestrator = sync_orchestrator,
    ):
        self.feeds = feeds
        self.orchestrator = orchestrator

    async def create_feed(self, owner_id: str, feed_spec: FeedSpec) -> FeedCreationResult:
        """
        Insert a feed and, for ICS feeds, run the first sync right away.

        The row survives a failed first sync; last_synced_at then stays empty
        until a later sync succeeds.
        """
        feed_spec.validate_source()

        feed = await self.feeds.insert_feed(
            owner_id,
            feed_spec.feed_url,
            feed_spec.stored_calendar_name(),
            feed_spec.sync_approach,
        )
        logger.info(
            "Calendar feed created",
            user_id=owner_id,
            feed_id=feed.id,
            source="ics" if feed.is_ics() else "oauth",
            sync_approach=feed.sync_approach.value,
        )

        if not feed.is_ics():
            return FeedCreationResult(feed=feed)

        sync_result = await self.orchestrator.sync_one_feed(feed.id)
        if not sync_result.success:
            logger.warning(
                "Initial sync failed for new feed",
                user_id=owner_id,
                feed_id=feed.id,
                error=sync_result.error,
            )
        return FeedCreationResult(feed=feed, sync_result=sync_result)

    async def delete_feed(self, feed_id: str, owner_id: str) -> None:
        feed_id = _parse_feed_id(feed_id)
        deleted = await self.feeds.delete_feed(feed_id, owner_id)
        if not deleted:
            raise NotFound("Feed not found", error_code="feed_not_found")
        logger.info("Calendar feed deleted", user_id=owner_id, feed_id=feed_id)

    async def update_sync_approach(self, feed_id: str, owner_id: str, approach) -> CalendarFeed:
        """
        Change how a feed's events are filtered.

        Raises:
            ValidationError: approach is not a known value (checked first)
            NotFound: feed missing or owned by someone else
        """
        parsed = SyncApproach.parse(approach)
        feed_id = _parse_feed_id(feed_id)

        feed = await self.feeds.update_sync_approach(feed_id, owner_id, parsed)
        if not feed:
            raise NotFound("Feed not found", error_code="feed_not_found")

        logger.info(
            "Sync approach updated",
            user_id=owner_id,
            feed_id=feed_id,
            sync_approach=parsed.value,
        )
        return feed

    async def list_feeds(self, owner_id: str) -> list[CalendarFeed]:
        return await self.feeds.list_feeds(owner_id)

    async def get_latest_feed_id(self, user_id: str) -> str:
        feed_id = await self.feeds.get_latest_feed_id(user_id)
        if not feed_id:
            raise NotFound("No calendar feed found for user", error_code="no_feed")
        return feed_id


feed_registry = FeedRegistry()
