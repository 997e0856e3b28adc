"""
Calendar selection service.

Glues the token store, token refresher, Google Calendar client and feed
repository together for the "pick which calendars to sync" screen and the
dedicated yoga calendar setup.
"""

from datetime import datetime

from avara.config import settings
from avara.db.helpers import DatabaseError
from avara.errors import AvaraError, ConfigurationError, NotFound
from avara.infrastructure.observability.logging import get_logger
from avara.models.domain.calendar_domain import (
    YOGA_CALENDAR_DESCRIPTION,
    CalendarItem,
    CalendarListResult,
    CalendarRef,
    CalendarSelection,
    FeedSpec,
    SyncApproach,
    YogaCalendarResult,
    is_yoga_calendar,
    yoga_calendar_name,
)
from avara.models.domain.oauth_domain import OAuthIntegration
from avara.repositories.feed_repository import FeedRepository, feed_repository
from avara.repositories.integration_repository import (
    IntegrationRepository,
    integration_repository,
)
from avara.repositories.user_repository import UserRepository, user_repository
from avara.services.calendar.google_client import GoogleCalendarClient, google_calendar_client
from avara.services.feeds.feed_registry import FeedRegistry, feed_registry
from avara.services.token_refresher import get_valid_access_token

logger = get_logger(__name__)

PROVIDER = "google"
UNKNOWN_CALENDAR_NAME = "Unknown Calendar"


class CalendarSelectionService:
    def __init__(
        self,
        integrations: IntegrationRepository = integration_repository,
        feeds: FeedRepository = feed_repository,
        calendar_client: GoogleCalendarClient = google_calendar_client,
        users: UserRepository = user_repository,
        registry: FeedRegistry = feed_registry,
        client_id: str | None = None,
        client_secret: str | None = None,
    ):
        self.integrations = integrations
        self.feeds = feeds
        self.calendar_client = calendar_client
        self.users = users
        self.registry = registry
        self._client_id = client_id
        self._client_secret = client_secret

    def _credentials(self) -> tuple[str, str]:
        client_id = self._client_id or settings.GOOGLE_CLIENT_ID
        client_secret = self._client_secret or settings.GOOGLE_CLIENT_SECRET
        if not client_id or not client_secret:
            raise ConfigurationError("OAuth configuration missing", error_code="config_error")
        return client_id, client_secret

    async def _access_token(self, integration: OAuthIntegration) -> str:
        client_id, client_secret = self._credentials()

        async def persist(new_token: str, new_expires_at: datetime) -> None:
            await self.integrations.update_access_token(integration.id, new_token, new_expires_at)

        return await get_valid_access_token(integration, client_id, client_secret, persist)

    async def _provider_calendars(self, user_id: str) -> list[CalendarItem]:
        integration = await self.integrations.get_integration(user_id, PROVIDER)
        if not integration:
            raise NotFound("OAuth integration not found", error_code="no_integration")

        access_token = await self._access_token(integration)
        return await self.calendar_client.list_calendars(access_token)

    async def fetch_oauth_calendars(self, user_id: str) -> CalendarListResult:
        """
        List the user's provider calendars with selected flags.

        Never raises: every failure comes back as CalendarListResult.error
        with an empty calendar list.
        """
        try:
            calendars = await self._provider_calendars(user_id)

            refs = await self.feeds.list_oauth_calendar_refs(user_id, PROVIDER)
            selected_ids = {ref.calendar_id for ref in refs}

            marked = [
                calendar.model_copy(update={"selected": calendar.id in selected_ids})
                for calendar in calendars
            ]
            logger.info(
                "OAuth calendars fetched",
                user_id=user_id,
                calendar_count=len(marked),
                selected_count=sum(1 for c in marked if c.selected),
            )
            return CalendarListResult(calendars=marked)

        except AvaraError as e:
            logger.warning(
                "Failed to fetch OAuth calendars",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return CalendarListResult(calendars=[], error=e.message)
        except DatabaseError as e:
            logger.error("Database error fetching OAuth calendars", user_id=user_id, error=str(e))
            return CalendarListResult(calendars=[], error="Failed to load calendar selection")
        except Exception as e:
            logger.error(
                "Unexpected error fetching OAuth calendars",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return CalendarListResult(calendars=[], error="Failed to fetch calendars")

    async def save_calendar_selection(
        self, user_id: str, selections: list[CalendarSelection]
    ) -> int:
        """
        Replace the user's provider-backed feeds with the selected calendars.

        Returns:
            int: Number of calendars now selected
        """
        calendars = await self._provider_calendars(user_id)
        names = {calendar.id: calendar.summary for calendar in calendars}

        refs = [
            CalendarRef(
                provider=PROVIDER,
                calendar_id=selection.calendar_id,
                display_name=names.get(selection.calendar_id) or UNKNOWN_CALENDAR_NAME,
            )
            for selection in selections
            if selection.selected
        ]

        await self.feeds.replace_oauth_feeds(user_id, PROVIDER, refs)

        logger.info("Calendar selection saved", user_id=user_id, selected_count=len(refs))
        return len(refs)

    async def create_yoga_calendar(
        self, user_id: str, time_zone: str | None = None, sync_approach: str | None = None
    ) -> YogaCalendarResult:
        """
        Find or create the user's dedicated yoga calendar and make it their only feed.

        An existing calendar carrying the yoga calendar suffix is reused.

        Raises:
            ValidationError: unknown sync_approach (checked before any other work)
            NotFound: no Google Calendar integration
            AuthIntegrationExpired: stored credentials can no longer be refreshed
            ProviderUnavailable: Google Calendar could not list or create calendars
        """
        approach = SyncApproach.parse(sync_approach) if sync_approach else SyncApproach.YOGA_ONLY

        integration = await self.integrations.get_integration(user_id, PROVIDER)
        if not integration:
            raise NotFound(
                "OAuth integration not found. Please connect your Google account first.",
                error_code="no_integration",
            )

        access_token = await self._access_token(integration)
        calendars = await self.calendar_client.list_calendars(access_token)
        existing = next((c for c in calendars if is_yoga_calendar(c.summary)), None)

        if existing:
            calendar = existing
            logger.info("Using existing yoga calendar", user_id=user_id, calendar_id=calendar.id)
        else:
            user_name = await self.users.get_user_name(user_id)
            calendar = await self.calendar_client.create_calendar(
                access_token,
                yoga_calendar_name(user_name),
                YOGA_CALENDAR_DESCRIPTION,
                time_zone or "UTC",
            )
            logger.info("Created new yoga calendar", user_id=user_id, calendar_id=calendar.id)

        # the yoga calendar replaces every other feed of the user
        await self.feeds.delete_user_feeds(user_id)
        creation = await self.registry.create_feed(
            user_id,
            FeedSpec(
                calendar=CalendarRef(
                    provider=PROVIDER, calendar_id=calendar.id, display_name=calendar.summary
                ),
                sync_approach=approach,
            ),
        )
        await self.integrations.update_calendar_ids(integration.id, [calendar.id])

        return YogaCalendarResult(calendar=calendar, feed=creation.feed, created=existing is None)


calendar_selection_service = CalendarSelectionService()
