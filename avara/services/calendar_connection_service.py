"""
Calendar connection service: the Google OAuth connect/disconnect flow.

Each failure in the callback is reported with the error code the add-calendar
page understands, so the route can redirect without inspecting exceptions.
"""

from avara.db.helpers import DatabaseError
from avara.errors import AvaraError, ConfigurationError
from avara.infrastructure.observability.logging import get_logger
from avara.repositories.integration_repository import (
    IntegrationRepository,
    integration_repository,
)
from avara.services.calendar.google_client import GoogleCalendarClient, google_calendar_client
from avara.services.google_oauth_service import (
    GoogleOAuthError,
    GoogleOAuthService,
    google_oauth_service,
)
from avara.services.oauth_state_service import (
    OAuthStateError,
    OAuthStateService,
    oauth_state_service,
)

logger = get_logger(__name__)

PROVIDER = "google"


class CalendarConnectionError(Exception):
    """OAuth callback failure; error_code is shown to the user as ?error=<code>."""

    def __init__(self, message: str, error_code: str, user_id: str | None = None):
        super().__init__(message)
        self.error_code = error_code
        self.user_id = user_id


class CalendarConnectionService:
    def __init__(
        self,
        oauth: GoogleOAuthService = google_oauth_service,
        states: OAuthStateService = oauth_state_service,
        integrations: IntegrationRepository = integration_repository,
        calendar_client: GoogleCalendarClient = google_calendar_client,
    ):
        self.oauth = oauth
        self.states = states
        self.integrations = integrations
        self.calendar_client = calendar_client

    def initiate_oauth_flow(self, user_id: str) -> tuple[str, str]:
        """
        Start the consent flow.

        Returns:
            tuple[str, str]: (consent_url, state); the caller stores state in the cookie

        Raises:
            ConfigurationError: Google client or state secret not configured
        """
        if not self.oauth.client_id or not self.oauth.client_secret:
            raise ConfigurationError("Google OAuth not configured", error_code="config_error")

        state = self.states.generate_state(user_id)
        oauth_url = self.oauth.generate_oauth_url(state)

        logger.info("Calendar OAuth flow initiated", user_id=user_id, url_length=len(oauth_url))
        return oauth_url, state

    async def complete_oauth_flow(
        self,
        user_id: str,
        code: str | None,
        state: str | None,
        cookie_state: str | None,
        provider_error: str | None = None,
    ) -> None:
        """
        Finish the consent flow and store the integration.

        Raises:
            CalendarConnectionError: with the redirect error code for the failing step
        """
        if provider_error:
            logger.warning("Google OAuth denied", user_id=user_id, provider_error=provider_error)
            raise CalendarConnectionError("OAuth denied", "oauth_denied", user_id)

        if not code or not state:
            raise CalendarConnectionError("Missing code or state", "invalid_callback", user_id)

        try:
            self.states.validate_state(state, cookie_state, user_id)
        except OAuthStateError as e:
            logger.warning("OAuth state rejected", user_id=user_id, error=str(e))
            raise CalendarConnectionError(str(e), "invalid_state", user_id) from e

        try:
            grant = await self.oauth.exchange_code_for_tokens(code)
        except (GoogleOAuthError, AvaraError) as e:
            logger.error("Token exchange failed", user_id=user_id, error=str(e))
            raise CalendarConnectionError(str(e), "token_exchange_failed", user_id) from e

        try:
            profile = await self.oauth.fetch_user_info(grant.access_token)
        except (GoogleOAuthError, AvaraError) as e:
            logger.error("Failed to get Google user info", user_id=user_id, error=str(e))
            raise CalendarConnectionError(str(e), "user_info_failed", user_id) from e

        try:
            calendars = await self.calendar_client.list_calendars(grant.access_token)
        except AvaraError as e:
            logger.error("Failed to list calendars", user_id=user_id, error=str(e))
            raise CalendarConnectionError(str(e), "calendar_fetch_failed", user_id) from e

        try:
            await self.integrations.upsert_integration(
                user_id, grant, profile, [calendar.id for calendar in calendars], PROVIDER
            )
        except DatabaseError as e:
            logger.error("Failed to store calendar integration", user_id=user_id, error=str(e))
            raise CalendarConnectionError(str(e), "database_error", user_id) from e

        logger.info(
            "Calendar OAuth flow completed",
            user_id=user_id,
            calendar_count=len(calendars),
            has_refresh_token=bool(grant.refresh_token),
        )

    async def disconnect(self, user_id: str) -> bool:
        """Delete the stored integration. Feeds stay; they stop syncing until reconnect."""
        return await self.integrations.delete_integration(user_id, PROVIDER)


calendar_connection_service = CalendarConnectionService()
