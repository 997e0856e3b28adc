"""
Low-level Google Calendar API client.
Lists calendars and events, and creates calendars, for an already-valid access token.
"""

from datetime import datetime
from urllib.parse import quote

import httpx

from avara.config import settings
from avara.errors import ProviderResponseInvalid, ProviderUnavailable
from avara.infrastructure.observability.logging import get_logger
from avara.models.domain.calendar_domain import CalendarItem

logger = get_logger(__name__)

CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
MAX_EVENTS_PER_PAGE = 250


class GoogleCalendarClient:
    """
    Google Calendar API calls used by calendar selection and sync.

    HTTP failures raise ProviderUnavailable, unusable bodies raise
    ProviderResponseInvalid.
    """

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout or settings.PROVIDER_REQUEST_TIMEOUT

    def _get_auth_headers(self, access_token: str) -> dict:
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

    async def _request_json(
        self,
        method: str,
        url: str,
        access_token: str,
        operation: str,
        params: dict | None = None,
        json_body: dict | None = None,
    ) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method,
                    url,
                    headers=self._get_auth_headers(access_token),
                    params=params,
                    json=json_body,
                )
        except httpx.TimeoutException as e:
            logger.warning(f"Calendar API {operation} timed out")
            raise ProviderUnavailable(
                "Google Calendar did not respond in time", error_code="timeout"
            ) from e
        except httpx.RequestError as e:
            logger.warning(
                f"Calendar API {operation} request error",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProviderUnavailable(
                "Could not reach Google Calendar", error_code="network_error"
            ) from e

        if not response.is_success:
            logger.error(
                f"Calendar API {operation} failed",
                status_code=response.status_code,
            )
            error_code = "unauthorized" if response.status_code == 401 else "http_error"
            raise ProviderUnavailable(
                f"Google Calendar request failed (HTTP {response.status_code})",
                error_code=error_code,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Calendar API {operation} returned non-JSON body")
            raise ProviderResponseInvalid(
                "Google Calendar returned an unreadable response", error_code="invalid_json"
            ) from e

        if not isinstance(data, dict):
            raise ProviderResponseInvalid(
                "Google Calendar returned an unexpected response", error_code="invalid_shape"
            )
        return data

    async def list_calendars(self, access_token: str) -> list[CalendarItem]:
        """List the user's calendars. selected is always False here."""
        data = await self._request_json(
            "GET",
            f"{CALENDAR_API_BASE_URL}/users/me/calendarList", access_token, "list_calendars"
        )

        items = data.get("items") or []
        if not isinstance(items, list):
            raise ProviderResponseInvalid(
                "Google Calendar returned an unexpected calendar list", error_code="invalid_shape"
            )

        try:
            calendars = [CalendarItem.from_google(item) for item in items]
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderResponseInvalid(
                f"Malformed calendar entry: {e}", error_code="invalid_shape"
            ) from e

        logger.info("Calendars listed successfully", calendar_count=len(calendars))
        return calendars

    async def list_events(
        self,
        access_token: str,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
        max_results: int = MAX_EVENTS_PER_PAGE,
    ) -> list[dict]:
        """Raw single-instance events of one calendar inside a time window."""
        params = {
            "timeMin": time_min.isoformat(),
            "timeMax": time_max.isoformat(),
            "singleEvents": "true",
            "orderBy": "startTime",
            "maxResults": str(max_results),
        }
        data = await self._request_json(
            "GET",
            f"{CALENDAR_API_BASE_URL}/calendars/{quote(calendar_id, safe='')}/events",
            access_token,
            "list_events",
            params=params,
        )

        items = data.get("items") or []
        if not isinstance(items, list):
            raise ProviderResponseInvalid(
                "Google Calendar returned an unexpected event list", error_code="invalid_shape"
            )
        return items

    async def create_calendar(
        self, access_token: str, name: str, description: str, time_zone: str = "UTC"
    ) -> CalendarItem:
        """Create a secondary calendar owned by the user."""
        data = await self._request_json(
            "POST",
            f"{CALENDAR_API_BASE_URL}/calendars",
            access_token,
            "create_calendar",
            json_body={"summary": name, "description": description, "timeZone": time_zone},
        )

        try:
            calendar = CalendarItem.from_google(data)
        except KeyError as e:
            raise ProviderResponseInvalid(
                "Google Calendar did not return the new calendar's id", error_code="invalid_shape"
            ) from e

        logger.info("Calendar created", calendar_id=calendar.id, time_zone=time_zone)
        return calendar


google_calendar_client = GoogleCalendarClient()
