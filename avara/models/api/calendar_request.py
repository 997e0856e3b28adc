# avara/models/api/calendar_request.py
"""
Calendar API request models.
Used by routes for input validation.
"""

from pydantic import BaseModel, ConfigDict, Field

from avara.models.domain.calendar_domain import CalendarRef, CalendarSelection, FeedSpec, SyncApproach


class CalendarSelectionItem(BaseModel):
    """One calendar toggle from the selection screen."""

    model_config = ConfigDict(populate_by_name=True)

    calendar_id: str = Field(..., min_length=1, alias="calendarId", description="Provider calendar ID")
    selected: bool = Field(..., description="Whether the calendar should be synced")

    def to_domain(self) -> CalendarSelection:
        return CalendarSelection(calendar_id=self.calendar_id, selected=self.selected)


class CalendarSelectionRequest(BaseModel):
    """Request for saving the calendar selection."""

    selections: list[CalendarSelectionItem] = Field(..., description="Calendar toggles")


class CreateFeedRequest(BaseModel):
    """Request for creating a calendar feed. Either feed_url or calendar_id."""

    feed_url: str | None = Field(default=None, max_length=2048, description="ICS feed URL")
    calendar_name: str | None = Field(default=None, max_length=200, description="Display name for ICS feeds")
    calendar_id: str | None = Field(default=None, description="Provider calendar ID")
    calendar_display_name: str | None = Field(default=None, description="Provider calendar name")
    provider: str = Field(default="google", description="Calendar provider")
    sync_approach: str | None = Field(default=None, description="yoga_only (default) or mixed_calendar")

    def to_domain(self) -> FeedSpec:
        """Raises ValidationError for an unknown sync_approach."""
        approach = SyncApproach.parse(self.sync_approach) if self.sync_approach else SyncApproach.YOGA_ONLY
        calendar = None
        if self.calendar_id:
            calendar = CalendarRef(
                provider=self.provider,
                calendar_id=self.calendar_id,
                display_name=self.calendar_display_name or self.calendar_name or "",
            )
        return FeedSpec(
            feed_url=self.feed_url,
            calendar=calendar,
            calendar_name=self.calendar_name,
            sync_approach=approach,
        )


class UpdateSyncApproachRequest(BaseModel):
    """Request for changing a feed's sync approach. Validated by the registry."""

    sync_approach: str | None = Field(default=None, description="yoga_only or mixed_calendar")


class CreateYogaCalendarRequest(BaseModel):
    """Request for setting up the dedicated yoga calendar. Validated by the service."""

    model_config = ConfigDict(populate_by_name=True)

    time_zone: str | None = Field(default=None, alias="timeZone", description="IANA time zone, UTC when omitted")
    sync_approach: str | None = Field(default=None, description="yoga_only (default) or mixed_calendar")
