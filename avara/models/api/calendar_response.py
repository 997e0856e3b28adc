# avara/models/api/calendar_response.py
"""
Calendar API response models.
Used by routes for output formatting. Field aliases match what the web
client reads.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from avara.models.domain.calendar_domain import (
    CalendarFeed,
    CalendarItem,
    SyncResult,
    YogaCalendarResult,
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CalendarItemResponse(_CamelModel):
    """A provider calendar with its selection state."""

    id: str = Field(..., description="Calendar ID")
    summary: str = Field(..., description="Calendar name")
    primary: bool = Field(default=False, description="Is this the primary calendar")
    access_role: str | None = Field(None, alias="accessRole", description="User's access role")
    background_color: str | None = Field(None, alias="backgroundColor", description="Calendar color")
    description: str | None = Field(None, description="Calendar description")
    selected: bool = Field(..., description="Is this calendar synced")

    @classmethod
    def from_domain(cls, item: CalendarItem) -> "CalendarItemResponse":
        return cls(**item.model_dump())


class CalendarSelectionResponse(BaseModel):
    """Calendars for the selection screen. error is set instead of an HTTP error."""

    calendars: list[CalendarItemResponse] = Field(..., description="Provider calendars")
    error: str | None = Field(None, description="Why the list is empty, if it failed")


class SaveSelectionResponse(_CamelModel):
    success: bool = Field(..., description="Whether the selection was saved")
    selected_count: int = Field(..., alias="selectedCount", description="Calendars now selected")
    message: str = Field(..., description="Human readable outcome")


class FeedResponse(BaseModel):
    """A calendar feed row."""

    id: str = Field(..., description="Feed ID")
    user_id: str = Field(..., description="Owner")
    feed_url: str | None = Field(None, description="ICS URL, null for provider feeds")
    calendar_name: str | None = Field(None, description="Display or encoded provider name")
    sync_approach: str = Field(..., description="yoga_only or mixed_calendar")
    last_synced_at: datetime | None = Field(None, description="Last successful sync")
    created_at: datetime | None = Field(None, description="Creation time")

    @classmethod
    def from_domain(cls, feed: CalendarFeed) -> "FeedResponse":
        return cls(**feed.model_dump(mode="json"))


class SyncResultResponse(BaseModel):
    success: bool = Field(..., description="Whether the sync succeeded")
    count: int = Field(..., description="Events synced")
    error: str | None = Field(None, description="Failure reason")

    @classmethod
    def from_domain(cls, result: SyncResult) -> "SyncResultResponse":
        return cls(success=result.success, count=result.count, error=result.error)


class FeedListResponse(BaseModel):
    feeds: list[FeedResponse] = Field(..., description="The caller's feeds, newest first")


class CreateFeedResponse(_CamelModel):
    feed: FeedResponse = Field(..., description="The created feed")
    sync_result: SyncResultResponse | None = Field(
        None, alias="syncResult", description="First sync outcome for ICS feeds"
    )


class UpdateFeedResponse(BaseModel):
    success: bool = Field(..., description="Whether the update was applied")
    feed: FeedResponse = Field(..., description="The updated feed")
    message: str = Field(..., description="Human readable outcome")


class LatestFeedResponse(_CamelModel):
    feed_id: str = Field(..., alias="feedId", description="Most recently created feed")


class SyncAllResponse(_CamelModel):
    success: bool = Field(..., description="Always true; inspect the counts")
    successful_syncs: int = Field(..., alias="successfulSyncs")
    failed_syncs: int = Field(..., alias="failedSyncs")
    total_feeds: int = Field(..., alias="totalFeeds")
    total_events: int = Field(..., alias="totalEvents")


class CalendarSyncResponse(_CamelModel):
    success: bool = Field(..., description="Whether the sync was triggered")
    message: str = Field(..., description="Human readable outcome")
    feed_id: str = Field(..., alias="feedId", description="Feed that was synced")


class YogaCalendarInfo(BaseModel):
    id: str = Field(..., description="Provider calendar ID")
    name: str = Field(..., description="Calendar name")
    description: str | None = Field(None, description="Calendar description")
    created: bool = Field(..., description="False when an existing yoga calendar was reused")


class CreateYogaCalendarResponse(BaseModel):
    success: bool = Field(..., description="Whether the yoga calendar is connected")
    calendar: YogaCalendarInfo = Field(..., description="The dedicated yoga calendar")
    message: str = Field(..., description="Human readable outcome")

    @classmethod
    def from_domain(cls, result: YogaCalendarResult) -> "CreateYogaCalendarResponse":
        return cls(
            success=True,
            calendar=YogaCalendarInfo(
                id=result.calendar.id,
                name=result.calendar.summary,
                description=result.calendar.description,
                created=result.created,
            ),
            message=(
                "Created new dedicated yoga calendar"
                if result.created
                else "Connected to your existing yoga calendar"
            ),
        )
