# avara/models/domain/calendar_domain.py
"""
Calendar Domain Models
Feeds, provider calendars and sync bookkeeping used by the services.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from avara.errors import ValidationError

OAUTH_NAME_PREFIX = "oauth"
YOGA_CALENDAR_SUFFIX = "(synced with avara.)"
YOGA_CALENDAR_DESCRIPTION = (
    "This calendar is automatically synced with avara. for managing your yoga class "
    "schedule. Edit events here and they will appear on your public profile."
)


class SyncApproach(str, Enum):
    """How a feed's events are filtered into the app."""

    YOGA_ONLY = "yoga_only"
    MIXED_CALENDAR = "mixed_calendar"

    @classmethod
    def parse(cls, value: Any) -> "SyncApproach":
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(
                'Invalid sync_approach. Must be "yoga_only" or "mixed_calendar"',
                error_code="invalid_sync_approach",
            ) from None

    def describe(self) -> str:
        if self is SyncApproach.YOGA_ONLY:
            return "yoga classes only"
        return "mixed calendar with filtering"


@dataclass(frozen=True)
class CalendarRef:
    """
    A provider calendar linked to a feed.

    Stored in calendar_feeds.calendar_name as
    "oauth:<provider>:<calendar_id>:<display_name>". Only the repository
    converts to and from that string.
    """

    provider: str
    calendar_id: str
    display_name: str

    def to_calendar_name(self) -> str:
        return f"{OAUTH_NAME_PREFIX}:{self.provider}:{self.calendar_id}:{self.display_name}"

    @classmethod
    def from_calendar_name(cls, calendar_name: str | None) -> "CalendarRef | None":
        """Parse a stored calendar_name; None for ICS names and malformed values."""
        if not calendar_name:
            return None
        # display names may contain colons, calendar ids never do
        parts = calendar_name.split(":", 3)
        if len(parts) < 3 or parts[0] != OAUTH_NAME_PREFIX or not parts[2]:
            return None
        display_name = parts[3] if len(parts) == 4 else ""
        return cls(provider=parts[1], calendar_id=parts[2], display_name=display_name)

    @staticmethod
    def name_prefix(provider: str) -> str:
        return f"{OAUTH_NAME_PREFIX}:{provider}:"


class CalendarFeed(BaseModel):
    """A user's source of calendar events: an ICS URL or a provider calendar."""

    id: str
    user_id: str
    feed_url: str | None = None
    calendar_name: str | None = None
    sync_approach: SyncApproach = SyncApproach.YOGA_ONLY
    last_synced_at: datetime | None = None
    created_at: datetime | None = None

    def calendar_ref(self) -> CalendarRef | None:
        if self.feed_url:
            return None
        return CalendarRef.from_calendar_name(self.calendar_name)

    def is_ics(self) -> bool:
        return bool(self.feed_url)


class FeedSpec(BaseModel):
    """What a caller supplies to create a feed. Exactly one of feed_url / calendar."""

    feed_url: str | None = None
    calendar: CalendarRef | None = None
    calendar_name: str | None = None
    sync_approach: SyncApproach = SyncApproach.YOGA_ONLY

    def validate_source(self) -> None:
        if bool(self.feed_url) == bool(self.calendar):
            raise ValidationError(
                "A feed needs either a feed_url or a provider calendar",
                error_code="invalid_feed_source",
            )

    def stored_calendar_name(self) -> str | None:
        if self.calendar:
            return self.calendar.to_calendar_name()
        return self.calendar_name


class CalendarItem(BaseModel):
    """A provider calendar as listed for selection. Never persisted."""

    id: str
    summary: str = ""
    primary: bool = False
    access_role: str | None = None
    background_color: str | None = None
    description: str | None = None
    selected: bool = False

    @classmethod
    def from_google(cls, data: dict) -> "CalendarItem":
        return cls(
            id=data["id"],
            summary=data.get("summary") or "",
            primary=bool(data.get("primary", False)),
            access_role=data.get("accessRole"),
            background_color=data.get("backgroundColor"),
            description=data.get("description"),
        )


def yoga_calendar_name(user_name: str | None = None) -> str:
    base_name = f"{user_name}'s Yoga Schedule" if user_name else "My Yoga Schedule"
    return f"{base_name} {YOGA_CALENDAR_SUFFIX}"


def is_yoga_calendar(summary: str | None) -> bool:
    """Whether a provider calendar is the one this app created for the user."""
    return bool(summary) and YOGA_CALENDAR_SUFFIX in summary


class CalendarSelection(BaseModel):
    calendar_id: str = Field(..., min_length=1)
    selected: bool


@dataclass
class CalendarListResult:
    """Calendars for the selection screen. error is set instead of raising."""

    calendars: list[CalendarItem] = field(default_factory=list)
    error: str | None = None


@dataclass
class SyncResult:
    """Outcome of syncing one feed."""

    success: bool
    count: int = 0
    feed_id: str | None = None
    error: str | None = None

    @classmethod
    def failed(cls, feed_id: str | None, error: str) -> "SyncResult":
        return cls(success=False, count=0, feed_id=feed_id, error=error)


@dataclass
class SyncSummary:
    """Aggregate of a fan-out sync. Partial failure is an ordinary outcome."""

    successful_syncs: int = 0
    total_feeds: int = 0
    total_events: int = 0
    results: list[SyncResult] = field(default_factory=list)

    @property
    def failed_syncs(self) -> int:
        return self.total_feeds - self.successful_syncs

    @classmethod
    def from_results(cls, results: list[SyncResult]) -> "SyncSummary":
        return cls(
            successful_syncs=sum(1 for r in results if r.success),
            total_feeds=len(results),
            total_events=sum(r.count for r in results),
            results=results,
        )


@dataclass
class FeedCreationResult:
    feed: CalendarFeed
    sync_result: SyncResult | None = None


@dataclass
class YogaCalendarResult:
    """The dedicated yoga calendar and the feed now tracking it."""

    calendar: CalendarItem
    feed: CalendarFeed
    created: bool
