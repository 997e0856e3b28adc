"""
User-facing domain models: authenticated identity and featured-teacher selection.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

from pydantic import BaseModel

FEATURED_MIN_UPCOMING_EVENTS = 3

SelectionMethod = Literal["edge_function", "direct_database"]


class AuthenticatedUser(BaseModel):
    id: str
    email: str | None = None
    role: str | None = None


class FeaturedCandidate(BaseModel):
    """A user with a public profile, before the upcoming-events check."""

    id: str
    name: str
    public_url: str
    upcoming_public_events: int = 0

    def is_eligible(self) -> bool:
        return self.upcoming_public_events >= FEATURED_MIN_UPCOMING_EVENTS


@dataclass
class SelectionAttempt:
    """Result of one path of the featured-teacher job."""

    success: bool
    message: str


@dataclass
class SelectionOutcome:
    success: bool
    message: str
    method: SelectionMethod | None = None
    primary_error: str | None = None
    fallback_error: str | None = None


class PublicEvent(BaseModel):
    id: str
    title: str | None = None
    start_time: datetime
    end_time: datetime | None = None
    location: str | None = None


class FeaturedTeacher(BaseModel):
    id: str
    name: str
    public_url: str
    bio: str | None = None
    profile_image_url: str | None = None
    yoga_styles: list[str] | None = None
    events: list[PublicEvent]
