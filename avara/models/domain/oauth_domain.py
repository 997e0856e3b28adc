"""
OAuth domain models for calendar provider integrations.
"""

from datetime import UTC, datetime, timedelta
from typing import Literal

from pydantic import BaseModel, Field

Provider = Literal["google"]


def _ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class OAuthIntegration(BaseModel):
    """Persisted provider credentials for one user. At most one per (user_id, provider)."""

    id: str
    user_id: str
    provider: Provider = "google"
    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    provider_user_id: str | None = None
    calendar_ids: list[str] = Field(default_factory=list)
    scopes: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_expired(self, margin_seconds: int = 0, now: datetime | None = None) -> bool:
        """
        True when the access token is expired or expires within the margin.

        A missing expiry is treated as expired so the token gets refreshed
        rather than sent to the provider blind.
        """
        if not self.expires_at:
            return True
        now = now or datetime.now(UTC)
        return _ensure_aware(self.expires_at) <= now + timedelta(seconds=margin_seconds)


class TokenGrant:
    """Structured representation of a Google token endpoint response."""

    def __init__(self, data: dict, issued_at: datetime | None = None):
        self.access_token = data.get("access_token")
        self.refresh_token = data.get("refresh_token")
        self.token_type = data.get("token_type", "Bearer")
        self.expires_in = data.get("expires_in")
        self.scope = data.get("scope", "")

        issued_at = issued_at or datetime.now(UTC)
        if self.expires_in:
            self.expires_at = issued_at + timedelta(seconds=int(self.expires_in))
        else:
            self.expires_at = None

    def is_valid(self) -> bool:
        """Check if token response contains required fields."""
        return bool(self.access_token and self.token_type)

    def scopes(self) -> list[str]:
        return self.scope.split() if self.scope else []

    def has_calendar_access(self) -> bool:
        return any("calendar" in scope for scope in self.scopes())


class GoogleUserInfo(BaseModel):
    """Subset of the Google userinfo profile we keep."""

    id: str
    email: str | None = None
    name: str | None = None
    picture: str | None = None
