from datetime import UTC, datetime, timedelta

import pytest

from avara.errors import ValidationError
from avara.models.domain.calendar_domain import (
    CalendarFeed,
    CalendarRef,
    FeedSpec,
    SyncApproach,
    SyncResult,
    SyncSummary,
    is_yoga_calendar,
    yoga_calendar_name,
)
from avara.models.domain.oauth_domain import OAuthIntegration, TokenGrant


def test_sync_approach_accepts_known_values():
    assert SyncApproach.parse("yoga_only") is SyncApproach.YOGA_ONLY
    assert SyncApproach.parse("mixed_calendar") is SyncApproach.MIXED_CALENDAR


@pytest.mark.parametrize("value", [None, "", "all", "YOGA_ONLY"])
def test_sync_approach_rejects_unknown_values(value):
    with pytest.raises(ValidationError) as exc:
        SyncApproach.parse(value)
    assert exc.value.status_code == 400
    assert "yoga_only" in exc.value.message


def test_sync_approach_description():
    assert SyncApproach.YOGA_ONLY.describe() == "yoga classes only"
    assert SyncApproach.MIXED_CALENDAR.describe() == "mixed calendar with filtering"


def test_calendar_ref_keeps_colons_in_display_name():
    ref = CalendarRef(provider="google", calendar_id="abc@group.calendar.google.com", display_name="Yoga: Mornings")

    name = ref.to_calendar_name()

    assert name == "oauth:google:abc@group.calendar.google.com:Yoga: Mornings"
    assert CalendarRef.from_calendar_name(name) == ref


@pytest.mark.parametrize("name", [None, "", "My ICS feed", "oauth:google:", "ics:google:abc:x"])
def test_calendar_ref_ignores_non_provider_names(name):
    assert CalendarRef.from_calendar_name(name) is None


def test_ics_feed_has_no_calendar_ref():
    feed = CalendarFeed(
        id="feed-1",
        user_id="user-1",
        feed_url="https://example.com/cal.ics",
        calendar_name="oauth:google:abc:Looks like oauth",
    )
    assert feed.is_ics()
    assert feed.calendar_ref() is None
    assert feed.sync_approach is SyncApproach.YOGA_ONLY


def test_feed_spec_needs_exactly_one_source():
    ref = CalendarRef(provider="google", calendar_id="primary", display_name="Main")

    FeedSpec(feed_url="https://example.com/cal.ics").validate_source()
    FeedSpec(calendar=ref).validate_source()

    with pytest.raises(ValidationError):
        FeedSpec().validate_source()
    with pytest.raises(ValidationError):
        FeedSpec(feed_url="https://example.com/cal.ics", calendar=ref).validate_source()


def test_sync_summary_counts_partial_failure():
    summary = SyncSummary.from_results(
        [
            SyncResult(success=True, count=4, feed_id="a"),
            SyncResult.failed("b", "boom"),
            SyncResult(success=True, count=6, feed_id="c"),
        ]
    )
    assert summary.successful_syncs == 2
    assert summary.failed_syncs == 1
    assert summary.total_feeds == 3
    assert summary.total_events == 10


def test_integration_expiry_uses_margin():
    now = datetime(2025, 1, 1, 12, 0, tzinfo=UTC)
    integration = OAuthIntegration(
        id="i-1", user_id="u-1", access_token="tok", expires_at=now + timedelta(seconds=30)
    )
    assert not integration.is_expired(margin_seconds=0, now=now)
    assert integration.is_expired(margin_seconds=60, now=now)


def test_integration_without_expiry_counts_as_expired():
    integration = OAuthIntegration(id="i-1", user_id="u-1", access_token="tok")
    assert integration.is_expired()


def test_token_grant_computes_expiry_and_scopes():
    issued = datetime(2025, 1, 1, tzinfo=UTC)
    grant = TokenGrant(
        {
            "access_token": "new",
            "expires_in": 3600,
            "scope": "https://www.googleapis.com/auth/calendar openid",
        },
        issued_at=issued,
    )
    assert grant.is_valid()
    assert grant.expires_at == issued + timedelta(hours=1)
    assert grant.has_calendar_access()
    assert grant.scopes() == ["https://www.googleapis.com/auth/calendar", "openid"]


def test_yoga_calendar_name_is_recognised():
    assert yoga_calendar_name("Asha") == "Asha's Yoga Schedule (synced with avara.)"
    assert yoga_calendar_name(None) == "My Yoga Schedule (synced with avara.)"
    assert is_yoga_calendar(yoga_calendar_name("Asha"))
    assert not is_yoga_calendar("Yoga")
    assert not is_yoga_calendar(None)
