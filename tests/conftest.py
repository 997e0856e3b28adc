import os
import uuid

os.environ.setdefault("SUPABASE_URL", "https://project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "service-role-key")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("OAUTH_STATE_SECRET", "test-state-secret")
os.environ.setdefault("NEXT_PUBLIC_APP_URL", "http://localhost:3000")

from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402

from avara.auth.verify import AuthContext, get_auth_context  # noqa: E402
from avara.db.helpers import DatabaseError  # noqa: E402
from avara.errors import RemoteFunctionError  # noqa: E402
from avara.models.domain.calendar_domain import CalendarFeed, CalendarRef  # noqa: E402
from avara.models.domain.oauth_domain import OAuthIntegration  # noqa: E402
from avara.models.domain.user_domain import FeaturedCandidate, PublicEvent  # noqa: E402


class FakeFeedRepository:
    def __init__(self):
        self.feeds: dict[str, CalendarFeed] = {}
        self.calls: list[str] = []
        self.fail_mark_synced = False
        self._counter = 0
        self._epoch = datetime(2025, 1, 1, tzinfo=UTC)

    def add(self, user_id: str, feed_url=None, calendar_name=None, **fields) -> CalendarFeed:
        self._counter += 1
        feed = CalendarFeed(
            id=fields.pop("id", str(uuid.uuid4())),
            user_id=user_id,
            feed_url=feed_url,
            calendar_name=calendar_name,
            created_at=self._epoch + timedelta(minutes=self._counter),
            **fields,
        )
        self.feeds[feed.id] = feed
        return feed

    async def insert_feed(self, user_id, feed_url, calendar_name, sync_approach):
        self.calls.append("insert_feed")
        return self.add(user_id, feed_url, calendar_name, sync_approach=sync_approach)

    async def get_feed(self, feed_id, user_id):
        self.calls.append("get_feed")
        feed = self.feeds.get(feed_id)
        return feed if feed and feed.user_id == user_id else None

    async def list_feeds(self, user_id):
        self.calls.append("list_feeds")
        owned = [f for f in self.feeds.values() if f.user_id == user_id]
        return sorted(owned, key=lambda f: f.created_at, reverse=True)

    async def list_stale_feed_ids(self, synced_before):
        self.calls.append("list_stale_feed_ids")
        return [
            f.id
            for f in self.feeds.values()
            if f.last_synced_at is None or f.last_synced_at < synced_before
        ]

    async def get_latest_feed_id(self, user_id):
        self.calls.append("get_latest_feed_id")
        feeds = await self.list_feeds(user_id)
        return feeds[0].id if feeds else None

    async def list_oauth_calendar_refs(self, user_id, provider):
        self.calls.append("list_oauth_calendar_refs")
        refs = [
            f.calendar_ref()
            for f in self.feeds.values()
            if f.user_id == user_id and not f.feed_url
        ]
        return [ref for ref in refs if ref and ref.provider == provider]

    async def replace_oauth_feeds(self, user_id, provider, refs: list[CalendarRef]):
        self.calls.append("replace_oauth_feeds")
        for feed_id, feed in list(self.feeds.items()):
            ref = feed.calendar_ref()
            if feed.user_id == user_id and ref and ref.provider == provider:
                del self.feeds[feed_id]
        for ref in refs:
            self.add(user_id, None, ref.to_calendar_name())

    async def update_sync_approach(self, feed_id, user_id, approach):
        self.calls.append("update_sync_approach")
        feed = self.feeds.get(feed_id)
        if not feed or feed.user_id != user_id:
            return None
        updated = feed.model_copy(update={"sync_approach": approach})
        self.feeds[feed_id] = updated
        return updated

    async def mark_synced(self, feed_id, synced_at):
        self.calls.append("mark_synced")
        if self.fail_mark_synced:
            raise DatabaseError("connection lost", operation="execute_query")
        feed = self.feeds.get(feed_id)
        if not feed:
            return False
        self.feeds[feed_id] = feed.model_copy(update={"last_synced_at": synced_at})
        return True

    async def delete_user_feeds(self, user_id):
        self.calls.append("delete_user_feeds")
        owned = [feed_id for feed_id, feed in self.feeds.items() if feed.user_id == user_id]
        for feed_id in owned:
            del self.feeds[feed_id]
        return len(owned)

    async def delete_feed(self, feed_id, user_id):
        self.calls.append("delete_feed")
        feed = self.feeds.get(feed_id)
        if not feed or feed.user_id != user_id:
            return False
        del self.feeds[feed_id]
        return True


class FakeIntegrationRepository:
    def __init__(self):
        self.integrations: dict[tuple[str, str], OAuthIntegration] = {}
        self.token_updates: list[tuple[str, str, datetime]] = []
        self.upserts: list[dict] = []

    def add(self, user_id: str, **fields) -> OAuthIntegration:
        integration = OAuthIntegration(
            id=fields.pop("id", f"integration-{user_id}"), user_id=user_id, **fields
        )
        self.integrations[(user_id, integration.provider)] = integration
        return integration

    async def get_integration(self, user_id, provider="google"):
        return self.integrations.get((user_id, provider))

    async def upsert_integration(self, user_id, grant, profile, calendar_ids, provider="google"):
        self.upserts.append(
            {"user_id": user_id, "provider_user_id": profile.id, "calendar_ids": calendar_ids}
        )
        return self.add(
            user_id,
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=grant.expires_at,
            provider_user_id=profile.id,
            calendar_ids=calendar_ids,
            scopes=grant.scopes(),
        )

    async def update_access_token(self, integration_id, access_token, expires_at):
        self.token_updates.append((integration_id, access_token, expires_at))
        for key, integration in self.integrations.items():
            if integration.id == integration_id:
                self.integrations[key] = integration.model_copy(
                    update={"access_token": access_token, "expires_at": expires_at}
                )
                return True
        return False

    async def update_calendar_ids(self, integration_id, calendar_ids):
        for key, integration in self.integrations.items():
            if integration.id == integration_id:
                self.integrations[key] = integration.model_copy(
                    update={"calendar_ids": calendar_ids}
                )
                return True
        return False

    async def delete_integration(self, user_id, provider="google"):
        return self.integrations.pop((user_id, provider), None) is not None


class FakeUserRepository:
    def __init__(self):
        self.users: dict[str, dict] = {}
        self.events: dict[str, int] = {}
        self.count_failures: set[str] = set()
        self.calls: list[str] = []
        self.fail_clear = False

    def add(self, user_id: str, name: str | None, public_url: str | None, upcoming_events: int = 0):
        self.users[user_id] = {
            "id": user_id,
            "name": name,
            "public_url": public_url,
            "is_featured": False,
        }
        self.events[user_id] = upcoming_events

    def featured_ids(self) -> list[str]:
        return [u["id"] for u in self.users.values() if u["is_featured"]]

    async def clear_featured_flags(self):
        self.calls.append("clear_featured_flags")
        if self.fail_clear:
            raise DatabaseError("connection lost", operation="execute_query")
        for user in self.users.values():
            user["is_featured"] = False
        return len(self.users)

    async def list_featured_candidates(self):
        self.calls.append("list_featured_candidates")
        return [
            FeaturedCandidate(id=u["id"], name=u["name"], public_url=u["public_url"])
            for u in self.users.values()
            if u["name"] and u["public_url"]
        ]

    async def count_upcoming_public_events(self, user_id, now):
        if user_id in self.count_failures:
            raise DatabaseError("count failed", operation="fetch_val")
        return self.events.get(user_id, 0)

    async def set_featured(self, user_id):
        self.calls.append("set_featured")
        self.users[user_id]["is_featured"] = True
        return True

    async def get_user_name(self, user_id):
        user = self.users.get(user_id)
        return user["name"] if user else None

    async def get_featured_user(self):
        for user in self.users.values():
            if user["is_featured"] and user["name"] and user["public_url"]:
                return {k: v for k, v in user.items() if k != "is_featured"}
        return None

    async def list_upcoming_public_events(self, user_id, now, limit):
        count = min(self.events.get(user_id, 0), limit)
        return [
            PublicEvent(id=f"event-{i}", title=f"Class {i}", start_time=now + timedelta(days=i + 1))
            for i in range(count)
        ]


class FakeFunctions:
    """Stand-in for the edge functions client. handlers map name -> callable(body)."""

    def __init__(self):
        self.handlers = {}
        self.calls: list[tuple[str, dict | None]] = []

    async def invoke(self, name, body=None):
        self.calls.append((name, body))
        handler = self.handlers.get(name)
        if handler is None:
            raise RemoteFunctionError(f"{name} not available", function_name=name)
        return handler(body)


@pytest.fixture
def feed_repo():
    return FakeFeedRepository()


@pytest.fixture
def integration_repo():
    return FakeIntegrationRepository()


@pytest.fixture
def user_repo():
    return FakeUserRepository()


@pytest.fixture
def functions():
    return FakeFunctions()


@pytest.fixture
def auth_override():
    def _override():
        return AuthContext({"sub": "user-123", "email": "teacher@example.com"})

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[get_auth_context] = auth_override

    return _apply
