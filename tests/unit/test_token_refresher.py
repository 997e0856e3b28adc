from datetime import UTC, datetime, timedelta

import pytest

from avara.errors import AuthIntegrationExpired
from avara.models.domain.oauth_domain import OAuthIntegration, TokenGrant
from avara.services.token_refresher import get_valid_access_token


class FakeTokenClient:
    def __init__(self, grant: TokenGrant | None = None, error: Exception | None = None):
        self.grant = grant
        self.error = error
        self.refreshed_with: list[str] = []

    async def refresh_access_token(self, refresh_token):
        self.refreshed_with.append(refresh_token)
        if self.error:
            raise self.error
        return self.grant


class Recorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, token, expires_at):
        self.calls.append((token, expires_at))


def _integration(expires_in: timedelta, refresh_token="refresh-1"):
    return OAuthIntegration(
        id="integration-1",
        user_id="user-1",
        access_token="old-token",
        refresh_token=refresh_token,
        expires_at=datetime.now(UTC) + expires_in,
    )


@pytest.mark.asyncio
async def test_valid_token_is_returned_without_refresh():
    client = FakeTokenClient()
    on_refreshed = Recorder()

    token = await get_valid_access_token(
        _integration(timedelta(hours=1)), "id", "secret", on_refreshed, token_client=client
    )

    assert token == "old-token"
    assert client.refreshed_with == []
    assert on_refreshed.calls == []


@pytest.mark.asyncio
async def test_token_inside_margin_is_refreshed():
    grant = TokenGrant({"access_token": "new-token", "expires_in": 3600})
    client = FakeTokenClient(grant=grant)
    on_refreshed = Recorder()

    token = await get_valid_access_token(
        _integration(timedelta(seconds=30)),
        "id",
        "secret",
        on_refreshed,
        margin_seconds=60,
        token_client=client,
    )

    assert token == "new-token"
    assert client.refreshed_with == ["refresh-1"]
    assert on_refreshed.calls == [("new-token", grant.expires_at)]


@pytest.mark.asyncio
async def test_expired_without_refresh_token_requires_reconnect():
    on_refreshed = Recorder()

    with pytest.raises(AuthIntegrationExpired) as exc:
        await get_valid_access_token(
            _integration(timedelta(minutes=-5), refresh_token=None),
            "id",
            "secret",
            on_refreshed,
            token_client=FakeTokenClient(),
        )

    assert exc.value.error_code == "missing_refresh_token"
    assert on_refreshed.calls == []


@pytest.mark.asyncio
async def test_rejected_refresh_does_not_persist():
    client = FakeTokenClient(error=AuthIntegrationExpired("revoked", error_code="invalid_grant"))
    on_refreshed = Recorder()

    with pytest.raises(AuthIntegrationExpired):
        await get_valid_access_token(
            _integration(timedelta(minutes=-5)), "id", "secret", on_refreshed, token_client=client
        )

    assert on_refreshed.calls == []
