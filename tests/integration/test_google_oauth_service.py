from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from avara.errors import AuthIntegrationExpired, ConfigurationError, TransientProviderError
from avara.services.google_oauth_service import (
    GOOGLE_TOKEN_URL,
    GOOGLE_USERINFO_URL,
    GoogleOAuthError,
    GoogleOAuthService,
)


@pytest.fixture
def oauth():
    return GoogleOAuthService(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://localhost:3000/api/auth/google/callback",
        timeout=5,
    )


def test_consent_url_requests_offline_calendar_access(oauth):
    url = urlparse(oauth.generate_oauth_url("state-1"))
    params = parse_qs(url.query)

    assert url.netloc == "accounts.google.com"
    assert params["state"] == ["state-1"]
    assert params["access_type"] == ["offline"]
    assert params["prompt"] == ["consent"]
    assert "https://www.googleapis.com/auth/calendar" in params["scope"][0].split()


def test_consent_url_requires_configuration(monkeypatch):
    monkeypatch.setattr("avara.services.google_oauth_service.settings.GOOGLE_CLIENT_ID", None)
    monkeypatch.setattr("avara.services.google_oauth_service.settings.GOOGLE_CLIENT_SECRET", None)

    with pytest.raises(ConfigurationError):
        GoogleOAuthService(client_id="", client_secret="").generate_oauth_url("state-1")


@pytest.mark.asyncio
async def test_refresh_keeps_refresh_token_when_google_omits_it(httpx_mock, oauth):
    httpx_mock.add_response(
        url=GOOGLE_TOKEN_URL,
        method="POST",
        json={"access_token": "new-access", "expires_in": 3599, "token_type": "Bearer"},
    )

    grant = await oauth.refresh_access_token("refresh-1")

    assert grant.access_token == "new-access"
    assert grant.refresh_token == "refresh-1"
    assert grant.expires_at is not None
    body = parse_qs(httpx_mock.get_request().content.decode())
    assert body["grant_type"] == ["refresh_token"]


@pytest.mark.asyncio
async def test_rejected_refresh_token_requires_reconnect(httpx_mock, oauth):
    httpx_mock.add_response(url=GOOGLE_TOKEN_URL, status_code=400, json={"error": "invalid_grant"})

    with pytest.raises(AuthIntegrationExpired):
        await oauth.refresh_access_token("revoked")


@pytest.mark.asyncio
async def test_token_endpoint_outage_is_transient(httpx_mock, oauth):
    httpx_mock.add_response(url=GOOGLE_TOKEN_URL, status_code=503)

    with pytest.raises(TransientProviderError):
        await oauth.refresh_access_token("refresh-1")


@pytest.mark.asyncio
async def test_refresh_network_error_is_transient(httpx_mock, oauth):
    httpx_mock.add_exception(httpx.ConnectError("refused"), url=GOOGLE_TOKEN_URL)

    with pytest.raises(TransientProviderError):
        await oauth.refresh_access_token("refresh-1")


@pytest.mark.asyncio
async def test_code_exchange_and_profile(httpx_mock, oauth):
    httpx_mock.add_response(
        url=GOOGLE_TOKEN_URL,
        json={
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "expires_in": 3600,
            "token_type": "Bearer",
            "scope": "https://www.googleapis.com/auth/calendar",
        },
    )
    httpx_mock.add_response(
        url=GOOGLE_USERINFO_URL,
        json={"id": "google-1", "email": "teacher@example.com", "name": "Asha"},
    )

    grant = await oauth.exchange_code_for_tokens("code-1")
    profile = await oauth.fetch_user_info(grant.access_token)

    assert grant.refresh_token == "refresh-1"
    assert grant.has_calendar_access()
    assert profile.id == "google-1"


@pytest.mark.asyncio
async def test_rejected_code_is_oauth_error(httpx_mock, oauth):
    httpx_mock.add_response(url=GOOGLE_TOKEN_URL, status_code=400, json={"error": "invalid_grant"})

    with pytest.raises(GoogleOAuthError) as exc:
        await oauth.exchange_code_for_tokens("bad-code")

    assert exc.value.error_code == "invalid_grant"


@pytest.mark.asyncio
async def test_refresh_without_access_token_requires_reconnect(httpx_mock, oauth):
    httpx_mock.add_response(url=GOOGLE_TOKEN_URL, json={"expires_in": 3600})

    with pytest.raises(AuthIntegrationExpired) as exc:
        await oauth.refresh_access_token("refresh-1")

    assert exc.value.error_code == "invalid_token_response"
