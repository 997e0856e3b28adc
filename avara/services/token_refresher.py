"""
Access token guard for provider API calls.

Computes a usable access token and hands any refreshed credentials to a
caller-supplied callback; persistence is the caller's concern.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime

from avara.config import settings
from avara.errors import AuthIntegrationExpired
from avara.infrastructure.observability.logging import get_logger
from avara.models.domain.oauth_domain import OAuthIntegration
from avara.services.google_oauth_service import GoogleOAuthService

logger = get_logger(__name__)

OnRefreshed = Callable[[str, datetime], Awaitable[None]]


async def get_valid_access_token(
    integration: OAuthIntegration,
    client_id: str,
    client_secret: str,
    on_refreshed: OnRefreshed,
    *,
    margin_seconds: int | None = None,
    token_client: GoogleOAuthService | None = None,
) -> str:
    """
    Return an access token that is valid for at least margin_seconds.

    Args:
        integration: Stored credentials
        client_id: Provider app client id
        client_secret: Provider app client secret
        on_refreshed: Awaited once with (new_token, new_expires_at) after a refresh
        margin_seconds: Safety margin before expiry (default from settings)
        token_client: Token endpoint client, built from the credentials when omitted

    Raises:
        AuthIntegrationExpired: no refresh token, or the provider rejected it
        TransientProviderError: the token endpoint could not be reached
    """
    if margin_seconds is None:
        margin_seconds = settings.TOKEN_REFRESH_MARGIN_SECONDS

    if not integration.is_expired(margin_seconds=margin_seconds):
        return integration.access_token

    if not integration.refresh_token:
        logger.warning(
            "Access token expired and no refresh token stored",
            integration_id=integration.id,
            user_id=integration.user_id,
        )
        raise AuthIntegrationExpired(
            "Calendar authorization expired. Please reconnect your calendar.",
            error_code="missing_refresh_token",
        )

    client = token_client or GoogleOAuthService(client_id=client_id, client_secret=client_secret)
    grant = await client.refresh_access_token(integration.refresh_token)

    await on_refreshed(grant.access_token, grant.expires_at)

    logger.info(
        "Access token refreshed",
        integration_id=integration.id,
        user_id=integration.user_id,
        expires_at=grant.expires_at.isoformat() if grant.expires_at else None,
    )
    return grant.access_token
