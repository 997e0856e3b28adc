"""
Google OAuth Service for Calendar API integration.
Handles OAuth URL generation, code exchange, token refresh and profile lookup.
Storage is not touched here; callers persist what they get back.
"""

from urllib.parse import urlencode

import httpx

from avara.config import settings
from avara.errors import AuthIntegrationExpired, ConfigurationError, TransientProviderError
from avara.infrastructure.observability.logging import get_logger, token_preview
from avara.models.domain.oauth_domain import GoogleUserInfo, TokenGrant

logger = get_logger(__name__)

# OAuth configuration
GOOGLE_OAUTH_BASE_URL = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

GOOGLE_CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
]


class GoogleOAuthError(Exception):
    """Google rejected an OAuth request for a reason other than an expired grant."""

    def __init__(
        self, message: str, error_code: str | None = None, response_data: dict | None = None
    ):
        super().__init__(message)
        self.error_code = error_code
        self.response_data = response_data or {}


class GoogleOAuthService:
    """
    Client for Google's OAuth 2.0 endpoints.

    Every request is bounded by the configured timeout. Network failures and
    5xx answers surface as TransientProviderError; a rejected refresh token
    surfaces as AuthIntegrationExpired.
    """

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        timeout: float | None = None,
    ):
        self.client_id = client_id or settings.GOOGLE_CLIENT_ID
        self.client_secret = client_secret or settings.GOOGLE_CLIENT_SECRET
        self.redirect_uri = redirect_uri or settings.google_redirect_uri()
        self.timeout = timeout or settings.PROVIDER_REQUEST_TIMEOUT

    def _validate_config(self) -> None:
        if not self.client_id or not self.client_secret:
            raise ConfigurationError("Google OAuth not configured", error_code="config_error")

    def generate_oauth_url(self, state: str) -> str:
        """Build the consent screen URL; offline access so Google issues a refresh token."""
        self._validate_config()

        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(GOOGLE_CALENDAR_SCOPES),
            "state": state,
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{GOOGLE_OAUTH_BASE_URL}?{urlencode(params)}"

    async def _post_token_endpoint(self, data: dict, operation: str) -> httpx.Response:
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.post(GOOGLE_TOKEN_URL, data=data, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Google token endpoint timed out", operation=operation)
            raise TransientProviderError(
                f"Google {operation} timed out", error_code="timeout"
            ) from e
        except httpx.RequestError as e:
            logger.warning(
                "Network error calling Google token endpoint",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransientProviderError(
                f"Network error during {operation}", error_code="network_error"
            ) from e

    async def exchange_code_for_tokens(self, authorization_code: str) -> TokenGrant:
        """Exchange the callback's authorization code for an access/refresh token pair."""
        self._validate_config()

        response = await self._post_token_endpoint(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": authorization_code,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_uri,
            },
            operation="code_exchange",
        )

        if response.status_code >= 500:
            raise TransientProviderError(
                f"Google token endpoint unavailable (HTTP {response.status_code})",
                error_code="provider_unavailable",
            )
        if not response.is_success:
            error_code = self._error_code(response)
            logger.error(
                "Google code exchange failed",
                status_code=response.status_code,
                error_code=error_code,
            )
            raise GoogleOAuthError("Token exchange failed", error_code=error_code)

        return self._parse_grant(response, "code_exchange")

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """
        Refresh an access token.

        Raises:
            AuthIntegrationExpired: Google rejected the refresh token or answered
                without a usable access token
            TransientProviderError: network failure, timeout or 5xx
        """
        self._validate_config()

        logger.info("Refreshing Google access token", refresh_token_preview=token_preview(refresh_token))

        response = await self._post_token_endpoint(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
            operation="token_refresh",
        )

        if response.status_code >= 500:
            raise TransientProviderError(
                f"Google token endpoint unavailable (HTTP {response.status_code})",
                error_code="provider_unavailable",
            )
        if not response.is_success:
            error_code = self._error_code(response)
            logger.warning(
                "Google rejected refresh token",
                status_code=response.status_code,
                error_code=error_code,
            )
            raise AuthIntegrationExpired(
                "Google Calendar authorization expired. Please reconnect your calendar.",
                error_code=error_code,
            )

        try:
            grant = self._parse_grant(response, "token_refresh")
        except GoogleOAuthError as e:
            raise AuthIntegrationExpired(
                "Google returned an unusable token. Please reconnect your calendar.",
                error_code="invalid_token_response",
            ) from e

        # Google usually omits the refresh token on refresh
        if not grant.refresh_token:
            grant.refresh_token = refresh_token

        return grant

    async def fetch_user_info(self, access_token: str) -> GoogleUserInfo:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
                )
        except httpx.RequestError as e:
            raise TransientProviderError(
                "Network error fetching Google profile", error_code="network_error"
            ) from e

        if not response.is_success:
            logger.error("Failed to get Google user info", status_code=response.status_code)
            raise GoogleOAuthError("Failed to get user info", error_code="user_info_failed")

        try:
            return GoogleUserInfo(**response.json())
        except ValueError as e:
            raise GoogleOAuthError(
                "Invalid user info response", error_code="user_info_failed"
            ) from e

    def _error_code(self, response: httpx.Response) -> str:
        try:
            return response.json().get("error", "unknown_error")
        except ValueError:
            return f"http_{response.status_code}"

    def _parse_grant(self, response: httpx.Response, operation: str) -> TokenGrant:
        try:
            grant = TokenGrant(response.json())
        except (ValueError, AttributeError) as e:
            logger.error(f"Failed to parse Google {operation} response", error=str(e))
            raise GoogleOAuthError(f"Failed to parse Google response: {e}") from e

        if not grant.is_valid():
            logger.error(f"Invalid token response from Google {operation}")
            raise GoogleOAuthError("Invalid token response from Google")

        logger.info(
            f"Google {operation} successful",
            expires_in=grant.expires_in,
            has_refresh_token=bool(grant.refresh_token),
            has_calendar_access=grant.has_calendar_access(),
        )
        return grant


google_oauth_service = GoogleOAuthService()
