"""
OAuth state for CSRF protection of the Google consent flow.

The state is carried in the google_oauth_state cookie and echoed back by
Google as the state query parameter. It is signed with HMAC-SHA256 and bound
to the initiating user, so no server-side storage is needed.
"""

import hashlib
import hmac
import secrets
import time

from avara.config import settings
from avara.errors import ConfigurationError
from avara.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

STATE_COOKIE_NAME = "google_oauth_state"
STATE_TTL_SECONDS = 600  # 10 minutes
STATE_NONCE_BYTES = 24


class OAuthStateError(Exception):
    """State missing, mismatched, tampered with or expired."""


class OAuthStateService:
    def __init__(self, secret: str | None = None, ttl_seconds: int = STATE_TTL_SECONDS):
        self._secret = secret
        self.ttl_seconds = ttl_seconds

    def _secret_bytes(self) -> bytes:
        secret = self._secret or settings.oauth_state_secret()
        if not secret:
            raise ConfigurationError("OAuth state secret not configured", error_code="config_error")
        return secret.encode("utf-8")

    def _sign(self, user_id: str, nonce: str, issued_at: int) -> str:
        payload = f"{user_id}:{nonce}:{issued_at}".encode()
        return hmac.new(self._secret_bytes(), payload, hashlib.sha256).hexdigest()

    def generate_state(self, user_id: str, now: float | None = None) -> str:
        """Return "<nonce>.<issued_at>.<signature>" bound to user_id."""
        nonce = secrets.token_urlsafe(STATE_NONCE_BYTES)
        issued_at = int(now if now is not None else time.time())
        state = f"{nonce}.{issued_at}.{self._sign(user_id, nonce, issued_at)}"

        logger.info("OAuth state generated", user_id=user_id, ttl_seconds=self.ttl_seconds)
        return state

    def validate_state(
        self,
        state: str | None,
        cookie_state: str | None,
        user_id: str,
        now: float | None = None,
    ) -> None:
        """
        Check the callback state against the cookie and its signature.

        Raises:
            OAuthStateError: on any mismatch or once the state has expired
        """
        if not state or not cookie_state:
            raise OAuthStateError("Missing OAuth state")
        if not hmac.compare_digest(state, cookie_state):
            raise OAuthStateError("OAuth state does not match cookie")

        try:
            nonce, issued_raw, signature = state.split(".")
            issued_at = int(issued_raw)
        except ValueError:
            raise OAuthStateError("Malformed OAuth state") from None

        if not hmac.compare_digest(signature, self._sign(user_id, nonce, issued_at)):
            logger.warning("OAuth state signature mismatch", user_id=user_id)
            raise OAuthStateError("OAuth state signature mismatch")

        current = now if now is not None else time.time()
        if current - issued_at > self.ttl_seconds:
            raise OAuthStateError("OAuth state expired")

        logger.info("OAuth state validated", user_id=user_id)


oauth_state_service = OAuthStateService()
