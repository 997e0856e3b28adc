"""
verify.py
---------
Purpose:
    Supabase session verification for protected routes.

Notes:
    - Asymmetric tokens (ES256/RS256) are checked against the project's JWKS.
    - HS256 tokens are accepted when SUPABASE_JWT_SECRET is configured.
    - The bearer header wins; the sb-access-token cookie covers browser
      redirects such as the OAuth callback.
"""

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from avara.config import settings
from avara.errors import Unauthenticated
from avara.infrastructure.observability.logging import get_logger
from avara.models.domain.user_domain import AuthenticatedUser

logger = get_logger(__name__)

SUPABASE_AUDIENCE = "authenticated"
SESSION_COOKIE_NAME = "sb-access-token"

_security = HTTPBearer(auto_error=False)
_jwk_client: PyJWKClient | None = None


def _get_jwk_client() -> PyJWKClient:
    global _jwk_client
    if _jwk_client is None:
        jwks_url = settings.jwks_url()
        if not jwks_url:
            raise Unauthenticated("Authentication is not configured", error_code="config_error")
        _jwk_client = PyJWKClient(jwks_url)
    return _jwk_client


def verify_jwt(token: str) -> dict:
    """Decode and verify a Supabase access token. Raises Unauthenticated."""
    try:
        algorithm = jwt.get_unverified_header(token).get("alg")
        if algorithm == "HS256" and settings.SUPABASE_JWT_SECRET:
            key = settings.SUPABASE_JWT_SECRET
        else:
            key = _get_jwk_client().get_signing_key_from_jwt(token).key

        return jwt.decode(
            token,
            key,
            algorithms=["ES256", "RS256", "HS256"],
            audience=SUPABASE_AUDIENCE,
            options={"verify_exp": True},
        )
    except jwt.PyJWTError as e:
        raise Unauthenticated(f"Invalid authentication token: {e}", error_code="invalid_token") from e


class AuthContext:
    """Verified claims of the current request, or none."""

    def __init__(self, claims: dict | None = None):
        self.claims = claims or {}

    def current_user(self) -> AuthenticatedUser:
        user_id = self.claims.get("sub")
        if not user_id:
            raise Unauthenticated("User not authenticated", error_code="unauthenticated")
        return AuthenticatedUser(
            id=user_id,
            email=self.claims.get("email"),
            role=self.claims.get("role"),
        )


def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
) -> AuthContext:
    token = credentials.credentials if credentials else request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return AuthContext()

    try:
        return AuthContext(verify_jwt(token))
    except Unauthenticated as e:
        logger.warning("Rejected session token", error=e.message)
        return AuthContext()


def current_user(auth: AuthContext = Depends(get_auth_context)) -> AuthenticatedUser:
    try:
        return auth.current_user()
    except Unauthenticated as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
