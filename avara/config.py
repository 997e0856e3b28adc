from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False

    # Supabase settings
    SUPABASE_URL: str | None = None
    SUPABASE_JWKS_URL: str | None = None
    SUPABASE_SERVICE_ROLE_KEY: str | None = None
    SUPABASE_DB_URL: str | None = None
    SUPABASE_JWT_SECRET: str | None = None

    # Google Calendar OAuth settings
    GOOGLE_CLIENT_ID: str | None = None
    GOOGLE_CLIENT_SECRET: str | None = None
    GOOGLE_REDIRECT_URI: str | None = None

    # Public web app origin, used for OAuth redirects back into the UI
    NEXT_PUBLIC_APP_URL: str = "http://localhost:3000"

    # Key for signing the OAuth state cookie (falls back to GOOGLE_CLIENT_SECRET)
    OAUTH_STATE_SECRET: str | None = None

    # =================================================================
    # CALENDAR SYNC SETTINGS
    # =================================================================
    TOKEN_REFRESH_MARGIN_SECONDS: int = 60
    SYNC_WINDOW_DAYS: int = 90
    STALE_FEED_MINUTES: int = 30
    PROVIDER_REQUEST_TIMEOUT: float = 10.0
    REMOTE_FUNCTION_TIMEOUT: float = 60.0

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # derive sensible defaults if not provided
    def jwks_url(self) -> str | None:
        if self.SUPABASE_JWKS_URL:
            return self.SUPABASE_JWKS_URL
        if not self.SUPABASE_URL:
            return None
        base = self.SUPABASE_URL.rstrip("/")
        return f"{base}/auth/v1/.well-known/jwks.json"

    def app_base_url(self) -> str:
        return self.NEXT_PUBLIC_APP_URL.rstrip("/")

    def google_redirect_uri(self) -> str:
        """Get Google OAuth redirect URI with fallback to the app's callback route."""
        if self.GOOGLE_REDIRECT_URI:
            return self.GOOGLE_REDIRECT_URI
        return f"{self.app_base_url()}/api/auth/google/callback"

    def functions_base_url(self) -> str | None:
        """Base URL of the hosted edge functions, e.g. https://<ref>.supabase.co/functions/v1"""
        if not self.SUPABASE_URL:
            return None
        return f"{self.SUPABASE_URL.rstrip('/')}/functions/v1"

    def oauth_state_secret(self) -> str | None:
        return self.OAUTH_STATE_SECRET or self.GOOGLE_CLIENT_SECRET

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update({"min_size": 1, "max_size": 5, "timeout": 15.0})

        return config


settings = Settings()
