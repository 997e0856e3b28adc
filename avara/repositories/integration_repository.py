"""
Token store: persisted OAuth credentials in oauth_calendar_integrations.
"""

from datetime import datetime

from avara.db.helpers import execute_query, fetch_one, with_db_retry
from avara.infrastructure.observability.logging import get_logger
from avara.models.domain.oauth_domain import GoogleUserInfo, OAuthIntegration, TokenGrant

logger = get_logger(__name__)

_INTEGRATION_COLUMNS = """
    id::text AS id, user_id::text AS user_id, provider, access_token, refresh_token,
    expires_at, provider_user_id, calendar_ids, scopes, created_at, updated_at
"""


def _to_integration(row: dict) -> OAuthIntegration:
    return OAuthIntegration(
        **{
            **row,
            "calendar_ids": row.get("calendar_ids") or [],
            "scopes": row.get("scopes") or [],
        }
    )


class IntegrationRepository:
    """CRUD for oauth_calendar_integrations, unique on (user_id, provider)."""

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_integration(
        self, user_id: str, provider: str = "google"
    ) -> OAuthIntegration | None:
        row = await fetch_one(
            f"SELECT {_INTEGRATION_COLUMNS} FROM oauth_calendar_integrations "
            "WHERE user_id = %s AND provider = %s",
            (user_id, provider),
        )
        return _to_integration(row) if row else None

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def upsert_integration(
        self,
        user_id: str,
        grant: TokenGrant,
        profile: GoogleUserInfo,
        calendar_ids: list[str],
        provider: str = "google",
    ) -> OAuthIntegration:
        # Google omits refresh_token on re-consent; keep the stored one then
        row = await fetch_one(
            f"""
            INSERT INTO oauth_calendar_integrations (
                user_id, provider, provider_user_id, access_token, refresh_token,
                calendar_ids, scopes, expires_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, NOW())
            ON CONFLICT (user_id, provider)
            DO UPDATE SET
                provider_user_id = EXCLUDED.provider_user_id,
                access_token = EXCLUDED.access_token,
                refresh_token = COALESCE(
                    EXCLUDED.refresh_token, oauth_calendar_integrations.refresh_token
                ),
                calendar_ids = EXCLUDED.calendar_ids,
                scopes = EXCLUDED.scopes,
                expires_at = EXCLUDED.expires_at,
                updated_at = NOW()
            RETURNING {_INTEGRATION_COLUMNS}
            """,
            (
                user_id,
                provider,
                profile.id,
                grant.access_token,
                grant.refresh_token,
                calendar_ids,
                grant.scopes(),
                grant.expires_at,
            ),
        )

        logger.info(
            "OAuth integration stored",
            user_id=user_id,
            provider=provider,
            has_refresh_token=bool(grant.refresh_token),
            calendar_count=len(calendar_ids),
        )
        return _to_integration(row)

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def update_access_token(
        self, integration_id: str, access_token: str, expires_at: datetime
    ) -> bool:
        affected = await execute_query(
            """
            UPDATE oauth_calendar_integrations
            SET access_token = %s, expires_at = %s, updated_at = NOW()
            WHERE id = %s
            """,
            (access_token, expires_at, integration_id),
        )
        return affected > 0

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def update_calendar_ids(self, integration_id: str, calendar_ids: list[str]) -> bool:
        affected = await execute_query(
            """
            UPDATE oauth_calendar_integrations
            SET calendar_ids = %s, updated_at = NOW()
            WHERE id = %s
            """,
            (calendar_ids, integration_id),
        )
        return affected > 0

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def delete_integration(self, user_id: str, provider: str = "google") -> bool:
        affected = await execute_query(
            "DELETE FROM oauth_calendar_integrations WHERE user_id = %s AND provider = %s",
            (user_id, provider),
        )
        logger.info("OAuth integration deleted", user_id=user_id, provider=provider, deleted=affected)
        return affected > 0


integration_repository = IntegrationRepository()
