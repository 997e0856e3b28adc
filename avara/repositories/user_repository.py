"""
User and event queries backing the featured-teacher job.
"""

from datetime import datetime

from avara.db.helpers import execute_query, fetch_all, fetch_one, fetch_val, with_db_retry
from avara.models.domain.user_domain import FeaturedCandidate, PublicEvent


class UserRepository:
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def clear_featured_flags(self) -> int:
        return await execute_query(
            "UPDATE users SET is_featured = false WHERE id IS NOT NULL AND is_featured IS DISTINCT FROM false"
        )

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def list_featured_candidates(self) -> list[FeaturedCandidate]:
        rows = await fetch_all(
            """
            SELECT id::text AS id, name, public_url
            FROM users
            WHERE public_url IS NOT NULL AND name IS NOT NULL
            """
        )
        return [FeaturedCandidate(**row) for row in rows]

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def count_upcoming_public_events(self, user_id: str, now: datetime) -> int:
        count = await fetch_val(
            """
            SELECT COUNT(*) FROM events
            WHERE user_id = %s AND visibility = 'public' AND start_time >= %s
            """,
            (user_id, now),
        )
        return int(count or 0)

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def set_featured(self, user_id: str) -> bool:
        affected = await execute_query(
            "UPDATE users SET is_featured = true WHERE id = %s", (user_id,)
        )
        return affected > 0

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_user_name(self, user_id: str) -> str | None:
        return await fetch_val("SELECT name FROM users WHERE id = %s", (user_id,))

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_featured_user(self) -> dict | None:
        return await fetch_one(
            """
            SELECT id::text AS id, name, public_url, bio, profile_image_url, yoga_styles
            FROM users
            WHERE is_featured = true AND name IS NOT NULL AND public_url IS NOT NULL
            LIMIT 1
            """
        )

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def list_upcoming_public_events(
        self, user_id: str, now: datetime, limit: int
    ) -> list[PublicEvent]:
        rows = await fetch_all(
            """
            SELECT id::text AS id, title, start_time, end_time, location
            FROM events
            WHERE user_id = %s AND visibility = 'public' AND start_time >= %s
            ORDER BY start_time ASC
            LIMIT %s
            """,
            (user_id, now, limit),
        )
        return [PublicEvent(**row) for row in rows]


user_repository = UserRepository()
