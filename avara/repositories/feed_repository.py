"""
Persistence for calendar_feeds.

Every query that touches a single feed on behalf of a user is scoped by
user_id, so a foreign feed looks exactly like a missing one.
"""

from datetime import datetime

from avara.db.helpers import execute_query, execute_transaction, fetch_all, fetch_one, with_db_retry
from avara.models.domain.calendar_domain import CalendarFeed, CalendarRef, SyncApproach

_FEED_COLUMNS = """
    id::text AS id, user_id::text AS user_id, feed_url, calendar_name,
    COALESCE(sync_approach, 'yoga_only') AS sync_approach, last_synced_at, created_at
"""


class FeedRepository:
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def insert_feed(
        self,
        user_id: str,
        feed_url: str | None,
        calendar_name: str | None,
        sync_approach: SyncApproach,
    ) -> CalendarFeed:
        row = await fetch_one(
            f"""
            INSERT INTO calendar_feeds (user_id, feed_url, calendar_name, sync_approach)
            VALUES (%s, %s, %s, %s)
            RETURNING {_FEED_COLUMNS}
            """,
            (user_id, feed_url, calendar_name, sync_approach.value),
        )
        return CalendarFeed(**row)

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_feed(self, feed_id: str, user_id: str) -> CalendarFeed | None:
        row = await fetch_one(
            f"SELECT {_FEED_COLUMNS} FROM calendar_feeds WHERE id = %s AND user_id = %s",
            (feed_id, user_id),
        )
        return CalendarFeed(**row) if row else None

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def list_feeds(self, user_id: str) -> list[CalendarFeed]:
        rows = await fetch_all(
            f"SELECT {_FEED_COLUMNS} FROM calendar_feeds "
            "WHERE user_id = %s ORDER BY created_at DESC",
            (user_id,),
        )
        return [CalendarFeed(**row) for row in rows]

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def list_stale_feed_ids(self, synced_before: datetime) -> list[str]:
        rows = await fetch_all(
            """
            SELECT id::text AS id FROM calendar_feeds
            WHERE last_synced_at IS NULL OR last_synced_at < %s
            """,
            (synced_before,),
        )
        return [row["id"] for row in rows]

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_latest_feed_id(self, user_id: str) -> str | None:
        row = await fetch_one(
            """
            SELECT id::text AS id FROM calendar_feeds
            WHERE user_id = %s ORDER BY created_at DESC LIMIT 1
            """,
            (user_id,),
        )
        return row["id"] if row else None

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def list_oauth_calendar_refs(self, user_id: str, provider: str) -> list[CalendarRef]:
        rows = await fetch_all(
            """
            SELECT calendar_name FROM calendar_feeds
            WHERE user_id = %s AND feed_url IS NULL AND calendar_name LIKE %s
            """,
            (user_id, CalendarRef.name_prefix(provider) + "%"),
        )
        refs = (CalendarRef.from_calendar_name(row["calendar_name"]) for row in rows)
        return [ref for ref in refs if ref]

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def replace_oauth_feeds(
        self, user_id: str, provider: str, refs: list[CalendarRef]
    ) -> None:
        """Swap the user's provider-backed feeds for one feed per ref, atomically."""
        statements = [
            (
                """
                DELETE FROM calendar_feeds
                WHERE user_id = %s AND feed_url IS NULL AND calendar_name LIKE %s
                """,
                (user_id, CalendarRef.name_prefix(provider) + "%"),
            )
        ]
        statements.extend(
            (
                "INSERT INTO calendar_feeds (user_id, feed_url, calendar_name) VALUES (%s, NULL, %s)",
                (user_id, ref.to_calendar_name()),
            )
            for ref in refs
        )
        await execute_transaction(statements)

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def update_sync_approach(
        self, feed_id: str, user_id: str, approach: SyncApproach
    ) -> CalendarFeed | None:
        row = await fetch_one(
            f"""
            UPDATE calendar_feeds SET sync_approach = %s
            WHERE id = %s AND user_id = %s
            RETURNING {_FEED_COLUMNS}
            """,
            (approach.value, feed_id, user_id),
        )
        return CalendarFeed(**row) if row else None

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def mark_synced(self, feed_id: str, synced_at: datetime) -> bool:
        affected = await execute_query(
            "UPDATE calendar_feeds SET last_synced_at = %s WHERE id = %s",
            (synced_at, feed_id),
        )
        return affected > 0

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def delete_user_feeds(self, user_id: str) -> int:
        return await execute_query("DELETE FROM calendar_feeds WHERE user_id = %s", (user_id,))

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def delete_feed(self, feed_id: str, user_id: str) -> bool:
        affected = await execute_query(
            "DELETE FROM calendar_feeds WHERE id = %s AND user_id = %s",
            (feed_id, user_id),
        )
        return affected > 0


feed_repository = FeedRepository()
