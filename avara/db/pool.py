"""
Async Postgres pool for the calendar tables.

One pool per process: the API opens it in the FastAPI lifespan, the worker
around a single job run.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from avara.config import settings
from avara.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

POOL_CLOSE_TIMEOUT_SECONDS = 30.0


async def _configure_connection(conn: psycopg.AsyncConnection) -> None:
    conn.row_factory = dict_row
    # autocommit unless a helper opens an explicit transaction
    await conn.set_autocommit(True)
    await conn.execute(
        sql.SQL("SET application_name = {}").format(sql.Literal(f"avara-{settings.environment}"))
    )
    await conn.execute("SET timezone = 'UTC'")
    await conn.execute("SET statement_timeout = '60s'")


class DatabasePool:
    """Owns the process-wide AsyncConnectionPool used by avara.db.helpers."""

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None

    async def initialize(self) -> None:
        if self.pool is not None:
            logger.warning("Database pool already initialized")
            return
        if not settings.SUPABASE_DB_URL:
            raise RuntimeError("SUPABASE_DB_URL not configured")

        config = settings.get_db_pool_config()
        pool = AsyncConnectionPool(
            conninfo=settings.SUPABASE_DB_URL,
            open=False,
            check=AsyncConnectionPool.check_connection,
            configure=_configure_connection,
            **config,
        )
        try:
            await pool.open(wait=True)
        except Exception as e:
            logger.error("Failed to open database pool", error=str(e))
            await pool.close()
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        self.pool = pool
        logger.info(
            "Database pool ready",
            min_size=config["min_size"],
            max_size=config["max_size"],
            timeout=config["timeout"],
        )

    async def close(self) -> None:
        if self.pool is None:
            return

        pool, self.pool = self.pool, None
        try:
            await asyncio.wait_for(pool.close(), timeout=POOL_CLOSE_TIMEOUT_SECONDS)
            logger.info("Database pool closed")
        except TimeoutError:
            logger.warning("Database pool close timed out")

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        if self.pool is None:
            raise RuntimeError("Database pool not initialized. Call initialize() first.")
        async with self.pool.connection() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Connection inside a transaction: commit on success, rollback on error."""
        async with self.connection() as conn:
            async with conn.transaction():
                yield conn

    async def health_check(self) -> dict[str, Any]:
        if self.pool is None:
            return {"healthy": False, "error": "Pool not initialized"}

        started = time.time()
        try:
            async with self.connection() as conn:
                await conn.execute("SELECT 1")
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"healthy": False, "error": str(e), "error_type": type(e).__name__}

        stats = self.pool.get_stats()
        return {
            "healthy": True,
            "connection_time_ms": round((time.time() - started) * 1000, 2),
            "pool_stats": {
                "pool_size": stats.get("pool_size", 0),
                "pool_available": stats.get("pool_available", 0),
                "requests_waiting": stats.get("requests_waiting", 0),
            },
        }


db_pool = DatabasePool()


async def db_health_check() -> dict[str, Any]:
    return await db_pool.health_check()
