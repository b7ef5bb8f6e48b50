"""asyncpg pool for the Postgres report repository."""

import logging

import asyncpg

import config

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None


async def init_db(database_url: str | None = None) -> asyncpg.Pool:
    """Create the pool once at startup. Reuses an existing pool."""
    global _pool
    if _pool is not None:
        return _pool
    database_url = database_url or config.DATABASE_URL
    if not database_url:
        raise RuntimeError("DATABASE_URL is not set; cannot use the Postgres report repository")
    _pool = await asyncpg.create_pool(
        database_url,
        min_size=config.DB_POOL_MIN_SIZE,
        max_size=config.DB_POOL_MAX_SIZE,
    )
    logger.info("Postgres pool ready (%d-%d connections)", config.DB_POOL_MIN_SIZE, config.DB_POOL_MAX_SIZE)
    return _pool


async def close_db() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_db() first.")
    return _pool


async def ping() -> bool:
    """True when the pool can run a trivial query. Used by /health."""
    if _pool is None:
        return False
    try:
        return await _pool.fetchval("SELECT 1") == 1
    except (asyncpg.PostgresError, OSError) as exc:
        logger.warning("Database ping failed: %s", exc)
        return False
