"""
Matchday Sync — PostgreSQL Pool
────────────────────────────────
Shared asyncpg pool for the freshness store and the entity repository.
asyncpg uses positional placeholders: $1, $2, ...
"""

import logging

import asyncpg

from matchday_sync.errors import PersistenceError

log = logging.getLogger("md.db")


async def open_pool(dsn: str, min_size: int = 1, max_size: int = 5) -> asyncpg.Pool:
    try:
        pool = await asyncpg.create_pool(
            dsn=dsn,
            min_size=min_size,
            max_size=max_size,
            command_timeout=30,
        )
    except (asyncpg.PostgresError, OSError) as e:
        raise PersistenceError(f"failed to open database pool: {e}") from e
    log.info("PostgreSQL pool open")
    return pool
