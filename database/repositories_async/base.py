"""Shared plumbing for the asyncpg repositories

The pool is owned by database.db_postgres.Database and handed in; a repository
never opens connections of its own.

Single-row lookups return None when nothing matches and list reads return [].
Reads that must see one consistent snapshot (propositions plus their
alignments) and every write go through transaction().
"""

from contextlib import asynccontextmanager
from typing import Any, List, Optional

import asyncpg


class BaseRepository:
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def _fetchrow(self, query: str, *args: Any) -> Optional[asyncpg.Record]:
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def _fetch(self, query: str, *args: Any) -> List[asyncpg.Record]:
        async with self.pool.acquire() as conn:
            return await conn.fetch(query, *args)

    @asynccontextmanager
    async def transaction(self, isolation: Optional[str] = None, readonly: bool = False):
        """Yield a connection inside a transaction; commit on exit, roll back on error

        isolation is an asyncpg level name ("repeatable_read", "serializable");
        None keeps the server default (READ COMMITTED).
        """
        async with self.pool.acquire() as conn:
            async with conn.transaction(isolation=isolation, readonly=readonly):
                yield conn
