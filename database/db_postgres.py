"""PostgreSQL access for the deliberation engine

Database owns the asyncpg pool. The common ground repository shares it and
implements the store protocol the engine reads through.

jsonb columns round-trip as Python objects via a per-connection codec, so
analysis results are passed to queries as plain dicts.
"""

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

import asyncpg

from config import config, get_logger
from database.repositories_async import CommonGroundRepository
from exceptions import DatabaseConnectionError

logger = get_logger(__name__).bind(component="database")

SCHEMA_PATH = Path(__file__).parent / "schema_postgres.sql"


def _encode_jsonb(value) -> str:
    def default(o):
        if is_dataclass(o):
            return asdict(o)
        if isinstance(o, Enum):
            return o.value
        if isinstance(o, datetime):
            return o.isoformat()
        raise TypeError(f"{type(o).__name__} is not JSON serializable")

    return json.dumps(value, default=default)


async def _init_connection(conn: asyncpg.Connection) -> None:
    await conn.set_type_codec(
        "jsonb",
        encoder=_encode_jsonb,
        decoder=json.loads,
        schema="pg_catalog",
    )


class Database:
    """Pool plus repositories

    Usage:
        db = await Database.create()
        topic = await db.common_ground.get_topic_data("topic-1")
        await db.close()
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool
        self.common_ground = CommonGroundRepository(pool)

    @classmethod
    async def create(
        cls,
        dsn: Optional[str] = None,
        min_size: int = config.POSTGRES_POOL_MIN_SIZE,
        max_size: int = config.POSTGRES_POOL_MAX_SIZE,
    ) -> "Database":
        """Open the pool

        Raises:
            DatabaseConnectionError: PostgreSQL unreachable or refused the login
        """
        try:
            pool = await asyncpg.create_pool(
                dsn or config.get_postgres_dsn(),
                min_size=min_size,
                max_size=max_size,
                command_timeout=60,
                init=_init_connection,
            )
        except (asyncpg.PostgresError, OSError, ConnectionError) as e:
            # Only connection failures are wrapped; programming errors surface as-is
            logger.error("failed to create connection pool", error=str(e), error_type=type(e).__name__)
            raise DatabaseConnectionError(f"Failed to connect to PostgreSQL: {e}") from e

        logger.info("connection pool created", min_size=min_size, max_size=max_size)
        return cls(pool)

    async def close(self) -> None:
        await self.pool.close()
        logger.info("connection pool closed")

    async def init_schema(self) -> None:
        """Apply schema_postgres.sql (idempotent)"""
        async with self.pool.acquire() as conn:
            await conn.execute(SCHEMA_PATH.read_text())
        logger.info("schema initialized", path=str(SCHEMA_PATH))
