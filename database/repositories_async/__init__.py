"""Async PostgreSQL repositories using asyncpg connection pooling"""

from database.repositories_async.base import BaseRepository
from database.repositories_async.common_ground import CommonGroundRepository

__all__ = [
    "BaseRepository",
    "CommonGroundRepository",
]
