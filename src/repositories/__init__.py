"""Bookmark repository implementations and backend selection."""
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import Settings
from repositories.base import BookmarkRepository
from repositories.document import RedisBookmarkRepository
from repositories.memory import InMemoryBookmarkRepository
from repositories.sql import SqlBookmarkRepository


def build_repository(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    redis_client: Redis | None = None,
) -> BookmarkRepository:
    """
    Build the repository selected by settings.storage_backend.

    Connection handles are owned by the caller; this only wires them in.

    Raises:
        ValueError: If the selected backend's handle was not supplied.
    """
    if settings.storage_backend == "sql":
        if session_factory is None:
            raise ValueError("sql storage backend requires a session factory")
        return SqlBookmarkRepository(session_factory)
    if settings.storage_backend == "redis":
        if redis_client is None:
            raise ValueError("redis storage backend requires a Redis client")
        return RedisBookmarkRepository(redis_client, key_prefix=settings.redis_key_prefix)
    return InMemoryBookmarkRepository()


__all__ = [
    "BookmarkRepository",
    "InMemoryBookmarkRepository",
    "RedisBookmarkRepository",
    "SqlBookmarkRepository",
    "build_repository",
]
