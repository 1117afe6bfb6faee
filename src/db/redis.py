"""Redis client construction for the document storage backend."""
from redis.asyncio import Redis

from core.config import Settings


def create_redis_client(settings: Settings) -> Redis:
    """Create a Redis client that returns decoded strings."""
    return Redis.from_url(settings.redis_url, decode_responses=True)
