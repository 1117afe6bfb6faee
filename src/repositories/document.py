"""
Document-store bookmark repository on Redis.

Layout:
- `{prefix}:bookmark:{id}` holds the bookmark as a JSON document.
- `{prefix}:user:{user_id}:archived:{0|1}` is a sorted set of bookmark ids scored by
  created_at (epoch seconds), one per user/archive state.

Sorted-set ordering gives newest-first listing directly (ZREVRANGE breaks score ties
by member descending, which matches the id tiebreaker used by the other backends).
Mutations run in WATCH/MULTI/EXEC transactions so a document and its index entry
never drift apart.
"""
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from repositories.base import prepare_for_create, prepare_for_update
from schemas.bookmark import Bookmark, BookmarkQuery
from services.exceptions import NotFoundError, StorageError

logger = logging.getLogger(__name__)

# Optimistic transactions retried this many times before giving up
MAX_WATCH_RETRIES = 5


class RedisBookmarkRepository:
    """Bookmark repository storing JSON documents in Redis."""

    def __init__(self, client: Redis, key_prefix: str = "athena") -> None:
        self._redis = client
        self._prefix = key_prefix

    def _document_key(self, bookmark_id: str) -> str:
        return f"{self._prefix}:bookmark:{bookmark_id}"

    def _index_key(self, user_id: str, archived: bool) -> str:
        return f"{self._prefix}:user:{user_id}:archived:{int(archived)}"

    async def create(self, bookmark: Bookmark) -> Bookmark:
        """Store the document and add it to its user/archive index."""
        prepared = prepare_for_create(bookmark)
        document_key = self._document_key(prepared.id)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                await pipe.watch(document_key)
                if await pipe.exists(document_key):
                    raise StorageError(f"bookmark with ID {prepared.id} already exists")
                pipe.multi()
                pipe.set(document_key, prepared.model_dump_json())
                pipe.zadd(
                    self._index_key(prepared.user_id, prepared.is_archived),
                    {prepared.id: prepared.created_at.timestamp()},
                )
                await pipe.execute()
        except WatchError as e:
            # Another writer touched the same id between WATCH and EXEC
            raise StorageError(f"bookmark with ID {prepared.id} already exists") from e
        except RedisError as e:
            logger.error(
                "Failed to create bookmark %s in Redis for user %s: %s",
                prepared.id, prepared.user_id, e,
            )
            raise StorageError(f"failed to create bookmark: {e}") from e

        logger.debug("Created bookmark in Redis: %s", prepared.id)
        return prepared

    async def get(self, bookmark_id: str) -> Bookmark:
        """Load and parse the JSON document."""
        logger.debug("Getting bookmark from Redis: %s", bookmark_id)
        try:
            raw = await self._redis.get(self._document_key(bookmark_id))
        except RedisError as e:
            logger.error("Failed to get bookmark %s from Redis: %s", bookmark_id, e)
            raise StorageError(f"failed to get bookmark: {e}") from e

        if raw is None:
            raise NotFoundError(f"bookmark with ID {bookmark_id} not found")
        return Bookmark.model_validate_json(raw)

    async def count(self, query: BookmarkQuery) -> int:
        """ZCARD of the user/archive index."""
        try:
            total = await self._redis.zcard(self._index_key(query.user_id, query.archived))
        except RedisError as e:
            logger.error(
                "Failed to count bookmarks for user %s (archived=%s): %s",
                query.user_id, query.archived, e,
            )
            raise StorageError(f"failed to count bookmarks: {e}") from e

        logger.debug("Counted %d bookmarks for user %s", total, query.user_id)
        return total

    async def update(self, bookmark: Bookmark) -> Bookmark:
        """
        Rewrite the document, moving its index entry if the archive state changed.

        Concurrent updates to the same id are retried, so every caller observes
        success and the last EXEC wins.
        """
        document_key = self._document_key(bookmark.id)
        try:
            for _ in range(MAX_WATCH_RETRIES):
                try:
                    async with self._redis.pipeline(transaction=True) as pipe:
                        await pipe.watch(document_key)
                        raw = await pipe.get(document_key)
                        if raw is None:
                            raise NotFoundError(f"bookmark with ID {bookmark.id} not found")
                        existing = Bookmark.model_validate_json(raw)
                        updated = prepare_for_update(bookmark, existing)

                        pipe.multi()
                        pipe.set(document_key, updated.model_dump_json())
                        if existing.is_archived != updated.is_archived:
                            pipe.zrem(
                                self._index_key(existing.user_id, existing.is_archived),
                                updated.id,
                            )
                        pipe.zadd(
                            self._index_key(updated.user_id, updated.is_archived),
                            {updated.id: updated.created_at.timestamp()},
                        )
                        await pipe.execute()
                except WatchError:
                    logger.debug("Retrying contended update of bookmark %s", bookmark.id)
                    continue
                logger.debug("Updated bookmark in Redis: %s", updated.id)
                return updated
        except RedisError as e:
            logger.error("Failed to update bookmark %s in Redis: %s", bookmark.id, e)
            raise StorageError(f"failed to update bookmark: {e}") from e

        raise StorageError(
            f"failed to update bookmark: too much contention on ID {bookmark.id}",
        )

    async def delete(self, bookmark_id: str) -> None:
        """Remove the document and its index entry."""
        document_key = self._document_key(bookmark_id)
        try:
            for _ in range(MAX_WATCH_RETRIES):
                try:
                    async with self._redis.pipeline(transaction=True) as pipe:
                        await pipe.watch(document_key)
                        raw = await pipe.get(document_key)
                        if raw is None:
                            raise NotFoundError(f"bookmark with ID {bookmark_id} not found")
                        existing = Bookmark.model_validate_json(raw)

                        pipe.multi()
                        pipe.delete(document_key)
                        pipe.zrem(
                            self._index_key(existing.user_id, existing.is_archived),
                            bookmark_id,
                        )
                        await pipe.execute()
                except WatchError:
                    logger.debug("Retrying contended delete of bookmark %s", bookmark_id)
                    continue
                logger.debug("Deleted bookmark from Redis: %s", bookmark_id)
                return
        except RedisError as e:
            logger.error("Failed to delete bookmark %s from Redis: %s", bookmark_id, e)
            raise StorageError(f"failed to delete bookmark: {e}") from e

        raise StorageError(
            f"failed to delete bookmark: too much contention on ID {bookmark_id}",
        )

    async def list(self, query: BookmarkQuery) -> list[Bookmark]:
        """ZREVRANGE over the index window, then MGET the documents."""
        if query.is_beyond_storage:
            return []
        start, stop = 0, -1
        if query.is_paginated:
            start = query.offset
            stop = query.offset + query.limit - 1

        try:
            ids = await self._redis.zrevrange(
                self._index_key(query.user_id, query.archived), start, stop,
            )
            raw_documents = []
            if ids:
                raw_documents = await self._redis.mget([self._document_key(i) for i in ids])
        except RedisError as e:
            logger.error(
                "Failed to list bookmarks for user %s (archived=%s, page=%d, page_size=%d): %s",
                query.user_id, query.archived, query.page, query.page_size, e,
            )
            raise StorageError(f"failed to list bookmarks: {e}") from e

        # A document deleted between ZREVRANGE and MGET comes back as None
        bookmarks = [
            Bookmark.model_validate_json(raw) for raw in raw_documents if raw is not None
        ]
        logger.debug(
            "Listed %d bookmarks for user %s (page=%d, page_size=%d)",
            len(bookmarks), query.user_id, query.page, query.page_size,
        )
        return bookmarks
