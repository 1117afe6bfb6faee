"""In-memory bookmark repository backed by a lock-guarded dict."""
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from repositories.base import prepare_for_create, prepare_for_update, sort_newest_first
from schemas.bookmark import Bookmark, BookmarkQuery
from services.exceptions import NotFoundError, StorageError

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """
    Reader/writer lock: many concurrent readers, or exactly one writer.

    Writer-preferring - once a writer is waiting, new readers block until it has
    run, so a steady stream of reads cannot starve writes.

    Thread-based rather than asyncio-based, so the guarded data is safe across
    threads as well as tasks. Callers must never await while holding it.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer_active = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        """Hold a shared read lock for the duration of the block."""
        with self._condition:
            while self._writer_active or self._writers_waiting:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        """Hold an exclusive write lock for the duration of the block."""
        with self._condition:
            self._writers_waiting += 1
            try:
                while self._writer_active or self._readers:
                    self._condition.wait()
            finally:
                self._writers_waiting -= 1
            self._writer_active = True
        try:
            yield
        finally:
            with self._condition:
                self._writer_active = False
                self._condition.notify_all()


class GuardedStore:
    """
    Mapping of bookmark id to bookmark, guarded by a single ReadWriteLock.

    Values are copied on the way in and on the way out so no caller ever holds a
    reference to shared state.
    """

    def __init__(self) -> None:
        self._items: dict[str, Bookmark] = {}
        self._lock = ReadWriteLock()

    def insert(self, bookmark: Bookmark) -> Bookmark:
        """Add a bookmark whose id must not already be present."""
        with self._lock.write_locked():
            if bookmark.id in self._items:
                raise StorageError(f"bookmark with ID {bookmark.id} already exists")
            self._items[bookmark.id] = bookmark.model_copy()
        return bookmark

    def get(self, bookmark_id: str) -> Bookmark:
        """Return a copy of the bookmark with the given id."""
        with self._lock.read_locked():
            stored = self._items.get(bookmark_id)
            if stored is None:
                raise NotFoundError(f"bookmark with ID {bookmark_id} not found")
            return stored.model_copy()

    def replace(self, bookmark: Bookmark) -> Bookmark:
        """Overwrite an existing bookmark, preserving its identity fields."""
        with self._lock.write_locked():
            existing = self._items.get(bookmark.id)
            if existing is None:
                raise NotFoundError(f"bookmark with ID {bookmark.id} not found")
            updated = prepare_for_update(bookmark, existing)
            self._items[bookmark.id] = updated.model_copy()
        return updated

    def remove(self, bookmark_id: str) -> None:
        """Delete the bookmark with the given id."""
        with self._lock.write_locked():
            if self._items.pop(bookmark_id, None) is None:
                raise NotFoundError(f"bookmark with ID {bookmark_id} not found")

    def select(self, user_id: str, archived: bool) -> list[Bookmark]:
        """Snapshot of copies matching user and archive state, in arbitrary order."""
        with self._lock.read_locked():
            return [
                b.model_copy()
                for b in self._items.values()
                if b.user_id == user_id and b.is_archived == archived
            ]

    def count(self, user_id: str, archived: bool) -> int:
        """Number of bookmarks matching user and archive state."""
        with self._lock.read_locked():
            return sum(
                1
                for b in self._items.values()
                if b.user_id == user_id and b.is_archived == archived
            )


class InMemoryBookmarkRepository:
    """Bookmark repository that keeps everything in process memory."""

    def __init__(self) -> None:
        self._store = GuardedStore()

    async def create(self, bookmark: Bookmark) -> Bookmark:
        """Assign id/timestamps and store the bookmark."""
        stored = self._store.insert(prepare_for_create(bookmark))
        logger.debug("Created bookmark in memory: %s", stored.id)
        return stored

    async def get(self, bookmark_id: str) -> Bookmark:
        """Return the bookmark or raise NotFoundError."""
        logger.debug("Getting bookmark from memory: %s", bookmark_id)
        return self._store.get(bookmark_id)

    async def count(self, query: BookmarkQuery) -> int:
        """Count bookmarks for the user/archive filter, ignoring pagination."""
        return self._store.count(query.user_id, query.archived)

    async def update(self, bookmark: Bookmark) -> Bookmark:
        """Replace the stored bookmark; created_at and user_id are kept."""
        updated = self._store.replace(bookmark)
        logger.debug("Updated bookmark in memory: %s", updated.id)
        return updated

    async def delete(self, bookmark_id: str) -> None:
        """Remove the bookmark or raise NotFoundError."""
        self._store.remove(bookmark_id)
        logger.debug("Deleted bookmark from memory: %s", bookmark_id)

    async def list(self, query: BookmarkQuery) -> list[Bookmark]:
        """Filter, sort newest first, then slice the requested page."""
        bookmarks = sort_newest_first(self._store.select(query.user_id, query.archived))
        if query.is_paginated:
            return bookmarks[query.offset:query.offset + query.page_size]
        return bookmarks
