"""
Bookmark repository contract shared by every storage backend.

Each backend (in-memory, relational, document store) implements the same six
operations with the same ordering, pagination, and error semantics, so the
service layer never needs to know which one it is talking to.
"""
from datetime import UTC, datetime
from typing import Protocol

from uuid6 import uuid7

from schemas.bookmark import Bookmark, BookmarkQuery


class BookmarkRepository(Protocol):
    """
    Capability interface for bookmark persistence.

    Contract:
    - create: assigns id if empty, created_at if None, refreshes updated_at.
    - get/update/delete: raise NotFoundError when the id does not exist.
    - list: exact match on user_id + archived, created_at descending (id descending
      as tiebreaker), pagination window when query.is_paginated; out-of-range pages
      return an empty list.
    - count: matches user_id + archived, ignores pagination.
    - update: preserves the stored created_at and user_id, refreshes updated_at.
    - backend I/O failures raise StorageError.
    """

    async def create(self, bookmark: Bookmark) -> Bookmark:
        """Persist a new bookmark and return the stored value."""
        ...

    async def get(self, bookmark_id: str) -> Bookmark:
        """Return the bookmark with the given id."""
        ...

    async def count(self, query: BookmarkQuery) -> int:
        """Return the number of bookmarks matching the query filter."""
        ...

    async def update(self, bookmark: Bookmark) -> Bookmark:
        """Replace a stored bookmark and return the stored value."""
        ...

    async def delete(self, bookmark_id: str) -> None:
        """Permanently remove a bookmark."""
        ...

    # Keep last: the name shadows builtin `list` for any class-scope annotation below it
    async def list(self, query: BookmarkQuery) -> list[Bookmark]:
        """Return bookmarks matching the query, newest first."""
        ...


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def new_bookmark_id() -> str:
    """Generate a time-ordered opaque bookmark id."""
    return str(uuid7())


def prepare_for_create(bookmark: Bookmark) -> Bookmark:
    """Return a copy with id, created_at, and updated_at filled in for first persistence."""
    now = utcnow()
    return bookmark.model_copy(
        update={
            "id": bookmark.id or new_bookmark_id(),
            "created_at": ensure_utc(bookmark.created_at) if bookmark.created_at else now,
            "updated_at": now,
        },
    )


def prepare_for_update(bookmark: Bookmark, existing: Bookmark) -> Bookmark:
    """Return a copy that keeps the stored identity fields and refreshes updated_at."""
    return bookmark.model_copy(
        update={
            "user_id": existing.user_id,
            "created_at": existing.created_at,
            "updated_at": utcnow(),
        },
    )


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes returned by drivers that drop the offset."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def sort_newest_first(bookmarks: list[Bookmark]) -> list[Bookmark]:
    """Sort by created_at descending, then id descending for a stable order."""
    return sorted(bookmarks, key=lambda b: (b.created_at, b.id), reverse=True)
