"""Relational bookmark repository using SQLAlchemy's async ORM."""
import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.bookmark import BookmarkRecord
from repositories.base import ensure_utc, prepare_for_create, utcnow
from schemas.bookmark import Bookmark, BookmarkQuery
from services.exceptions import NotFoundError, StorageError

logger = logging.getLogger(__name__)


def _to_domain(record: BookmarkRecord) -> Bookmark:
    """Convert a row to the domain model, normalizing timestamps to UTC."""
    bookmark = Bookmark.model_validate(record)
    return bookmark.model_copy(
        update={
            "created_at": ensure_utc(record.created_at),
            "updated_at": ensure_utc(record.updated_at),
        },
    )


class SqlBookmarkRepository:
    """
    Bookmark repository over any SQLAlchemy async dialect (PostgreSQL, SQLite).

    The caller owns the engine and hands in a session factory; every operation runs
    in its own short transaction. Update and delete are single statements, so the
    existence check and the mutation are atomic at the database level.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(self, bookmark: Bookmark) -> Bookmark:
        """Insert a new row with id and timestamps assigned."""
        prepared = prepare_for_create(bookmark)
        try:
            async with self._session_factory() as session, session.begin():
                session.add(BookmarkRecord(**prepared.model_dump()))
        except IntegrityError as e:
            logger.error(
                "Duplicate bookmark id %s for user %s", prepared.id, prepared.user_id,
            )
            raise StorageError(f"bookmark with ID {prepared.id} already exists") from e
        except SQLAlchemyError as e:
            logger.error(
                "Failed to create bookmark %s in database for user %s: %s",
                prepared.id, prepared.user_id, e,
            )
            raise StorageError(f"failed to create bookmark: {e}") from e

        logger.debug("Created bookmark in database: %s", prepared.id)
        return prepared

    async def get(self, bookmark_id: str) -> Bookmark:
        """Fetch a row by primary key."""
        logger.debug("Getting bookmark from database: %s", bookmark_id)
        try:
            async with self._session_factory() as session:
                record = await session.get(BookmarkRecord, bookmark_id)
                bookmark = _to_domain(record) if record is not None else None
        except SQLAlchemyError as e:
            logger.error("Failed to get bookmark %s from database: %s", bookmark_id, e)
            raise StorageError(f"failed to get bookmark: {e}") from e

        if bookmark is None:
            raise NotFoundError(f"bookmark with ID {bookmark_id} not found")
        return bookmark

    async def count(self, query: BookmarkQuery) -> int:
        """SELECT COUNT(*) for the user/archive filter."""
        statement = (
            select(func.count())
            .select_from(BookmarkRecord)
            .where(
                BookmarkRecord.user_id == query.user_id,
                BookmarkRecord.is_archived == query.archived,
            )
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                total = result.scalar() or 0
        except SQLAlchemyError as e:
            logger.error(
                "Failed to count bookmarks for user %s (archived=%s): %s",
                query.user_id, query.archived, e,
            )
            raise StorageError(f"failed to count bookmarks: {e}") from e

        logger.debug("Counted %d bookmarks for user %s", total, query.user_id)
        return total

    async def update(self, bookmark: Bookmark) -> Bookmark:
        """
        UPDATE ... RETURNING in one statement.

        user_id and created_at are absent from the SET clause, so the
        stored values survive whatever the caller passes in.
        """
        statement = (
            update(BookmarkRecord)
            .where(BookmarkRecord.id == bookmark.id)
            .values(
                url=bookmark.url,
                title=bookmark.title,
                main_image_url=bookmark.main_image_url,
                content_summary=bookmark.content_summary,
                is_archived=bookmark.is_archived,
                updated_at=utcnow(),
            )
            .returning(BookmarkRecord)
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(statement)
                record = result.scalar_one_or_none()
                updated = _to_domain(record) if record is not None else None
        except SQLAlchemyError as e:
            logger.error("Failed to update bookmark %s in database: %s", bookmark.id, e)
            raise StorageError(f"failed to update bookmark: {e}") from e

        if updated is None:
            raise NotFoundError(f"bookmark with ID {bookmark.id} not found")
        logger.debug("Updated bookmark in database: %s", bookmark.id)
        return updated

    async def delete(self, bookmark_id: str) -> None:
        """DELETE ... RETURNING id; zero rows means not found."""
        statement = (
            delete(BookmarkRecord)
            .where(BookmarkRecord.id == bookmark_id)
            .returning(BookmarkRecord.id)
        )
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(statement)
                deleted_id = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to delete bookmark %s from database: %s", bookmark_id, e)
            raise StorageError(f"failed to delete bookmark: {e}") from e

        if deleted_id is None:
            raise NotFoundError(f"bookmark with ID {bookmark_id} not found")
        logger.debug("Deleted bookmark from database: %s", bookmark_id)

    async def list(self, query: BookmarkQuery) -> list[Bookmark]:
        """ORDER BY created_at DESC, id DESC with LIMIT/OFFSET when paginated."""
        if query.is_beyond_storage:
            return []
        statement = (
            select(BookmarkRecord)
            .where(
                BookmarkRecord.user_id == query.user_id,
                BookmarkRecord.is_archived == query.archived,
            )
            .order_by(BookmarkRecord.created_at.desc(), BookmarkRecord.id.desc())
        )
        if query.is_paginated:
            statement = statement.limit(query.limit).offset(query.offset)

        try:
            async with self._session_factory() as session:
                result = await session.execute(statement)
                bookmarks = [_to_domain(record) for record in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error(
                "Failed to list bookmarks for user %s (archived=%s, page=%d, page_size=%d): %s",
                query.user_id, query.archived, query.page, query.page_size, e,
            )
            raise StorageError(f"failed to list bookmarks: {e}") from e

        logger.debug(
            "Listed %d bookmarks for user %s (page=%d, page_size=%d)",
            len(bookmarks), query.user_id, query.page, query.page_size,
        )
        return bookmarks
