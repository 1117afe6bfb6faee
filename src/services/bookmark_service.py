"""Service layer for the bookmark lifecycle: enrichment, archive, delete, and listing."""
import logging
import math

from repositories.base import BookmarkRepository
from schemas.bookmark import Bookmark, BookmarkQuery, PaginatedResult
from services.enrichment import build_enrichment_steps, run_enrichment
from services.exceptions import BookmarkError, InvalidArgumentError, wrap_error
from services.url_scraper import ContentFetcher

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def normalize_pagination(page: int, page_size: int) -> tuple[int, int]:
    """
    Clamp pagination input to usable values.

    page < 1 becomes 1; page_size < 1 becomes DEFAULT_PAGE_SIZE; page_size above
    MAX_PAGE_SIZE is capped.
    """
    page = max(page, 1)
    if page_size < 1:
        page_size = DEFAULT_PAGE_SIZE
    return page, min(page_size, MAX_PAGE_SIZE)


def calculate_total_pages(total_count: int, page_size: int) -> int:
    """ceil(total_count / page_size), never less than 1."""
    return max(1, math.ceil(total_count / page_size))


class BookmarkService:
    """
    Orchestrates bookmark creation, archival, deletion, and paginated listing.

    Ownership is not checked here: callers (the HTTP boundary) verify that the
    bookmark belongs to the requesting user before calling get/archive/delete.

    Every repository error is re-raised with the operation and key identifier
    prepended, keeping its kind (NotFoundError stays NotFoundError).
    """

    def __init__(self, repository: BookmarkRepository, fetcher: ContentFetcher) -> None:
        self.repository = repository
        self.fetcher = fetcher

    async def create_bookmark(self, bookmark: Bookmark) -> Bookmark:
        """
        Enrich a new bookmark with fetched metadata and persist it.

        Flow:
        1. Reject caller-supplied ids.
        2. Fetch title, main image, and content summary in that order; the first
           failure aborts with EnrichmentFailedError and nothing is persisted.
        3. Persist via the repository, which assigns id and created_at.

        Raises:
            InvalidArgumentError: If an id was supplied or the URL is empty.
            EnrichmentFailedError: If a fetcher stage raised.
            StorageError: If the repository failed.
        """
        if bookmark.id:
            raise InvalidArgumentError("bookmark id must be empty")
        if not bookmark.url:
            raise InvalidArgumentError("url is required")

        url = bookmark.url
        enriched = await run_enrichment(url, build_enrichment_steps(self.fetcher, url))

        new_bookmark = Bookmark(
            user_id=bookmark.user_id,
            url=url,
            is_archived=False,
            **enriched,
        )
        try:
            created = await self.repository.create(new_bookmark)
        except BookmarkError as e:
            raise wrap_error(e, f"failed to create bookmark for URL {url}") from e

        logger.info("Created bookmark %s for user %s", created.id, created.user_id)
        return created

    async def get_bookmark(self, bookmark_id: str) -> Bookmark:
        """Return a bookmark by id (no ownership check)."""
        if not bookmark_id:
            raise InvalidArgumentError("id is required")
        try:
            return await self.repository.get(bookmark_id)
        except BookmarkError as e:
            raise wrap_error(e, f"failed to get bookmark with ID {bookmark_id}") from e

    async def archive_bookmark(self, bookmark_id: str) -> Bookmark:
        """
        Mark a bookmark archived. Idempotent: archiving twice succeeds.

        There is no reverse transition.
        """
        try:
            bookmark = await self.repository.get(bookmark_id)
        except BookmarkError as e:
            raise wrap_error(e, f"failed to get bookmark with ID {bookmark_id}") from e

        bookmark.is_archived = True
        try:
            updated = await self.repository.update(bookmark)
        except BookmarkError as e:
            raise wrap_error(e, f"failed to update bookmark with ID {bookmark_id}") from e

        logger.info("Archived bookmark %s", bookmark_id)
        return updated

    async def get_all_bookmarks(self, user_id: str, archived: bool) -> list[Bookmark]:
        """All bookmarks for a user in the given archive state, newest first."""
        try:
            return await self.repository.list(BookmarkQuery(user_id=user_id, archived=archived))
        except BookmarkError as e:
            raise wrap_error(e, f"failed to get all bookmarks for user {user_id}") from e

    async def get_bookmarks_with_pagination(
        self,
        user_id: str,
        archived: bool,
        page: int,
        page_size: int,
    ) -> PaginatedResult:
        """
        One page of bookmarks plus the pagination envelope.

        page and page_size are normalized first (see normalize_pagination). The
        total count comes from a separate query, so it is advisory under concurrent
        writes. A failure in either query aborts the whole call.
        """
        page, page_size = normalize_pagination(page, page_size)
        query = BookmarkQuery(user_id=user_id, archived=archived, page=page, page_size=page_size)

        try:
            bookmarks = await self.repository.list(query)
        except BookmarkError as e:
            raise wrap_error(
                e, f"failed to list bookmarks for user {user_id} (page {page})",
            ) from e

        try:
            total_count = await self.repository.count(query)
        except BookmarkError as e:
            raise wrap_error(e, f"failed to count bookmarks for user {user_id}") from e

        return PaginatedResult(
            bookmarks=bookmarks,
            total_count=total_count,
            page=page,
            page_size=page_size,
            total_pages=calculate_total_pages(total_count, page_size),
        )

    async def delete_bookmark(self, bookmark_id: str) -> None:
        """Permanently delete a bookmark."""
        if not bookmark_id:
            raise InvalidArgumentError("id is required")
        try:
            await self.repository.delete(bookmark_id)
        except BookmarkError as e:
            raise wrap_error(e, f"failed to delete bookmark with ID {bookmark_id}") from e

        logger.info("Deleted bookmark %s", bookmark_id)
