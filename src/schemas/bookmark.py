"""Pydantic schemas for bookmarks, list queries, and pagination envelopes."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, HttpUrl

# Largest row index the relational and document backends accept (signed 64-bit)
MAX_WINDOW_INDEX = 2**63 - 1


class Bookmark(BaseModel):
    """
    A saved URL and the metadata fetched for it at creation time.

    `id`, `created_at`, and `updated_at` are assigned by the repository. Title,
    main image URL, and content summary may be empty when the page could not be
    fetched or carried no metadata.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str = ""
    user_id: str
    url: str
    title: str = ""
    main_image_url: str = ""
    content_summary: str = ""
    is_archived: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BookmarkQuery(BaseModel):
    """
    Filter and pagination descriptor for listing bookmarks.

    Pagination only applies when both `page` and `page_size` are positive;
    otherwise the full filtered, sorted set is returned.
    """

    user_id: str
    archived: bool = False
    page: int = 0  # 1-based; 0 means no pagination
    page_size: int = 0  # 0 means no pagination

    @property
    def is_paginated(self) -> bool:
        """True when a pagination window should be applied."""
        return self.page > 0 and self.page_size > 0

    @property
    def offset(self) -> int:
        """Index of the first item in the page window."""
        return (self.page - 1) * self.page_size

    @property
    def is_beyond_storage(self) -> bool:
        """True when the window starts past any index a backend can address; always empty."""
        return self.is_paginated and self.offset >= MAX_WINDOW_INDEX

    @property
    def limit(self) -> int:
        """page_size, shortened so offset + limit stays within MAX_WINDOW_INDEX."""
        return min(self.page_size, MAX_WINDOW_INDEX - self.offset)


class PaginatedResult(BaseModel):
    """One page of bookmarks bundled with count/page metadata."""

    bookmarks: list[Bookmark]
    total_count: int  # All items matching the filter, ignoring pagination
    page: int
    page_size: int
    total_pages: int  # Always >= 1


class BookmarkCreate(BaseModel):
    """Schema for creating a new bookmark."""

    # HttpUrl normalizes root domains with trailing slash (example.com -> example.com/)
    # but preserves paths as-is (example.com/page stays example.com/page)
    url: HttpUrl


class BookmarkResponse(BaseModel):
    """Schema for bookmark responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    url: str
    title: str
    main_image_url: str
    content_summary: str
    is_archived: bool
    created_at: datetime | None
    updated_at: datetime | None


class BookmarkListResponse(BaseModel):
    """Schema for paginated bookmark list responses."""

    bookmarks: list[BookmarkResponse]
    total_count: int
    page: int
    page_size: int
    total_pages: int
