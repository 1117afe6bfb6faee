"""Bookmark lifecycle endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_bookmark_service, get_current_user_id
from schemas.bookmark import (
    Bookmark,
    BookmarkCreate,
    BookmarkListResponse,
    BookmarkResponse,
)
from services.bookmark_service import BookmarkService

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


async def get_owned_bookmark(
    service: BookmarkService,
    bookmark_id: str,
    user_id: str,
) -> Bookmark:
    """
    Load a bookmark and verify it belongs to the caller.

    This is the only place ownership is enforced; the service trusts the ids it
    is given.

    Raises:
        HTTPException: 403 if the bookmark belongs to another user.
        NotFoundError: If the bookmark does not exist (mapped to 404).
    """
    bookmark = await service.get_bookmark(bookmark_id)
    if bookmark.user_id != user_id:
        raise HTTPException(status_code=403, detail="Bookmark belongs to another user")
    return bookmark


@router.post("/", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    user_id: str = Depends(get_current_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkResponse:
    """Create a bookmark, fetching its title, main image, and summary."""
    bookmark = await service.create_bookmark(Bookmark(user_id=user_id, url=str(data.url)))
    return BookmarkResponse.model_validate(bookmark)


@router.get("/", response_model=BookmarkListResponse | list[BookmarkResponse])
async def list_bookmarks(
    archived: bool = Query(default=False, description="List archived bookmarks instead"),
    page: int | None = Query(default=None, description="1-based page number"),
    page_size: int | None = Query(default=None, description="Items per page (max 100)"),
    user_id: str = Depends(get_current_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkListResponse | list[BookmarkResponse]:
    """
    List the current user's bookmarks, newest first.

    - **archived**: false (default) for active bookmarks, true for archived ones
    - **page** / **page_size**: when either is given the response is a pagination
      envelope; out-of-range values are clamped (page >= 1, 1 <= page_size <= 100)
    """
    if page is None and page_size is None:
        bookmarks = await service.get_all_bookmarks(user_id, archived)
        return [BookmarkResponse.model_validate(b) for b in bookmarks]

    result = await service.get_bookmarks_with_pagination(
        user_id, archived, page or 0, page_size or 0,
    )
    return BookmarkListResponse(
        bookmarks=[BookmarkResponse.model_validate(b) for b in result.bookmarks],
        total_count=result.total_count,
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
    )


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
async def get_bookmark(
    bookmark_id: str,
    user_id: str = Depends(get_current_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> BookmarkResponse:
    """Get a single bookmark by ID."""
    bookmark = await get_owned_bookmark(service, bookmark_id, user_id)
    return BookmarkResponse.model_validate(bookmark)


@router.post("/{bookmark_id}/archive", status_code=204)
async def archive_bookmark(
    bookmark_id: str,
    user_id: str = Depends(get_current_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> None:
    """Archive a bookmark. Archiving an archived bookmark is a no-op."""
    await get_owned_bookmark(service, bookmark_id, user_id)
    await service.archive_bookmark(bookmark_id)


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: str,
    user_id: str = Depends(get_current_user_id),
    service: BookmarkService = Depends(get_bookmark_service),
) -> None:
    """Permanently delete a bookmark."""
    await get_owned_bookmark(service, bookmark_id, user_id)
    await service.delete_bookmark(bookmark_id)
