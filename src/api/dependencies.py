"""FastAPI dependencies for injection."""
from fastapi import Request

from core.auth import get_current_user_id
from core.config import get_settings
from services.bookmark_service import BookmarkService


def get_bookmark_service(request: Request) -> BookmarkService:
    """Return the service built during application startup."""
    return request.app.state.bookmark_service


__all__ = [
    "get_bookmark_service",
    "get_current_user_id",
    "get_settings",
]
