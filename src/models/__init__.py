"""SQLAlchemy models."""
from models.base import Base, TimestampMixin
from models.bookmark import BookmarkRecord

__all__ = [
    "Base",
    "BookmarkRecord",
    "TimestampMixin",
]
