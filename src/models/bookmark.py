"""Bookmark table for the relational storage backend."""
from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin


class BookmarkRecord(Base, TimestampMixin):
    """Persisted bookmark row - mirrors schemas.bookmark.Bookmark field for field."""

    __tablename__ = "bookmarks"
    __table_args__ = (
        # Listing always filters on both columns
        Index("idx_bookmarks_user_id_archived", "user_id", "is_archived"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    main_image_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    content_summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
