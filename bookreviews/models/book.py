"""
Book Model

The central model of the API. Ratings are not stored on the row: every
listing computes ``average_rating`` and ``review_count`` from the
reviews table at query time (see ``services.book_queries``).
"""

from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bookreviews.database import Base

if TYPE_CHECKING:
    from bookreviews.models.review import Review
    from bookreviews.models.wishlist import Wishlist


class Book(Base):
    """
    Book model representing a catalogue entry.

    Table: books

    Attributes:
        id: Primary key
        title: Book title (required)
        author: Author name as free text (required)
        description: Optional synopsis
        isbn: Digits only, 10 or 13 long, unique when present
        genre: Single genre label used for filtering and related books
        cover_image: URL to a cover image
        published_date: Never in the future
        created_at: When the book was added
        updated_at: When the book was last modified

    Relationships:
        reviews: One-to-Many with Review
        wishlist_entries: One-to-Many with Wishlist
    """

    __tablename__ = "books"

    # -------------------------------------------------------------------------
    # Primary Key
    # -------------------------------------------------------------------------
    id: Mapped[int] = mapped_column(primary_key=True)

    # -------------------------------------------------------------------------
    # Core Fields
    # -------------------------------------------------------------------------
    title: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Book title"
    )

    author: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Author name"
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Book synopsis or description"
    )

    isbn: Mapped[str | None] = mapped_column(
        String(13),
        unique=True,
        nullable=True,
        comment="ISBN-10 or ISBN-13, digits only"
    )

    genre: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        index=True,
        comment="Genre label"
    )

    cover_image: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="URL of the cover image"
    )

    published_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Original publication date"
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
        index=True,
        comment="When the book was added"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
        comment="When the book was last updated"
    )

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------
    reviews: Mapped[list["Review"]] = relationship(
        "Review",
        back_populates="book",
        passive_deletes=True,
    )

    wishlist_entries: Mapped[list["Wishlist"]] = relationship(
        "Wishlist",
        back_populates="book",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"Book(id={self.id}, title='{self.title}', isbn='{self.isbn}')"
