"""
Book Pydantic Schemas

Schemas:
- BookBase: Shared, validated writable fields
- BookCreate / BookUpdate: Request bodies (update is a full replacement)
- BookResponse: Book row plus its computed rating aggregates
- BookListResponse / BookSearchResponse: Paginated listings
- BookCreatedResponse / BookUpdatedResponse / BookDeletedResponse: Mutation bodies
- GenreCount / BookStats: Catalogue statistics

Validation happens here, at the request boundary, so a malformed body is
rejected with 400 before any database write.
"""

import re
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from bookreviews.schemas.common import PaginationMeta

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg")


def normalize_isbn(value: str) -> str:
    """
    Strip hyphens and spaces; the rest must be exactly 10 or 13 digits.

    Raises:
        ValueError: If the cleaned value has the wrong length or non-digits
    """
    cleaned = re.sub(r"[-\s]", "", value)
    if not cleaned.isdigit() or len(cleaned) not in (10, 13):
        raise ValueError("ISBN must contain exactly 10 or 13 digits (hyphens and spaces are ignored)")
    return cleaned


# =============================================================================
# Request Schemas
# =============================================================================


class BookBase(BaseModel):
    """
    Base schema with the editable book fields.

    Rules:
    - title and author are required and non-empty after trimming
    - isbn is normalized to 10 or 13 digits
    - published_date may not be in the future
    - cover_image must be an http(s) URL ending in an image extension
    """

    title: str = Field(
        ...,
        max_length=255,
        description="Book title",
        examples=["Dune"],
    )

    author: str = Field(
        ...,
        max_length=255,
        description="Author name",
        examples=["Frank Herbert"],
    )

    description: str | None = Field(
        default=None,
        max_length=5000,
        description="Book synopsis",
    )

    isbn: str | None = Field(
        default=None,
        description="ISBN-10 or ISBN-13 (hyphens and spaces allowed)",
        examples=["978-0-441-17271-9", "0441172717"],
    )

    genre: str | None = Field(
        default=None,
        max_length=100,
        description="Genre label",
        examples=["Science Fiction"],
    )

    cover_image: HttpUrl | None = Field(
        default=None,
        description="URL of a jpg/jpeg/png/gif/webp/svg cover image",
        examples=["https://covers.example.com/dune.jpg"],
    )

    published_date: date | None = Field(
        default=None,
        description="Publication date (ISO-8601), not in the future",
        examples=["1965-08-01"],
    )

    @field_validator("description", "isbn", "genre", "cover_image", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty optional strings as absent."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("title", "author")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        """Trim and reject whitespace-only values."""
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        return v

    @field_validator("description", "genre")
    @classmethod
    def strip_optional(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else v

    @field_validator("isbn")
    @classmethod
    def validate_isbn(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return normalize_isbn(v)

    @field_validator("cover_image")
    @classmethod
    def validate_cover_image(cls, v: HttpUrl | None) -> HttpUrl | None:
        if v is None:
            return v
        if not (v.path or "").lower().endswith(IMAGE_EXTENSIONS):
            raise ValueError(
                "Cover image URL must end in one of: " + ", ".join(IMAGE_EXTENSIONS)
            )
        return v

    @field_validator("published_date")
    @classmethod
    def not_in_future(cls, v: date | None) -> date | None:
        if v is not None and v > date.today():
            raise ValueError("Published date cannot be in the future")
        return v

    def to_columns(self) -> dict:
        """Column values ready for the Book model."""
        data = self.model_dump()
        if self.cover_image is not None:
            data["cover_image"] = str(self.cover_image)
        return data


class BookCreate(BookBase):
    """
    Schema for creating a new book.

    Example request body:
    {
        "title": "Dune",
        "author": "Frank Herbert",
        "isbn": "9780441172719",
        "genre": "Science Fiction",
        "published_date": "1965-08-01"
    }
    """

    pass


class BookUpdate(BookBase):
    """
    Schema for updating a book.

    PUT semantics: every editable field is replaced; omitted optional
    fields are cleared.
    """

    pass


# =============================================================================
# Response Schemas
# =============================================================================


class BookResponse(BaseModel):
    """
    Book with its rating aggregates.

    average_rating is 0 and review_count is 0 for books without reviews,
    never null.
    """

    id: int = Field(..., description="Unique identifier")
    title: str
    author: str
    description: str | None = None
    isbn: str | None = None
    genre: str | None = None
    cover_image: str | None = None
    published_date: date | None = None
    created_at: datetime
    updated_at: datetime
    average_rating: float = Field(default=0.0, description="Mean rating rounded to 2 decimals")
    review_count: int = Field(default=0, description="Number of reviews")

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "title": "Dune",
                "author": "Frank Herbert",
                "description": "A desert planet and the spice that rules it.",
                "isbn": "9780441172719",
                "genre": "Science Fiction",
                "cover_image": "https://covers.example.com/dune.jpg",
                "published_date": "1965-08-01",
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
                "average_rating": 4.5,
                "review_count": 12,
            }
        },
    )


class BookListResponse(BaseModel):
    """Paginated book list."""

    items: list[BookResponse] = Field(..., description="Books for this page")
    pagination: PaginationMeta


class BookSearchResponse(BookListResponse):
    """Search results plus the filters that produced them."""

    search_params: dict = Field(
        default_factory=dict,
        description="Filters applied to this search",
    )


class BookCreatedResponse(BaseModel):
    message: str = Field(default="Book created successfully")
    book_id: int
    book: BookResponse


class BookUpdatedResponse(BaseModel):
    message: str = Field(default="Book updated successfully")
    book: BookResponse


class BookDeletedResponse(BaseModel):
    message: str
    deleted_book_id: int


# =============================================================================
# Statistics
# =============================================================================


class GenreCount(BaseModel):
    genre: str
    book_count: int


class BookStats(BaseModel):
    """Catalogue-wide statistics for administrators."""

    total_books: int
    recent_books: int = Field(..., description="Books added in the last 30 days")
    books_without_reviews: int
    genre_distribution: list[GenreCount] = Field(..., description="Top 10 genres")
    top_rated_books: list[BookResponse] = Field(
        ...,
        description="Top 5 by average rating among books with at least 3 reviews",
    )
