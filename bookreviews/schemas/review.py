"""
Review Pydantic Schemas

Schemas:
- ReviewCreate: Create a review for a book
- ReviewUpdate: Replace the rating and comment of an existing review
- ReviewResponse: Review row joined with reviewer name and book title
- ReviewListResponse: Paginated list of reviews
- ReviewMutationResponse: {message, review} body for create/update
- RatingBucket / BookReviewSummary / GlobalReviewSummary: Aggregates

Business Rules:
- Rating must be 1-5 (validated here and by a CHECK constraint)
- One review per user per book (enforced at database level)

Aggregate averages and percentages are Decimal values, so they reach
the client as fixed-precision strings ("4.25", "40.0").
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookreviews.schemas.common import MAX_ENTITY_ID, PaginationMeta


# =============================================================================
# Request Schemas
# =============================================================================


class ReviewBase(BaseModel):
    rating: int = Field(
        ...,
        ge=1,
        le=5,
        description="Rating from 1 to 5 stars",
        examples=[4, 5],
    )

    comment: str | None = Field(
        default=None,
        max_length=1000,
        description="Optional review text",
        examples=["A masterpiece of world-building."],
    )

    @field_validator("comment")
    @classmethod
    def comment_blank_to_none(cls, v: str | None) -> str | None:
        """Whitespace-only comments are stored as no comment."""
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v


class ReviewCreate(ReviewBase):
    """
    Schema for creating a new review.

    Example request body:
    {
        "book_id": 5,
        "rating": 4,
        "comment": "Slow start, brilliant ending."
    }
    """

    book_id: int = Field(..., ge=1, le=MAX_ENTITY_ID, description="Book being reviewed")


class ReviewUpdate(ReviewBase):
    """Rating is required on update; the comment is replaced as sent."""

    pass


# =============================================================================
# Response Schemas
# =============================================================================


class ReviewResponse(BaseModel):
    id: int
    user_id: int
    book_id: int
    rating: int
    comment: str | None = None
    created_at: datetime
    updated_at: datetime
    username: str | None = Field(default=None, description="Reviewer's username")
    book_title: str | None = Field(default=None, description="Reviewed book's title")

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "user_id": 2,
                "book_id": 5,
                "rating": 4,
                "comment": "Slow start, brilliant ending.",
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
                "username": "reader42",
                "book_title": "Dune",
            }
        },
    )


class ReviewListResponse(BaseModel):
    items: list[ReviewResponse]
    pagination: PaginationMeta


class ReviewMutationResponse(BaseModel):
    message: str
    review: ReviewResponse


# =============================================================================
# Aggregates
# =============================================================================


class RatingBucket(BaseModel):
    """One histogram bar: how many reviews gave this many stars."""

    rating: int = Field(..., ge=1, le=5)
    count: int = Field(..., ge=0)
    percentage: Decimal = Field(..., description="Share of all reviews, 1 decimal place")


class BookReviewSummary(BaseModel):
    """
    Rating rollup for a single book.

    Buckets are always present for every star value 5 down to 1. With no
    reviews, averages are "0.00" and every percentage is "0.0".
    """

    book_id: int
    book_title: str
    total_reviews: int
    average_rating: Decimal
    min_rating: Decimal
    max_rating: Decimal
    rating_distribution: list[RatingBucket]
    recent_reviews: list[ReviewResponse]


class TopReviewer(BaseModel):
    user_id: int
    username: str
    review_count: int
    average_rating: Decimal


class GlobalReviewSummary(BaseModel):
    """Rollup over every review in the system."""

    total_reviews: int
    average_rating: Decimal
    rating_distribution: list[RatingBucket]
    top_reviewers: list[TopReviewer] = Field(..., description="Top 10 by review count")
    recent_activity: int = Field(..., description="Reviews created in the last 30 days")
