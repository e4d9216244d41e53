"""
Review Aggregator

Rating rollups over the reviews table: per-book summaries, the global
summary, top reviewers and per-user statistics.

Key Concepts:
=============

1. Fixed-precision output
   Averages are quantized to 2 decimals and percentages to 1 decimal
   (ROUND_HALF_UP) as Decimal values, so repeated calls over unchanged
   data serialize identically.

2. Complete histograms
   Every histogram has one bucket per star value, 5 down to 1, even when
   no review used that value. With zero reviews every percentage is 0.
"""

import logging
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.orm import Session

from bookreviews.exceptions import NotFoundError
from bookreviews.models import Book, Review, User
from bookreviews.schemas.review import (
    BookReviewSummary,
    GlobalReviewSummary,
    RatingBucket,
    ReviewResponse,
    TopReviewer,
)
from bookreviews.schemas.user import UserReviewStats
from bookreviews.services.reviews import newest_reviews

logger = logging.getLogger(__name__)

STAR_VALUES = (5, 4, 3, 2, 1)
TWO_PLACES = Decimal("0.01")
ONE_PLACE = Decimal("0.1")
RECENT_WINDOW = timedelta(days=30)


# =============================================================================
# Formatting
# =============================================================================


def to_fixed(value, places: Decimal = TWO_PLACES) -> Decimal:
    """Quantize a numeric aggregate; NULL (no rows) becomes zero."""
    if value is None:
        return Decimal(0).quantize(places)
    return Decimal(str(value)).quantize(places, rounding=ROUND_HALF_UP)


def rating_histogram(counts: dict[int, int], total: int) -> list[RatingBucket]:
    """
    Build the 5..1 star histogram.

    Percentages are computed against ``total``; a total of 0 yields 0 for
    every bucket instead of dividing by zero.
    """
    buckets = []
    for star in STAR_VALUES:
        count = counts.get(star, 0)
        if total > 0:
            percentage = Decimal(count * 100) / Decimal(total)
        else:
            percentage = Decimal(0)
        buckets.append(
            RatingBucket(rating=star, count=count, percentage=to_fixed(percentage, ONE_PLACE))
        )
    return buckets


def _rating_counts(db: Session, *criteria: ColumnElement) -> dict[int, int]:
    stmt = (
        select(Review.rating, func.count(Review.id))
        .where(*criteria)
        .group_by(Review.rating)
    )
    return {rating: count for rating, count in db.execute(stmt).all()}


# =============================================================================
# Summaries
# =============================================================================


def book_review_summary(db: Session, book_id: int, recent_limit: int = 5) -> BookReviewSummary:
    """
    Rating rollup for one book.

    Raises:
        NotFoundError: If no book has this id
    """
    book = db.get(Book, book_id)
    if book is None:
        raise NotFoundError("Book", book_id)

    total, average, lowest, highest = db.execute(
        select(
            func.count(Review.id),
            func.avg(Review.rating),
            func.min(Review.rating),
            func.max(Review.rating),
        ).where(Review.book_id == book_id)
    ).one()

    return BookReviewSummary(
        book_id=book.id,
        book_title=book.title,
        total_reviews=total,
        average_rating=to_fixed(average),
        min_rating=to_fixed(lowest),
        max_rating=to_fixed(highest),
        rating_distribution=rating_histogram(_rating_counts(db, Review.book_id == book_id), total),
        recent_reviews=newest_reviews(db, Review.book_id == book_id, limit=recent_limit),
    )


def top_reviewers(db: Session, limit: int = 10) -> list[TopReviewer]:
    """Users with the most reviews; ties go to the older account."""
    review_count = func.count(Review.id)
    stmt = (
        select(User.id, User.username, review_count, func.avg(Review.rating))
        .join(Review, Review.user_id == User.id)
        .group_by(User.id, User.username)
        .order_by(review_count.desc(), User.id.asc())
        .limit(limit)
    )
    return [
        TopReviewer(
            user_id=user_id,
            username=username,
            review_count=count,
            average_rating=to_fixed(average),
        )
        for user_id, username, count, average in db.execute(stmt).all()
    ]


def global_review_summary(db: Session, now: datetime | None = None) -> GlobalReviewSummary:
    """
    Rollup across every review.

    ``recent_activity`` counts reviews created in the 30 days before
    ``now`` (defaults to the call time).
    """
    now = now or datetime.now(UTC)

    total, average = db.execute(
        select(func.count(Review.id), func.avg(Review.rating))
    ).one()
    recent_activity = db.execute(
        select(func.count(Review.id)).where(Review.created_at >= now - RECENT_WINDOW)
    ).scalar_one()

    return GlobalReviewSummary(
        total_reviews=total,
        average_rating=to_fixed(average),
        rating_distribution=rating_histogram(_rating_counts(db), total),
        top_reviewers=top_reviewers(db, limit=10),
        recent_activity=recent_activity,
    )


def recent_reviews(db: Session, limit: int = 5) -> list[ReviewResponse]:
    """Latest reviews across all books."""
    return newest_reviews(db, limit=limit)


def user_review_stats(db: Session, user_id: int) -> UserReviewStats:
    """Review count, average rating and first/last review time of one user."""
    total, average, first_at, last_at = db.execute(
        select(
            func.count(Review.id),
            func.avg(Review.rating),
            func.min(Review.created_at),
            func.max(Review.created_at),
        ).where(Review.user_id == user_id)
    ).one()
    return UserReviewStats(
        total_reviews=total,
        average_rating=to_fixed(average),
        first_review_at=first_at,
        last_review_at=last_at,
    )
