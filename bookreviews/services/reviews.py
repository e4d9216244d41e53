"""
Review Service

Listing and create/update/delete flows for reviews.

Business Rules:
- Creating requires an existing book and no earlier review by the caller
- Only the author of a review may update it
- The author or an admin may delete it
"""

import logging

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bookreviews.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from bookreviews.models import Book, Review, User
from bookreviews.schemas.common import PaginationMeta
from bookreviews.schemas.review import (
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewUpdate,
)
from bookreviews.schemas.user import CallerIdentity

logger = logging.getLogger(__name__)

ALREADY_REVIEWED = "You have already reviewed this book. You can update your existing review."


# =============================================================================
# Helper Functions
# =============================================================================


def review_rows_statement(*criteria: ColumnElement) -> Select:
    """SELECT review, reviewer username, book title."""
    return (
        select(Review, User.username, Book.title.label("book_title"))
        .join(User, User.id == Review.user_id)
        .join(Book, Book.id == Review.book_id)
        .where(*criteria)
    )


def to_review_response(review: Review, username: str | None, book_title: str | None) -> ReviewResponse:
    return ReviewResponse.model_validate(review).model_copy(
        update={"username": username, "book_title": book_title}
    )


def newest_reviews(db: Session, *criteria: ColumnElement, limit: int = 5) -> list[ReviewResponse]:
    """Most recent reviews matching ``criteria``."""
    stmt = (
        review_rows_statement(*criteria)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(limit)
    )
    return [to_review_response(*row) for row in db.execute(stmt).all()]


def get_review_or_404(db: Session, review_id: int) -> Review:
    review = db.get(Review, review_id)
    if review is None:
        raise NotFoundError("Review", review_id)
    return review


def load_review_response(db: Session, review_id: int) -> ReviewResponse:
    row = db.execute(review_rows_statement(Review.id == review_id)).one()
    return to_review_response(*row)


def _review_page(
    db: Session,
    criterion: ColumnElement,
    page: int,
    limit: int,
) -> ReviewListResponse:
    total = db.execute(
        select(func.count(Review.id)).where(criterion)
    ).scalar_one()
    stmt = (
        review_rows_statement(criterion)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = [to_review_response(*row) for row in db.execute(stmt).all()]
    return ReviewListResponse(items=items, pagination=PaginationMeta.build(page, limit, total))


# =============================================================================
# Listings
# =============================================================================


def list_book_reviews(db: Session, book_id: int, page: int, limit: int) -> ReviewListResponse:
    """
    Reviews of a book, newest first.

    A book without reviews, or one that no longer exists, yields an empty
    page rather than an error.
    """
    return _review_page(db, Review.book_id == book_id, page, limit)


def list_user_reviews(db: Session, user_id: int, page: int, limit: int) -> ReviewListResponse:
    """
    Reviews written by a user, newest first.

    Raises:
        NotFoundError: If the user does not exist
    """
    if db.get(User, user_id) is None:
        raise NotFoundError("User", user_id)
    return _review_page(db, Review.user_id == user_id, page, limit)


# =============================================================================
# Mutations
# =============================================================================


def create_review(db: Session, caller: CallerIdentity, data: ReviewCreate) -> ReviewResponse:
    """
    Create the caller's review of a book.

    Raises:
        NotFoundError: If the book does not exist
        ConflictError: If the caller already reviewed this book
    """
    if db.get(Book, data.book_id) is None:
        raise NotFoundError("Book", data.book_id)

    existing = db.execute(
        select(Review.id).where(
            Review.user_id == caller.id,
            Review.book_id == data.book_id,
        )
    ).first()
    if existing is not None:
        raise ConflictError(ALREADY_REVIEWED, field="book_id")

    review = Review(
        user_id=caller.id,
        book_id=data.book_id,
        rating=data.rating,
        comment=data.comment,
    )
    db.add(review)
    try:
        db.commit()
    except IntegrityError as exc:
        # A concurrent request inserted the same (user, book) pair first
        db.rollback()
        raise ConflictError(ALREADY_REVIEWED, field="book_id") from exc

    logger.info(f"User {caller.id} reviewed book {data.book_id} ({data.rating} stars)")
    return load_review_response(db, review.id)


def update_review(
    db: Session,
    caller: CallerIdentity,
    review_id: int,
    data: ReviewUpdate,
) -> ReviewResponse:
    """
    Replace rating and comment of the caller's own review.

    Raises:
        NotFoundError: If the review does not exist
        PermissionDeniedError: If the caller did not write it
    """
    review = get_review_or_404(db, review_id)

    if review.user_id != caller.id:
        raise PermissionDeniedError("You can only update your own reviews")

    review.rating = data.rating
    review.comment = data.comment
    db.commit()

    logger.info(f"Review {review_id} updated by user {caller.id}")
    return load_review_response(db, review_id)


def delete_review(db: Session, caller: CallerIdentity, review_id: int) -> None:
    """
    Delete a review.

    Raises:
        NotFoundError: If the review does not exist
        PermissionDeniedError: If the caller is neither the author nor an admin
    """
    review = get_review_or_404(db, review_id)

    if review.user_id != caller.id and not caller.is_admin:
        raise PermissionDeniedError("You can only delete your own reviews")

    db.delete(review)
    db.commit()

    logger.info(f"Review {review_id} deleted by user {caller.id}")
