"""
Reviews Router

Endpoints:
- GET /reviews/?book_id= - Reviews of a book (book_id required)
- GET /reviews/recent - Latest reviews across all books
- GET /reviews/book/{book_id}/summary - Rating summary of a book
- GET /reviews/user/{user_id} - Reviews written by a user (authenticated)
- GET /reviews/admin/stats - Global rating summary (admin)
- POST /reviews/ - Create a review (authenticated)
- PUT /reviews/{review_id} - Update a review (author only)
- DELETE /reviews/{review_id} - Delete a review (author or admin)

Business Rules:
- One review per user per book
- Only the review author can update
- The review author or an admin can delete
"""

from fastapi import APIRouter, Query, Request, status

from bookreviews.config import get_settings
from bookreviews.dependencies import CurrentCaller, DbSession, EntityId, Pagination
from bookreviews.schemas.common import MAX_ENTITY_ID, MessageResponse
from bookreviews.schemas.review import (
    BookReviewSummary,
    GlobalReviewSummary,
    ReviewCreate,
    ReviewListResponse,
    ReviewMutationResponse,
    ReviewResponse,
    ReviewUpdate,
)
from bookreviews.services import review_stats
from bookreviews.services import reviews as review_service
from bookreviews.services.books import require_admin
from bookreviews.services.rate_limiter import limiter

settings = get_settings()

router = APIRouter(
    prefix="/reviews",
    tags=["Reviews"],
    responses={
        404: {"description": "Review or book not found"},
    },
)


# =============================================================================
# Listings and Summaries
# =============================================================================


@router.get(
    "/",
    response_model=ReviewListResponse,
    summary="List reviews for a book",
)
@limiter.limit(settings.rate_limit_default)
def list_book_reviews(
    request: Request,
    db: DbSession,
    pagination: Pagination,
    book_id: int = Query(..., ge=1, le=MAX_ENTITY_ID, description="Book whose reviews to list"),
) -> ReviewListResponse:
    """Newest first. A book without reviews returns an empty page."""
    return review_service.list_book_reviews(db, book_id, pagination.page, pagination.limit)


@router.get(
    "/recent",
    response_model=list[ReviewResponse],
    summary="Recent reviews",
)
@limiter.limit(settings.rate_limit_default)
def recent_reviews(
    request: Request,
    db: DbSession,
    limit: int = Query(default=5, ge=1, le=50),
) -> list[ReviewResponse]:
    return review_stats.recent_reviews(db, limit=limit)


@router.get(
    "/book/{book_id}/summary",
    response_model=BookReviewSummary,
    summary="Rating summary of a book",
    description="Totals, average/min/max, a 5..1 star histogram and the latest reviews.",
)
@limiter.limit(settings.rate_limit_default)
def book_review_summary(request: Request, book_id: EntityId, db: DbSession) -> BookReviewSummary:
    return review_stats.book_review_summary(db, book_id)


@router.get(
    "/user/{user_id}",
    response_model=ReviewListResponse,
    summary="Reviews by a user",
)
@limiter.limit(settings.rate_limit_default)
def list_user_reviews(
    request: Request,
    user_id: EntityId,
    db: DbSession,
    pagination: Pagination,
    caller: CurrentCaller,
) -> ReviewListResponse:
    return review_service.list_user_reviews(db, user_id, pagination.page, pagination.limit)


@router.get(
    "/admin/stats",
    response_model=GlobalReviewSummary,
    summary="Global review statistics",
    description="Totals, histogram, top 10 reviewers and 30-day activity. Admin only.",
)
@limiter.limit(settings.rate_limit_default)
def global_review_stats(
    request: Request,
    db: DbSession,
    caller: CurrentCaller,
) -> GlobalReviewSummary:
    require_admin(caller)
    return review_stats.global_review_summary(db)


# =============================================================================
# Mutations
# =============================================================================


@router.post(
    "/",
    response_model=ReviewMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a review",
    description="Review a book. One review per book per user.",
)
@limiter.limit(settings.rate_limit_write)
def create_review(
    request: Request,
    review_data: ReviewCreate,
    db: DbSession,
    caller: CurrentCaller,
) -> ReviewMutationResponse:
    """
    Raises:
        404: Book not found
        409: Caller already reviewed this book
    """
    review = review_service.create_review(db, caller, review_data)
    return ReviewMutationResponse(message="Review created successfully", review=review)


@router.put(
    "/{review_id}",
    response_model=ReviewMutationResponse,
    summary="Update a review",
)
@limiter.limit(settings.rate_limit_write)
def update_review(
    request: Request,
    review_id: EntityId,
    review_data: ReviewUpdate,
    db: DbSession,
    caller: CurrentCaller,
) -> ReviewMutationResponse:
    review = review_service.update_review(db, caller, review_id, review_data)
    return ReviewMutationResponse(message="Review updated successfully", review=review)


@router.delete(
    "/{review_id}",
    response_model=MessageResponse,
    summary="Delete a review",
)
@limiter.limit(settings.rate_limit_write)
def delete_review(
    request: Request,
    review_id: EntityId,
    db: DbSession,
    caller: CurrentCaller,
) -> MessageResponse:
    review_service.delete_review(db, caller, review_id)
    return MessageResponse(message="Review deleted successfully")
