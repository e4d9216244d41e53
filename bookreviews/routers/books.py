"""
Books Router

Endpoints:
- GET /books/ - Filtered, sorted, paginated listing
- GET /books/featured - Highly rated or much reviewed books
- GET /books/genres - Genres with book counts
- GET /books/search - Listing that requires at least one filter
- GET /books/author/{author} - Books by author (substring match)
- GET /books/admin/stats - Catalogue statistics (admin)
- GET /books/{book_id} - A single book with rating aggregates
- GET /books/{book_id}/related - Same-genre books, best rated first
- POST /books/ - Create a book (admin)
- PUT /books/{book_id} - Replace a book (admin)
- DELETE /books/{book_id} - Delete a book with its reviews (admin)

Fixed paths are declared before /{book_id} so they are matched first.
"""

from fastapi import APIRouter, Request, status

from bookreviews.config import get_settings
from bookreviews.dependencies import (
    BookQuery,
    BookSearch,
    CurrentCaller,
    DbSession,
    EntityId,
    Pagination,
)
from bookreviews.schemas.book import (
    BookCreate,
    BookCreatedResponse,
    BookDeletedResponse,
    BookListResponse,
    BookResponse,
    BookSearchResponse,
    BookStats,
    BookUpdate,
    BookUpdatedResponse,
    GenreCount,
)
from bookreviews.services import book_queries
from bookreviews.services import books as book_service
from bookreviews.services.rate_limiter import limiter

settings = get_settings()

router = APIRouter(
    prefix="/books",
    tags=["Books"],
    responses={
        404: {"description": "Book not found"},
    },
)


# =============================================================================
# Listings
# =============================================================================


@router.get(
    "/",
    response_model=BookListResponse,
    summary="List books",
    description="Paginated list of books with optional search, genre, author and rating filters.",
)
@limiter.limit(settings.rate_limit_search)
def list_books(
    request: Request,
    db: DbSession,
    pagination: Pagination,
    query: BookQuery,
) -> BookListResponse:
    """
    List books with their average rating and review count.

    Filters:
    - search: title, author, ISBN or description contains the term
    - genre: exact genre
    - author: author contains the term
    - minRating/maxRating: bounds on the average rating

    Sorting: sortBy (created_at, title, author, published_date,
    average_rating, review_count) and sortOrder (ASC, DESC).
    """
    return book_queries.list_books(
        db, query.filters, query.sort, pagination.page, pagination.limit
    )


@router.get(
    "/featured",
    response_model=list[BookResponse],
    summary="Featured books",
    description="Books averaging at least 4 stars or with at least 5 reviews.",
)
@limiter.limit(settings.rate_limit_default)
def featured_books(request: Request, db: DbSession) -> list[BookResponse]:
    return book_queries.featured_books(db)


@router.get(
    "/genres",
    response_model=list[GenreCount],
    summary="List genres",
)
@limiter.limit(settings.rate_limit_default)
def list_genres(request: Request, db: DbSession) -> list[GenreCount]:
    return book_queries.list_genres(db)


@router.get(
    "/search",
    response_model=BookSearchResponse,
    summary="Search books",
    description="Like the listing, but at least one of q, genre, author, minRating or maxRating is required.",
)
@limiter.limit(settings.rate_limit_search)
def search_books(
    request: Request,
    db: DbSession,
    pagination: Pagination,
    query: BookSearch,
) -> BookSearchResponse:
    return book_queries.search_books(
        db, query.filters, query.sort, pagination.page, pagination.limit
    )


@router.get(
    "/author/{author}",
    response_model=BookListResponse,
    summary="Books by author",
)
@limiter.limit(settings.rate_limit_search)
def books_by_author(
    request: Request,
    author: str,
    db: DbSession,
    pagination: Pagination,
) -> BookListResponse:
    return book_queries.books_by_author(db, author, pagination.page, pagination.limit)


@router.get(
    "/admin/stats",
    response_model=BookStats,
    summary="Catalogue statistics",
    description="Totals, recent additions, genre distribution and top rated books. Admin only.",
)
@limiter.limit(settings.rate_limit_default)
def book_stats(request: Request, db: DbSession, caller: CurrentCaller) -> BookStats:
    book_service.require_admin(caller)
    return book_queries.book_stats(db)


# =============================================================================
# Single Book
# =============================================================================


@router.get(
    "/{book_id}",
    response_model=BookResponse,
    summary="Get a book by ID",
)
@limiter.limit(settings.rate_limit_default)
def get_book(request: Request, book_id: EntityId, db: DbSession) -> BookResponse:
    return book_queries.get_book_detail(db, book_id)


@router.get(
    "/{book_id}/related",
    response_model=list[BookResponse],
    summary="Related books",
    description="Up to 6 books of the same genre, ranked by average rating then review count.",
)
@limiter.limit(settings.rate_limit_default)
def related_books(request: Request, book_id: EntityId, db: DbSession) -> list[BookResponse]:
    return book_queries.related_books(db, book_id)


# =============================================================================
# Mutations (admin only)
# =============================================================================


@router.post(
    "/",
    response_model=BookCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a book",
)
@limiter.limit(settings.rate_limit_write)
def create_book(
    request: Request,
    book_data: BookCreate,
    db: DbSession,
    caller: CurrentCaller,
) -> BookCreatedResponse:
    """
    Create a new book.

    Raises:
        400: Invalid fields (empty title, malformed ISBN, future date, ...)
        403: Caller is not an admin
        409: ISBN already used by another book
    """
    book = book_service.create_book(db, caller, book_data)
    return BookCreatedResponse(message="Book created successfully", book_id=book.id, book=book)


@router.put(
    "/{book_id}",
    response_model=BookUpdatedResponse,
    summary="Update a book",
    description="Replace every editable field of a book.",
)
@limiter.limit(settings.rate_limit_write)
def update_book(
    request: Request,
    book_id: EntityId,
    book_data: BookUpdate,
    db: DbSession,
    caller: CurrentCaller,
) -> BookUpdatedResponse:
    book = book_service.update_book(db, caller, book_id, book_data)
    return BookUpdatedResponse(message="Book updated successfully", book=book)


@router.delete(
    "/{book_id}",
    response_model=BookDeletedResponse,
    summary="Delete a book",
    description="Delete a book together with its reviews and wishlist entries, atomically.",
)
@limiter.limit(settings.rate_limit_write)
def delete_book(
    request: Request,
    book_id: EntityId,
    db: DbSession,
    caller: CurrentCaller,
) -> BookDeletedResponse:
    return book_service.delete_book(db, caller, book_id)
