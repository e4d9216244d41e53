"""
Book Query Builder

Builds the filtered, sorted, paginated book listings and enriches every
book with ``average_rating`` and ``review_count`` computed from reviews.

Key Concepts:
=============

1. One Filter Representation
   ``BookFilters`` produces both the WHERE clauses (row filters) and the
   HAVING clauses (filters on the aggregated average). The page query and
   the count query are built from the same object, so they can't drift.

2. Aggregation
   books LEFT OUTER JOIN reviews, GROUP BY books.id.
   COALESCE(AVG(rating), 0) and COUNT(reviews.id) give 0 / 0 for books
   without reviews, never NULL.

3. Sorting
   Only allow-listed keys are accepted; anything else falls back to
   created_at. Order falls back to DESC. books.id is always appended as a
   tiebreaker so consecutive pages never overlap or skip rows.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import ColumnElement, Select, exists, func, or_, select
from sqlalchemy.orm import Session

from bookreviews.exceptions import NotFoundError, ValidationError
from bookreviews.models import Book, Review
from bookreviews.schemas.book import (
    BookListResponse,
    BookResponse,
    BookSearchResponse,
    BookStats,
    GenreCount,
)
from bookreviews.schemas.common import PaginationMeta

logger = logging.getLogger(__name__)

DEFAULT_SORT_BY = "created_at"
DEFAULT_SORT_ORDER = "DESC"
SORTABLE_FIELDS = (
    "created_at",
    "title",
    "author",
    "published_date",
    "average_rating",
    "review_count",
)

FEATURED_MIN_AVERAGE = 4.0
FEATURED_MIN_REVIEWS = 5
TOP_RATED_MIN_REVIEWS = 3
RECENT_WINDOW = timedelta(days=30)


# =============================================================================
# Aggregate Expressions
# =============================================================================


def average_rating_expr() -> ColumnElement:
    return func.coalesce(func.avg(Review.rating), 0)


def review_count_expr() -> ColumnElement:
    return func.count(Review.id)


def like_pattern(value: str) -> str:
    """Substring pattern with LIKE wildcards in the input matched literally."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# =============================================================================
# Filters and Sorting
# =============================================================================


@dataclass(frozen=True)
class BookFilters:
    """
    Optional book filters; empty fields are ignored.

    - search: case-insensitive substring of title, author, ISBN or
      description (OR-ed together)
    - genre: exact genre, case-insensitive
    - author: case-insensitive substring of the author
    - min_rating / max_rating: bounds on the aggregated average rating
    """

    search: str | None = None
    genre: str | None = None
    author: str | None = None
    min_rating: float | None = None
    max_rating: float | None = None

    @property
    def is_empty(self) -> bool:
        return not any([
            self.search,
            self.genre,
            self.author,
            self.min_rating is not None,
            self.max_rating is not None,
        ])

    def where_clauses(self) -> list[ColumnElement]:
        clauses = []
        if self.search:
            pattern = like_pattern(self.search)
            clauses.append(
                or_(
                    Book.title.ilike(pattern, escape="\\"),
                    Book.author.ilike(pattern, escape="\\"),
                    Book.isbn.ilike(pattern, escape="\\"),
                    Book.description.ilike(pattern, escape="\\"),
                )
            )
        if self.genre:
            clauses.append(func.lower(Book.genre) == self.genre.lower())
        if self.author:
            clauses.append(Book.author.ilike(like_pattern(self.author), escape="\\"))
        return clauses

    def having_clauses(self, average_rating: ColumnElement) -> list[ColumnElement]:
        # Evaluated after GROUP BY: the bound applies to the book's average
        clauses = []
        if self.min_rating is not None:
            clauses.append(average_rating >= self.min_rating)
        if self.max_rating is not None:
            clauses.append(average_rating <= self.max_rating)
        return clauses

    def as_params(self) -> dict:
        """Active filters, keyed the way clients send them."""
        params = {
            "q": self.search,
            "genre": self.genre,
            "author": self.author,
            "minRating": self.min_rating,
            "maxRating": self.max_rating,
        }
        return {key: value for key, value in params.items() if value not in (None, "")}


@dataclass(frozen=True)
class BookSort:
    sort_by: str = DEFAULT_SORT_BY
    sort_order: str = DEFAULT_SORT_ORDER

    @classmethod
    def parse(cls, sort_by: str | None, sort_order: str | None) -> "BookSort":
        """
        Resolve client-supplied sort parameters.

        Unknown keys fall back to created_at; unknown orders to DESC.
        """
        key = sort_by if sort_by in SORTABLE_FIELDS else DEFAULT_SORT_BY
        order = (sort_order or "").upper()
        if order not in ("ASC", "DESC"):
            order = DEFAULT_SORT_ORDER
        return cls(sort_by=key, sort_order=order)

    @property
    def descending(self) -> bool:
        return self.sort_order == "DESC"


# =============================================================================
# Statement Builders
# =============================================================================


def _apply_filters(stmt: Select, filters: BookFilters, *criteria: ColumnElement) -> Select:
    """Join reviews, filter rows, group per book, filter on aggregates."""
    return (
        stmt.outerjoin(Review, Review.book_id == Book.id)
        .where(*filters.where_clauses(), *criteria)
        .group_by(Book.id)
        .having(*filters.having_clauses(average_rating_expr()))
    )


def book_rows_statement(filters: BookFilters, *criteria: ColumnElement) -> Select:
    """SELECT book, average_rating, review_count with filters applied."""
    stmt = select(
        Book,
        average_rating_expr().label("average_rating"),
        review_count_expr().label("review_count"),
    )
    return _apply_filters(stmt, filters, *criteria)


def book_count_statement(filters: BookFilters, *criteria: ColumnElement) -> Select:
    """COUNT(*) over exactly the rows ``book_rows_statement`` would return."""
    grouped = _apply_filters(select(Book.id), filters, *criteria).subquery()
    return select(func.count()).select_from(grouped)


def order_clauses(sort: BookSort) -> list[ColumnElement]:
    columns = {
        "created_at": Book.created_at,
        "title": Book.title,
        "author": Book.author,
        "published_date": Book.published_date,
        "average_rating": average_rating_expr(),
        "review_count": review_count_expr(),
    }
    column = columns[sort.sort_by]
    if sort.descending:
        return [column.desc(), Book.id.desc()]
    return [column.asc(), Book.id.asc()]


def to_book_response(book: Book, average_rating, review_count) -> BookResponse:
    """Attach aggregates to a Book row (Decimal from PostgreSQL, float from SQLite)."""
    return BookResponse.model_validate(book).model_copy(
        update={
            "average_rating": round(float(average_rating or 0), 2),
            "review_count": int(review_count or 0),
        }
    )


def _fetch_books(db: Session, stmt: Select) -> list[BookResponse]:
    return [to_book_response(*row) for row in db.execute(stmt).all()]


def _paginate(
    db: Session,
    filters: BookFilters,
    order_by: list[ColumnElement],
    page: int,
    limit: int,
    *criteria: ColumnElement,
) -> tuple[list[BookResponse], PaginationMeta]:
    total = db.execute(book_count_statement(filters, *criteria)).scalar_one()
    stmt = (
        book_rows_statement(filters, *criteria)
        .order_by(*order_by)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return _fetch_books(db, stmt), PaginationMeta.build(page, limit, total)


# =============================================================================
# Operations
# =============================================================================


def list_books(
    db: Session,
    filters: BookFilters,
    sort: BookSort,
    page: int,
    limit: int,
) -> BookListResponse:
    """One page of books matching the filters, in the requested order."""
    items, pagination = _paginate(db, filters, order_clauses(sort), page, limit)
    return BookListResponse(items=items, pagination=pagination)


def search_books(
    db: Session,
    filters: BookFilters,
    sort: BookSort,
    page: int,
    limit: int,
) -> BookSearchResponse:
    """
    Like ``list_books`` but at least one filter is mandatory.

    Raises:
        ValidationError: If no filter at all was supplied
    """
    if filters.is_empty:
        raise ValidationError(
            "At least one search parameter is required (q, genre, author, minRating or maxRating)"
        )
    items, pagination = _paginate(db, filters, order_clauses(sort), page, limit)
    logger.debug(f"Book search {filters.as_params()} matched {pagination.total} books")
    return BookSearchResponse(
        items=items,
        pagination=pagination,
        search_params=filters.as_params(),
    )


def get_book_detail(db: Session, book_id: int) -> BookResponse:
    """
    A single book with its aggregates.

    Raises:
        NotFoundError: If no book has this id
    """
    row = db.execute(book_rows_statement(BookFilters(), Book.id == book_id)).first()
    if row is None:
        raise NotFoundError("Book", book_id)
    return to_book_response(*row)


def related_books(db: Session, book_id: int, limit: int = 6) -> list[BookResponse]:
    """
    Other books of the same genre, best rated first.

    A book without a genre has no related books (empty list, not an error).

    Raises:
        NotFoundError: If no book has this id
    """
    book = db.get(Book, book_id)
    if book is None:
        raise NotFoundError("Book", book_id)
    if not book.genre:
        return []

    stmt = (
        book_rows_statement(BookFilters(), Book.genre == book.genre, Book.id != book.id)
        .order_by(average_rating_expr().desc(), review_count_expr().desc(), Book.id.asc())
        .limit(limit)
    )
    return _fetch_books(db, stmt)


def featured_books(db: Session, limit: int = 6) -> list[BookResponse]:
    """Books averaging at least 4.0 stars or with at least 5 reviews."""
    stmt = (
        book_rows_statement(BookFilters())
        .having(
            or_(
                average_rating_expr() >= FEATURED_MIN_AVERAGE,
                review_count_expr() >= FEATURED_MIN_REVIEWS,
            )
        )
        .order_by(average_rating_expr().desc(), review_count_expr().desc(), Book.id.asc())
        .limit(limit)
    )
    return _fetch_books(db, stmt)


def books_by_author(db: Session, author: str, page: int, limit: int) -> BookListResponse:
    """
    Books whose author contains ``author``, newest publication first.

    Raises:
        ValidationError: If the author string is blank
    """
    author = author.strip()
    if not author:
        raise ValidationError("Author name is required")
    items, pagination = _paginate(
        db,
        BookFilters(author=author),
        [Book.published_date.desc(), Book.title.asc(), Book.id.asc()],
        page,
        limit,
    )
    return BookListResponse(items=items, pagination=pagination)


def list_genres(db: Session, limit: int | None = None) -> list[GenreCount]:
    """Distinct genres with their book counts, most populated first."""
    book_count = func.count(Book.id)
    stmt = (
        select(Book.genre, book_count.label("book_count"))
        .where(Book.genre.is_not(None), Book.genre != "")
        .group_by(Book.genre)
        .order_by(book_count.desc(), Book.genre.asc())
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    return [
        GenreCount(genre=genre, book_count=count)
        for genre, count in db.execute(stmt).all()
    ]


def book_stats(db: Session, now: datetime | None = None) -> BookStats:
    """Catalogue statistics for administrators."""
    now = now or datetime.now(UTC)

    total_books = db.execute(select(func.count(Book.id))).scalar_one()
    recent_books = db.execute(
        select(func.count(Book.id)).where(Book.created_at >= now - RECENT_WINDOW)
    ).scalar_one()
    without_reviews = db.execute(
        select(func.count(Book.id)).where(~exists().where(Review.book_id == Book.id))
    ).scalar_one()

    top_rated_stmt = (
        book_rows_statement(BookFilters())
        .having(review_count_expr() >= TOP_RATED_MIN_REVIEWS)
        .order_by(average_rating_expr().desc(), review_count_expr().desc(), Book.id.asc())
        .limit(5)
    )

    return BookStats(
        total_books=total_books,
        recent_books=recent_books,
        books_without_reviews=without_reviews,
        genre_distribution=list_genres(db, limit=10),
        top_rated_books=_fetch_books(db, top_rated_stmt),
    )
