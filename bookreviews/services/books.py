"""
Book Mutation Service

Create, update and delete flows for books. All three are admin-only.

Field validation (trimmed title/author, ISBN shape, publication date,
cover image URL) already happened in the request schema; this module
enforces what needs the database: ISBN uniqueness, existence and the
atomic cascade on delete.
"""

import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from bookreviews.database import atomic
from bookreviews.exceptions import ConflictError, NotFoundError, PermissionDeniedError
from bookreviews.models import Book, Review, Wishlist
from bookreviews.schemas.book import BookCreate, BookDeletedResponse, BookResponse, BookUpdate
from bookreviews.schemas.user import CallerIdentity
from bookreviews.services.book_queries import get_book_detail

logger = logging.getLogger(__name__)


def require_admin(caller: CallerIdentity) -> None:
    """
    Raises:
        PermissionDeniedError: If the caller is not an admin
    """
    if not caller.is_admin:
        raise PermissionDeniedError("Admin access required")


def get_book_or_404(db: Session, book_id: int) -> Book:
    book = db.get(Book, book_id)
    if book is None:
        raise NotFoundError("Book", book_id)
    return book


def ensure_isbn_available(db: Session, isbn: str | None, exclude_book_id: int | None = None) -> None:
    """
    Raises:
        ConflictError: If another book already uses this ISBN
    """
    if isbn is None:
        return
    stmt = select(Book.id).where(Book.isbn == isbn)
    if exclude_book_id is not None:
        stmt = stmt.where(Book.id != exclude_book_id)
    if db.execute(stmt).first() is not None:
        raise ConflictError("A book with this ISBN already exists", field="isbn")


def create_book(db: Session, caller: CallerIdentity, data: BookCreate) -> BookResponse:
    """
    Insert a new book.

    Raises:
        PermissionDeniedError: If the caller is not an admin
        ConflictError: If the ISBN is already taken
    """
    require_admin(caller)
    ensure_isbn_available(db, data.isbn)

    book = Book(**data.to_columns())
    db.add(book)
    db.commit()

    logger.info(f"Book {book.id} '{book.title}' created by user {caller.id}")
    return get_book_detail(db, book.id)


def update_book(
    db: Session,
    caller: CallerIdentity,
    book_id: int,
    data: BookUpdate,
) -> BookResponse:
    """
    Replace every editable field of a book.

    Raises:
        PermissionDeniedError: If the caller is not an admin
        NotFoundError: If the book does not exist
        ConflictError: If the ISBN belongs to a different book
    """
    require_admin(caller)
    book = get_book_or_404(db, book_id)
    ensure_isbn_available(db, data.isbn, exclude_book_id=book_id)

    for field, value in data.to_columns().items():
        setattr(book, field, value)
    db.commit()

    logger.info(f"Book {book_id} updated by user {caller.id}")
    return get_book_detail(db, book_id)


def delete_book(db: Session, caller: CallerIdentity, book_id: int) -> BookDeletedResponse:
    """
    Delete a book together with its reviews and wishlist entries.

    The three deletes share one transaction: if any of them fails,
    nothing is removed.

    Raises:
        PermissionDeniedError: If the caller is not an admin
        NotFoundError: If the book does not exist
    """
    require_admin(caller)
    book = get_book_or_404(db, book_id)
    title = book.title

    with atomic(db):
        db.execute(delete(Review).where(Review.book_id == book_id))
        db.execute(delete(Wishlist).where(Wishlist.book_id == book_id))
        db.execute(delete(Book).where(Book.id == book_id))

    logger.info(f"Book {book_id} '{title}' and its reviews deleted by user {caller.id}")
    return BookDeletedResponse(
        message=f'Book "{title}" and all associated data deleted successfully',
        deleted_book_id=book_id,
    )
