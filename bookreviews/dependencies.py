"""
FastAPI Dependencies Module

Dependencies are reusable components injected into route handlers.

Common Dependency Patterns:
- Database sessions (per-request)
- Pagination parameters
- Book filter and sort parameters
- Authentication (bearer token -> CallerIdentity)
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Path, Query, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from bookreviews.config import get_settings
from bookreviews.database import get_db
from bookreviews.exceptions import ValidationError
from bookreviews.models import User
from bookreviews.schemas.common import MAX_ENTITY_ID
from bookreviews.schemas.user import CallerIdentity
from bookreviews.services.book_queries import BookFilters, BookSort
from bookreviews.services.security import verify_token_type

settings = get_settings()

# =============================================================================
# Type Aliases with Annotated
# =============================================================================
DbSession = Annotated[Session, Depends(get_db)]

MAX_PAGE = 1_000_000

EntityId = Annotated[int, Path(ge=1, le=MAX_ENTITY_ID)]


# =============================================================================
# Pagination Parameters
# =============================================================================
class PaginationParams:
    """
    Common pagination parameters for list endpoints.

    ``limit`` above the configured maximum is clamped rather than
    rejected, so ``?limit=1000`` returns a full page of 100.
    """

    def __init__(
        self,
        page: int = Query(
            default=1,
            ge=1,
            le=MAX_PAGE,
            description="Page number (1-indexed)",
            examples=[1, 2, 3],
        ),
        limit: int = Query(
            default=settings.default_page_size,
            ge=1,
            description=f"Items per page (capped at {settings.max_page_size})",
            examples=[10, 25, 50],
        ),
    ) -> None:
        self.page = page
        self.limit = min(limit, settings.max_page_size)

    @property
    def offset(self) -> int:
        """
        Rows to skip: page 1 -> 0, page 2 -> limit, page 3 -> 2 * limit.
        """
        return (self.page - 1) * self.limit


Pagination = Annotated[PaginationParams, Depends()]


# =============================================================================
# Book Filter and Sort Parameters
# =============================================================================
class BookQueryParams:
    """
    Filter and sort parameters for book listings.

    Usage:
        GET /api/v1/books?search=dune&genre=Science%20Fiction&minRating=4
        GET /api/v1/books?sortBy=average_rating&sortOrder=ASC&page=1&limit=2

    Unknown sortBy/sortOrder values fall back to created_at/DESC.
    """

    def __init__(
        self,
        search: str | None = Query(
            default=None,
            max_length=255,
            description="Substring of title, author, ISBN or description",
            examples=["dune"],
        ),
        genre: str | None = Query(
            default=None,
            max_length=100,
            description="Exact genre",
            examples=["Science Fiction"],
        ),
        author: str | None = Query(
            default=None,
            max_length=255,
            description="Substring of the author name",
            examples=["herbert"],
        ),
        min_rating: float | None = Query(
            default=None,
            alias="minRating",
            ge=0,
            le=5,
            description="Minimum average rating",
        ),
        max_rating: float | None = Query(
            default=None,
            alias="maxRating",
            ge=0,
            le=5,
            description="Maximum average rating",
        ),
        sort_by: str | None = Query(
            default=None,
            alias="sortBy",
            description="created_at, title, author, published_date, average_rating or review_count",
        ),
        sort_order: str | None = Query(
            default=None,
            alias="sortOrder",
            description="ASC or DESC",
        ),
    ) -> None:
        if min_rating is not None and max_rating is not None and min_rating > max_rating:
            raise ValidationError("minRating cannot be greater than maxRating")

        self.filters = BookFilters(
            search=(search or "").strip() or None,
            genre=(genre or "").strip() or None,
            author=(author or "").strip() or None,
            min_rating=min_rating,
            max_rating=max_rating,
        )
        self.sort = BookSort.parse(sort_by, sort_order)


BookQuery = Annotated[BookQueryParams, Depends()]


class BookSearchParams(BookQueryParams):
    """Same as BookQueryParams but the free-text term is sent as ``q``."""

    def __init__(
        self,
        q: str | None = Query(
            default=None,
            max_length=255,
            description="Substring of title, author, ISBN or description",
        ),
        genre: str | None = Query(default=None, max_length=100),
        author: str | None = Query(default=None, max_length=255),
        min_rating: float | None = Query(default=None, alias="minRating", ge=0, le=5),
        max_rating: float | None = Query(default=None, alias="maxRating", ge=0, le=5),
        sort_by: str | None = Query(default=None, alias="sortBy"),
        sort_order: str | None = Query(default=None, alias="sortOrder"),
    ) -> None:
        super().__init__(
            search=q,
            genre=genre,
            author=author,
            min_rating=min_rating,
            max_rating=max_rating,
            sort_by=sort_by,
            sort_order=sort_order,
        )


BookSearch = Annotated[BookSearchParams, Depends()]


# =============================================================================
# JWT Authentication
# =============================================================================
# OAuth2PasswordBearer extracts the token from "Authorization: Bearer <token>"
# and answers 401 when the header is missing.
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"/api/{settings.api_version}/auth/token",
    auto_error=True,
)


def get_current_caller(
    db: DbSession,
    token: str = Depends(oauth2_scheme),
) -> CallerIdentity:
    """
    Resolve the bearer token into the caller's identity.

    The user row is re-read on every request, so a deleted account or a
    changed role takes effect immediately.

    Raises:
        HTTPException: 401 if the token is invalid or the user is gone
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = verify_token_type(token, "access")
    if payload is None:
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        raise credentials_exception

    user = db.get(User, int(user_id))
    if user is None:
        raise credentials_exception

    return CallerIdentity.model_validate(user)


CurrentCaller = Annotated[CallerIdentity, Depends(get_current_caller)]
