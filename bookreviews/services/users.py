"""
User Service

Account listings, profile views and the user mutation flows.

Business Rules:
- Profile edits: the account owner or an admin
- Username and email stay unique across all accounts
- Role changes and deletion: admins only, never on their own account
- Deleting a user removes their reviews and wishlist entries atomically
- Password changes: the owner only, after verifying the current password
"""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, exists, func, or_, select
from sqlalchemy.orm import Session

from bookreviews.database import atomic
from bookreviews.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from bookreviews.models import Book, Review, User, UserRole, Wishlist
from bookreviews.schemas.common import PaginationMeta
from bookreviews.schemas.user import (
    CallerIdentity,
    FavoriteGenre,
    PasswordChange,
    RoleCount,
    UserDetailResponse,
    UserListResponse,
    UserProfileResponse,
    UserResponse,
    UserStats,
    UserUpdate,
    UserWithReviewCount,
)
from bookreviews.services.book_queries import like_pattern
from bookreviews.services.books import require_admin
from bookreviews.services.review_stats import to_fixed, top_reviewers, user_review_stats
from bookreviews.services.reviews import newest_reviews
from bookreviews.services.security import hash_password, verify_password

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=30)


# =============================================================================
# Helper Functions
# =============================================================================


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def ensure_identity_available(
    db: Session,
    username: str,
    email: str,
    exclude_user_id: int | None = None,
) -> None:
    """
    Raises:
        ConflictError: If another account uses the username or email
    """
    for column, value, label in (
        (User.email, email, "email"),
        (User.username, username, "username"),
    ):
        stmt = select(User.id).where(func.lower(column) == value.lower())
        if exclude_user_id is not None:
            stmt = stmt.where(User.id != exclude_user_id)
        if db.execute(stmt).first() is not None:
            raise ConflictError(f"An account with this {label} already exists", field=label)


def favorite_genres(db: Session, user_id: int, limit: int = 5) -> list[FavoriteGenre]:
    """Genres the user reviewed most often."""
    review_count = func.count(Review.id)
    stmt = (
        select(Book.genre, review_count, func.avg(Review.rating))
        .join(Review, Review.book_id == Book.id)
        .where(Review.user_id == user_id, Book.genre.is_not(None), Book.genre != "")
        .group_by(Book.genre)
        .order_by(review_count.desc(), func.avg(Review.rating).desc(), Book.genre.asc())
        .limit(limit)
    )
    return [
        FavoriteGenre(genre=genre, review_count=count, average_rating=to_fixed(average))
        for genre, count, average in db.execute(stmt).all()
    ]


def _apply_identity(db: Session, user: User, data: UserUpdate) -> User:
    ensure_identity_available(db, data.username, data.email, exclude_user_id=user.id)
    user.username = data.username
    user.email = str(data.email)
    db.commit()
    return user


# =============================================================================
# Listings and Views
# =============================================================================


def list_users(
    db: Session,
    caller: CallerIdentity,
    page: int,
    limit: int,
    search: str | None = None,
) -> UserListResponse:
    """
    All accounts with their review counts, newest first (admin only).

    ``search`` matches a substring of the username or email.
    """
    require_admin(caller)

    criteria = []
    if search:
        pattern = like_pattern(search)
        criteria.append(
            or_(
                User.username.ilike(pattern, escape="\\"),
                User.email.ilike(pattern, escape="\\"),
            )
        )

    total = db.execute(select(func.count(User.id)).where(*criteria)).scalar_one()

    review_count = func.count(Review.id).label("review_count")
    stmt = (
        select(User, review_count)
        .outerjoin(Review, Review.user_id == User.id)
        .where(*criteria)
        .group_by(User.id)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = [
        UserWithReviewCount.model_validate(user).model_copy(update={"review_count": count})
        for user, count in db.execute(stmt).all()
    ]
    return UserListResponse(items=items, pagination=PaginationMeta.build(page, limit, total))


def get_user_detail(db: Session, user_id: int) -> UserDetailResponse:
    """Public view of an account with stats and its five latest reviews."""
    user = get_user_or_404(db, user_id)
    return UserDetailResponse(
        user=UserResponse.model_validate(user),
        stats=user_review_stats(db, user_id),
        recent_reviews=newest_reviews(db, Review.user_id == user_id, limit=5),
    )


def get_profile(db: Session, caller: CallerIdentity) -> UserProfileResponse:
    user = get_user_or_404(db, caller.id)
    return UserProfileResponse(
        user=UserResponse.model_validate(user),
        stats=user_review_stats(db, user.id),
        favorite_genres=favorite_genres(db, user.id),
    )


def user_stats(db: Session, caller: CallerIdentity, now: datetime | None = None) -> UserStats:
    """Account statistics for administrators."""
    require_admin(caller)
    now = now or datetime.now(UTC)

    total_users = db.execute(select(func.count(User.id))).scalar_one()
    recent_users = db.execute(
        select(func.count(User.id)).where(User.created_at >= now - RECENT_WINDOW)
    ).scalar_one()
    without_reviews = db.execute(
        select(func.count(User.id)).where(~exists().where(Review.user_id == User.id))
    ).scalar_one()
    roles = db.execute(
        select(User.role, func.count(User.id)).group_by(User.role).order_by(User.role)
    ).all()

    return UserStats(
        total_users=total_users,
        recent_users=recent_users,
        users_without_reviews=without_reviews,
        role_distribution=[RoleCount(role=role, user_count=count) for role, count in roles],
        most_active_users=top_reviewers(db, limit=10),
    )


# =============================================================================
# Mutations
# =============================================================================


def update_user(
    db: Session,
    caller: CallerIdentity,
    user_id: int,
    data: UserUpdate,
) -> UserResponse:
    """
    Change username and email.

    Raises:
        PermissionDeniedError: If the caller is neither the owner nor an admin
        NotFoundError: If the user does not exist
        ConflictError: If the username or email belongs to another account
    """
    if caller.id != user_id and not caller.is_admin:
        raise PermissionDeniedError("You can only update your own profile")

    user = _apply_identity(db, get_user_or_404(db, user_id), data)
    logger.info(f"User {user_id} profile updated by user {caller.id}")
    return UserResponse.model_validate(user)


def update_profile(db: Session, caller: CallerIdentity, data: UserUpdate) -> UserResponse:
    """The caller edits their own username and email."""
    return update_user(db, caller, caller.id, data)


def update_user_role(
    db: Session,
    caller: CallerIdentity,
    user_id: int,
    role: UserRole,
) -> UserResponse:
    """
    Raises:
        PermissionDeniedError: If the caller is not an admin
        ValidationError: If an admin targets their own account
        NotFoundError: If the user does not exist
    """
    require_admin(caller)
    if caller.id == user_id:
        raise ValidationError("Cannot change your own role")

    user = get_user_or_404(db, user_id)
    user.role = role.value
    db.commit()

    logger.info(f"User {user_id} role set to {role.value} by user {caller.id}")
    return UserResponse.model_validate(user)


def delete_user(db: Session, caller: CallerIdentity, user_id: int) -> str:
    """
    Delete an account with its reviews and wishlist entries.

    Returns the deleted username.

    Raises:
        PermissionDeniedError: If the caller is not an admin
        ValidationError: If an admin targets their own account
        NotFoundError: If the user does not exist
    """
    require_admin(caller)
    if caller.id == user_id:
        raise ValidationError("Cannot delete your own account")

    username = get_user_or_404(db, user_id).username

    with atomic(db):
        db.execute(delete(Review).where(Review.user_id == user_id))
        db.execute(delete(Wishlist).where(Wishlist.user_id == user_id))
        db.execute(delete(User).where(User.id == user_id))

    logger.info(f"User {user_id} '{username}' and their reviews deleted by user {caller.id}")
    return username


def change_password(
    db: Session,
    caller: CallerIdentity,
    user_id: int,
    data: PasswordChange,
) -> None:
    """
    Raises:
        PermissionDeniedError: If the caller is not the account owner
        NotFoundError: If the user does not exist
        ValidationError: If the current password is wrong
    """
    if caller.id != user_id:
        raise PermissionDeniedError("You can only change your own password")

    user = get_user_or_404(db, user_id)
    if not verify_password(data.current_password, user.hashed_password):
        raise ValidationError("Current password is incorrect")

    user.hashed_password = hash_password(data.new_password)
    db.commit()
    logger.info(f"User {user_id} changed their password")
