"""
User Pydantic Schemas

Schemas:
- CallerIdentity: The authenticated caller handed to services
- UserResponse: Public account data (never exposes the password hash)
- UserUpdate: Username/email edit (owner or admin)
- RoleUpdate: Role change (admin only)
- PasswordChange: Owner-only password change
- UserDetailResponse / UserProfileResponse: Account with review statistics
- UserStats: Account statistics for administrators
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints, field_validator

from bookreviews.models.user import UserRole
from bookreviews.schemas.common import PaginationMeta
from bookreviews.schemas.review import ReviewResponse, TopReviewer

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")

# Length is checked after surrounding whitespace is stripped
Username = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]


def check_username(v: str) -> str:
    v = v.strip()
    if not USERNAME_PATTERN.match(v):
        raise ValueError("Username may only contain letters, numbers, and underscores")
    return v


def check_password_strength(v: str) -> str:
    """
    Validate password strength.

    Requirements:
    - At least 6 characters (enforced by min_length)
    - At least 1 uppercase letter
    - At least 1 lowercase letter
    - At least 1 number
    """
    if not re.search(r"[A-Z]", v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", v):
        raise ValueError("Password must contain at least one number")
    return v


# =============================================================================
# Caller Identity
# =============================================================================


class CallerIdentity(BaseModel):
    """
    Who is making the request.

    Built by the authentication dependency from a verified token and the
    current user row; services only ever see this, never the token.
    """

    id: int
    username: str
    role: UserRole

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


# =============================================================================
# Request Schemas
# =============================================================================


class UserUpdate(BaseModel):
    """
    Schema for updating username and email.

    Both must stay unique across all accounts.
    """

    username: Username = Field(..., examples=["jane_doe"])
    email: EmailStr = Field(..., examples=["jane@example.com"])

    @field_validator("username")
    @classmethod
    def username_must_be_valid(cls, v: str) -> str:
        return check_username(v)


class RoleUpdate(BaseModel):
    role: UserRole = Field(..., description="New role: user or admin")


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)

    @field_validator("new_password")
    @classmethod
    def password_must_be_strong(cls, v: str) -> str:
        return check_password_strength(v)


# =============================================================================
# Response Schemas
# =============================================================================


class UserResponse(BaseModel):
    """Public account data."""

    id: int
    username: str
    email: str
    role: UserRole
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "username": "jane_doe",
                "email": "jane@example.com",
                "role": "user",
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
            }
        },
    )


class UserWithReviewCount(UserResponse):
    review_count: int = 0


class UserListResponse(BaseModel):
    items: list[UserWithReviewCount]
    pagination: PaginationMeta


class UserMutationResponse(BaseModel):
    message: str
    user: UserResponse


class UserReviewStats(BaseModel):
    total_reviews: int
    average_rating: Decimal
    first_review_at: datetime | None = None
    last_review_at: datetime | None = None


class FavoriteGenre(BaseModel):
    genre: str
    review_count: int
    average_rating: Decimal


class UserDetailResponse(BaseModel):
    """Account with review statistics and the five latest reviews."""

    user: UserResponse
    stats: UserReviewStats
    recent_reviews: list[ReviewResponse]


class UserProfileResponse(BaseModel):
    """The caller's own account, statistics and favourite genres."""

    user: UserResponse
    stats: UserReviewStats
    favorite_genres: list[FavoriteGenre]


class RoleCount(BaseModel):
    role: UserRole
    user_count: int


class UserStats(BaseModel):
    total_users: int
    recent_users: int = Field(..., description="Accounts created in the last 30 days")
    users_without_reviews: int
    role_distribution: list[RoleCount]
    most_active_users: list[TopReviewer]
