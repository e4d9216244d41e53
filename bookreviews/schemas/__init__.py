"""
Pydantic Schemas Package

Request/response models validated at the API boundary.

Schema Naming Convention:
- XxxBase: Shared fields between create/update
- XxxCreate: Fields required when creating a new record
- XxxUpdate: Fields accepted when updating
- XxxResponse: Fields returned in API responses
- XxxListResponse: {items, pagination} page of XxxResponse
"""

from bookreviews.schemas.auth import (
    AuthResponse,
    DemoLoginRequest,
    LoginRequest,
    RegisterRequest,
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
from bookreviews.schemas.common import MessageResponse, PaginationMeta
from bookreviews.schemas.review import (
    BookReviewSummary,
    GlobalReviewSummary,
    RatingBucket,
    ReviewCreate,
    ReviewListResponse,
    ReviewMutationResponse,
    ReviewResponse,
    ReviewUpdate,
    TopReviewer,
)
from bookreviews.schemas.user import (
    CallerIdentity,
    PasswordChange,
    RoleUpdate,
    UserDetailResponse,
    UserListResponse,
    UserMutationResponse,
    UserProfileResponse,
    UserResponse,
    UserStats,
    UserUpdate,
)

__all__ = [
    "AuthResponse",
    "DemoLoginRequest",
    "LoginRequest",
    "RegisterRequest",
    "BookCreate",
    "BookCreatedResponse",
    "BookDeletedResponse",
    "BookListResponse",
    "BookResponse",
    "BookSearchResponse",
    "BookStats",
    "BookUpdate",
    "BookUpdatedResponse",
    "GenreCount",
    "MessageResponse",
    "PaginationMeta",
    "BookReviewSummary",
    "GlobalReviewSummary",
    "RatingBucket",
    "ReviewCreate",
    "ReviewListResponse",
    "ReviewMutationResponse",
    "ReviewResponse",
    "ReviewUpdate",
    "TopReviewer",
    "CallerIdentity",
    "PasswordChange",
    "RoleUpdate",
    "UserDetailResponse",
    "UserListResponse",
    "UserMutationResponse",
    "UserProfileResponse",
    "UserResponse",
    "UserStats",
    "UserUpdate",
]
