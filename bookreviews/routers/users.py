"""
Users Router

Endpoints:
- GET /users/profile - The caller's profile, stats and favourite genres
- PUT /users/profile - Update the caller's username and email
- GET /users/admin/stats - Account statistics (admin)
- GET /users/ - All accounts with review counts (admin)
- GET /users/{user_id} - An account with stats and recent reviews
- PUT /users/{user_id} - Update username and email (owner or admin)
- PUT /users/{user_id}/password - Change password (owner)
- PUT /users/{user_id}/role - Change role (admin, not on self)
- DELETE /users/{user_id} - Delete an account with its reviews (admin, not self)
"""

from fastapi import APIRouter, Query, Request

from bookreviews.config import get_settings
from bookreviews.dependencies import CurrentCaller, DbSession, EntityId, Pagination
from bookreviews.schemas.common import MessageResponse
from bookreviews.schemas.user import (
    PasswordChange,
    RoleUpdate,
    UserDetailResponse,
    UserListResponse,
    UserMutationResponse,
    UserProfileResponse,
    UserStats,
    UserUpdate,
)
from bookreviews.services import users as user_service
from bookreviews.services.rate_limiter import limiter

settings = get_settings()

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    responses={
        401: {"description": "Not authenticated"},
        404: {"description": "User not found"},
    },
)


# =============================================================================
# Own Profile (must come before /users/{user_id})
# =============================================================================


@router.get(
    "/profile",
    response_model=UserProfileResponse,
    summary="Get my profile",
)
@limiter.limit(settings.rate_limit_default)
def get_profile(request: Request, db: DbSession, caller: CurrentCaller) -> UserProfileResponse:
    return user_service.get_profile(db, caller)


@router.put(
    "/profile",
    response_model=UserMutationResponse,
    summary="Update my profile",
)
@limiter.limit(settings.rate_limit_write)
def update_profile(
    request: Request,
    user_data: UserUpdate,
    db: DbSession,
    caller: CurrentCaller,
) -> UserMutationResponse:
    user = user_service.update_profile(db, caller, user_data)
    return UserMutationResponse(message="Profile updated successfully", user=user)


# =============================================================================
# Administration
# =============================================================================


@router.get(
    "/admin/stats",
    response_model=UserStats,
    summary="Account statistics",
)
@limiter.limit(settings.rate_limit_default)
def user_stats(request: Request, db: DbSession, caller: CurrentCaller) -> UserStats:
    return user_service.user_stats(db, caller)


@router.get(
    "/",
    response_model=UserListResponse,
    summary="List users",
    description="All accounts with their review counts. Admin only.",
)
@limiter.limit(settings.rate_limit_default)
def list_users(
    request: Request,
    db: DbSession,
    pagination: Pagination,
    caller: CurrentCaller,
    search: str | None = Query(default=None, max_length=100, description="Username or email contains"),
) -> UserListResponse:
    return user_service.list_users(db, caller, pagination.page, pagination.limit, search=search)


# =============================================================================
# Individual Accounts
# =============================================================================


@router.get(
    "/{user_id}",
    response_model=UserDetailResponse,
    summary="Get a user",
)
@limiter.limit(settings.rate_limit_default)
def get_user(
    request: Request,
    user_id: EntityId,
    db: DbSession,
    caller: CurrentCaller,
) -> UserDetailResponse:
    return user_service.get_user_detail(db, user_id)


@router.put(
    "/{user_id}",
    response_model=UserMutationResponse,
    summary="Update a user",
    description="Change username and email. The account owner or an admin only.",
)
@limiter.limit(settings.rate_limit_write)
def update_user(
    request: Request,
    user_id: EntityId,
    user_data: UserUpdate,
    db: DbSession,
    caller: CurrentCaller,
) -> UserMutationResponse:
    user = user_service.update_user(db, caller, user_id, user_data)
    return UserMutationResponse(message="User updated successfully", user=user)


@router.put(
    "/{user_id}/password",
    response_model=MessageResponse,
    summary="Change password",
)
@limiter.limit(settings.rate_limit_write)
def change_password(
    request: Request,
    user_id: EntityId,
    password_data: PasswordChange,
    db: DbSession,
    caller: CurrentCaller,
) -> MessageResponse:
    user_service.change_password(db, caller, user_id, password_data)
    return MessageResponse(message="Password changed successfully")


@router.put(
    "/{user_id}/role",
    response_model=UserMutationResponse,
    summary="Change a user's role",
)
@limiter.limit(settings.rate_limit_write)
def update_user_role(
    request: Request,
    user_id: EntityId,
    role_data: RoleUpdate,
    db: DbSession,
    caller: CurrentCaller,
) -> UserMutationResponse:
    user = user_service.update_user_role(db, caller, user_id, role_data.role)
    return UserMutationResponse(message="User role updated successfully", user=user)


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    summary="Delete a user",
    description="Delete an account together with its reviews and wishlist entries. Admin only.",
)
@limiter.limit(settings.rate_limit_write)
def delete_user(
    request: Request,
    user_id: EntityId,
    db: DbSession,
    caller: CurrentCaller,
) -> MessageResponse:
    username = user_service.delete_user(db, caller, user_id)
    return MessageResponse(message=f'User "{username}" and all associated data deleted successfully')
