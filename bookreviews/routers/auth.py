"""
Authentication Router

Endpoints:
- POST /auth/register - Create an account and receive a token
- POST /auth/login - JSON email/password login
- POST /auth/token - OAuth2 form login (used by the Swagger "Authorize" button)
- POST /auth/demo-login - Sign in as the demo admin or demo user
- GET /auth/me - The authenticated account
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm

from bookreviews.config import get_settings
from bookreviews.dependencies import CurrentCaller, DbSession
from bookreviews.models import User
from bookreviews.schemas.auth import (
    AuthResponse,
    DemoLoginRequest,
    LoginRequest,
    RegisterRequest,
)
from bookreviews.schemas.user import UserResponse
from bookreviews.services import auth as auth_service
from bookreviews.services.rate_limiter import limiter
from bookreviews.services.security import create_user_token
from bookreviews.services.users import get_user_or_404

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"description": "Unauthorized"},
        409: {"description": "Conflict (email/username already exists)"},
    },
)


def _auth_response(user: User, message: str) -> AuthResponse:
    return AuthResponse(
        message=message,
        token=create_user_token(user),
        user=UserResponse.model_validate(user),
    )


def _invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid email or password",
        headers={"WWW-Authenticate": "Bearer"},
    )


# -------------------------------------------------------------------------
# Registration Endpoint
# -------------------------------------------------------------------------
@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="""
    Create a new account and receive an access token.

    **Password Requirements:**
    - Minimum 6 characters
    - At least 1 uppercase letter, 1 lowercase letter and 1 number

    **Username Requirements:**
    - 2-50 characters: letters, numbers and underscores
    """,
)
@limiter.limit(settings.rate_limit_auth)
def register(
    request: Request,
    payload: RegisterRequest,
    db: DbSession,
) -> AuthResponse:
    user = auth_service.register_user(db, payload)
    return _auth_response(user, "User registered successfully")


# -------------------------------------------------------------------------
# Login Endpoints
# -------------------------------------------------------------------------
@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Login with email and password",
)
@limiter.limit(settings.rate_limit_auth)
def login(
    request: Request,
    payload: LoginRequest,
    db: DbSession,
) -> AuthResponse:
    """
    Authenticate and return a JWT access token.

    Include it in later requests as ``Authorization: Bearer <token>``.
    """
    user = auth_service.authenticate_user(db, str(payload.email), payload.password)
    if user is None:
        raise _invalid_credentials()

    logger.info(f"User logged in: {user.username}")
    return _auth_response(user, "Login successful")


@router.post(
    "/token",
    summary="OAuth2 password flow login",
    description="Form-encoded login for OAuth2 clients. Put the email in the 'username' field.",
)
@limiter.limit(settings.rate_limit_auth)
def login_for_access_token(
    request: Request,
    db: DbSession,
    form_data: OAuth2PasswordRequestForm = Depends(),
) -> dict:
    user = auth_service.authenticate_user(db, form_data.username, form_data.password)
    if user is None:
        raise _invalid_credentials()
    return {"access_token": create_user_token(user), "token_type": "bearer"}


@router.post(
    "/demo-login",
    response_model=AuthResponse,
    summary="Login as a demo account",
    description="Sign in as the demo admin or demo user; the account is created on first use.",
)
@limiter.limit(settings.rate_limit_auth)
def demo_login(
    request: Request,
    payload: DemoLoginRequest,
    db: DbSession,
) -> AuthResponse:
    user = auth_service.demo_login(db, payload.user_type)
    return _auth_response(user, f"Demo {payload.user_type} login successful")


# -------------------------------------------------------------------------
# Current User Endpoint
# -------------------------------------------------------------------------
@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get current user",
)
def get_me(caller: CurrentCaller, db: DbSession) -> UserResponse:
    return UserResponse.model_validate(get_user_or_404(db, caller.id))
