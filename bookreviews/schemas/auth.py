"""
Authentication Schemas

Request and response bodies for registration, login and demo login.
"""

from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

from bookreviews.schemas.user import Username, UserResponse, check_password_strength, check_username


class RegisterRequest(BaseModel):
    """
    Schema for user registration.

    New accounts always get the ``user`` role.
    """

    username: Username = Field(
        ...,
        description="2-50 characters: letters, numbers, underscores",
        examples=["jane_doe"],
    )
    email: EmailStr = Field(..., examples=["jane@example.com"])
    password: str = Field(
        ...,
        min_length=6,
        max_length=128,
        description="At least 6 characters with an uppercase letter, a lowercase letter and a number",
        examples=["SecurePass123"],
    )

    @field_validator("username")
    @classmethod
    def username_must_be_valid(cls, v: str) -> str:
        return check_username(v)

    @field_validator("password")
    @classmethod
    def password_must_be_strong(cls, v: str) -> str:
        return check_password_strength(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class DemoLoginRequest(BaseModel):
    user_type: Literal["admin", "user"] = Field(
        default="user",
        description="Which demo account to sign in as",
    )


class AuthResponse(BaseModel):
    """Token plus the account it belongs to."""

    message: str = Field(default="Login successful")
    token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer")
    user: UserResponse
