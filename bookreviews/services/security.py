"""
Passwords and Access Tokens

- Passwords are stored as bcrypt hashes (passlib ``CryptContext``).
- Access tokens are HS256 JWTs signed with ``SECRET_KEY`` and carrying
  ``sub`` (user id as a string), ``username``, ``role``, ``exp`` and
  ``type="access"``.

The role claim is informational only: ``dependencies.get_current_caller``
reloads the user row, so the stored role is what authorizes a request.
"""

import logging
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from bookreviews.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

ALGORITHM = "HS256"
ACCESS_TOKEN = "access"

# deprecated="auto" rehashes outdated schemes on verify
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Sign ``data`` as an access token.

    ``expires_delta`` defaults to ACCESS_TOKEN_EXPIRE_MINUTES; a negative
    delta produces an already expired token.
    """
    lifetime = expires_delta
    if lifetime is None:
        lifetime = timedelta(minutes=settings.access_token_expire_minutes)

    claims = {**data, "exp": datetime.now(UTC) + lifetime, "type": ACCESS_TOKEN}
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def create_user_token(user) -> str:
    """Access token for a User row."""
    return create_access_token(
        {"sub": str(user.id), "username": user.username, "role": user.role}
    )


def decode_token(token: str) -> dict | None:
    """Verified claims, or None for a bad signature, malformed or expired token."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        logger.warning(f"Rejected token: {exc}")
        return None


def verify_token_type(token: str, expected_type: str) -> dict | None:
    """Like ``decode_token`` but also requires ``type == expected_type``."""
    claims = decode_token(token)
    if claims is None:
        return None
    if claims.get("type") != expected_type:
        logger.warning(f"Rejected token of type {claims.get('type')!r}, wanted {expected_type!r}")
        return None
    return claims
