"""
Authentication Service

Registration, credential checks and the demo accounts.

Demo Accounts:
==============
``demo_login`` signs in as a shared demo admin or demo user, creating
the account the first time it is requested.
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from bookreviews.models import User, UserRole
from bookreviews.schemas.auth import RegisterRequest
from bookreviews.services.security import hash_password, verify_password
from bookreviews.services.users import ensure_identity_available

logger = logging.getLogger(__name__)

DEMO_ACCOUNTS = {
    "admin": {
        "username": "demo_admin",
        "email": "admin@demo.com",
        "password": "Admin123",
        "role": UserRole.ADMIN,
    },
    "user": {
        "username": "demo_user",
        "email": "user@demo.com",
        "password": "User123",
        "role": UserRole.USER,
    },
}


def get_user_by_email(db: Session, email: str) -> User | None:
    stmt = select(User).where(func.lower(User.email) == email.lower())
    return db.execute(stmt).scalar_one_or_none()


def register_user(db: Session, data: RegisterRequest) -> User:
    """
    Create a ``user``-role account.

    Raises:
        ConflictError: If the email or username is taken
    """
    ensure_identity_available(db, data.username, data.email)

    user = User(
        username=data.username,
        email=str(data.email).lower(),
        hashed_password=hash_password(data.password),
        role=UserRole.USER.value,
    )
    db.add(user)
    db.commit()

    logger.info(f"New user registered: {user.username} (id={user.id})")
    return user


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    """Return the user when the credentials match, otherwise None."""
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.hashed_password):
        logger.warning(f"Failed login attempt for {email}")
        return None
    return user


def demo_login(db: Session, user_type: str) -> User:
    """Find or create the demo account for ``user_type`` ("admin" or "user")."""
    account = DEMO_ACCOUNTS[user_type]

    user = get_user_by_email(db, account["email"])
    if user is None:
        user = User(
            username=account["username"],
            email=account["email"],
            hashed_password=hash_password(account["password"]),
            role=account["role"].value,
        )
        db.add(user)
        db.commit()
        logger.info(f"Demo {user_type} account created (id={user.id})")

    return user
