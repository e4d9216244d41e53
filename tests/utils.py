"""Helpers shared by the test modules."""

from sqlalchemy.orm import Session

from bookreviews.models import Book, Review, User, UserRole
from bookreviews.services.security import create_user_token, hash_password


def get_auth_header(user: User) -> dict:
    """Create authorization header for a user."""
    return {"Authorization": f"Bearer {create_user_token(user)}"}


def make_user(
    db: Session,
    username: str,
    password: str = "SecurePass1",
    role: UserRole = UserRole.USER,
) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        hashed_password=hash_password(password),
        role=role.value,
    )
    db.add(user)
    db.commit()
    return user


def add_review(
    db: Session,
    user: User,
    book: Book,
    rating: int,
    comment: str | None = None,
) -> Review:
    review = Review(user_id=user.id, book_id=book.id, rating=rating, comment=comment)
    db.add(review)
    db.commit()
    return review
