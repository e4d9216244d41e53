"""
SQLAlchemy Models Package

Model Relationships:
- User -> Review: One-to-Many (a user writes many reviews, one per book)
- Book -> Review: One-to-Many
- User <-> Book through Wishlist: Many-to-Many with a created_at timestamp

Import all models here so Alembic discovers them for migrations.
"""

from bookreviews.models.user import User, UserRole
from bookreviews.models.book import Book
from bookreviews.models.review import Review
from bookreviews.models.wishlist import Wishlist

__all__ = [
    "User",
    "UserRole",
    "Book",
    "Review",
    "Wishlist",
]
