"""
API Routers Package

Router Structure:
- auth.py: /api/v1/auth/* (registration, login, demo login)
- books.py: /api/v1/books/* (listings, search, stats, admin CRUD)
- reviews.py: /api/v1/reviews/* (listings, summaries, CRUD)
- users.py: /api/v1/users/* (profiles, administration)

Each router is imported and registered in main.py.
"""

from bookreviews.routers.auth import router as auth_router
from bookreviews.routers.books import router as books_router
from bookreviews.routers.reviews import router as reviews_router
from bookreviews.routers.users import router as users_router

__all__ = [
    "auth_router",
    "books_router",
    "reviews_router",
    "users_router",
]
