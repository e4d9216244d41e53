#!/usr/bin/env python3
"""
Database Seed Script

Populates the database with sample books, readers and reviews for local
development.

USAGE:
    # From the project root with the virtualenv active
    python scripts/seed_data.py

This script:
1. Connects to the database using DATABASE_URL
2. Clears existing data (optional)
3. Creates the two demo accounts and a few readers
4. Creates sample books and reviews so listings have ratings to show
"""

import sys
from datetime import date
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import delete
from sqlalchemy.orm import Session

from bookreviews.config import get_settings
from bookreviews.database import Database
from bookreviews.models import Book, Review, User, UserRole, Wishlist
from bookreviews.services.auth import DEMO_ACCOUNTS
from bookreviews.services.security import hash_password

READER_PASSWORD = "Reader123"


def clear_data(db: Session) -> None:
    """Delete every row, children first."""
    print("Clearing existing data...")
    for model in (Review, Wishlist, Book, User):
        db.execute(delete(model))
    db.commit()
    print("Data cleared.")


def create_users(db: Session) -> dict[str, User]:
    """Create the demo admin, the demo user and three readers."""
    print("Creating users...")
    users = {}

    for account in DEMO_ACCOUNTS.values():
        users[account["username"]] = User(
            username=account["username"],
            email=account["email"],
            hashed_password=hash_password(account["password"]),
            role=account["role"].value,
        )

    for username in ("ada", "bruno", "chen"):
        users[username] = User(
            username=username,
            email=f"{username}@example.com",
            hashed_password=hash_password(READER_PASSWORD),
            role=UserRole.USER.value,
        )

    db.add_all(users.values())
    db.commit()
    print(f"Created {len(users)} users (reader password: {READER_PASSWORD}).")
    return users


def create_books(db: Session) -> dict[str, Book]:
    """Create sample books across a handful of genres."""
    print("Creating books...")
    books_data = [
        {
            "title": "Dune",
            "author": "Frank Herbert",
            "description": "A desert planet, a noble family and the spice melange.",
            "isbn": "9780441172719",
            "genre": "Science Fiction",
            "published_date": date(1965, 8, 1),
        },
        {
            "title": "Foundation",
            "author": "Isaac Asimov",
            "description": "A mathematician foresees the fall of the Galactic Empire.",
            "isbn": "9780553293357",
            "genre": "Science Fiction",
            "published_date": date(1951, 6, 1),
        },
        {
            "title": "Neuromancer",
            "author": "William Gibson",
            "description": "A washed-up hacker is hired for one last job.",
            "isbn": "9780441569595",
            "genre": "Science Fiction",
            "published_date": date(1984, 7, 1),
        },
        {
            "title": "Pride and Prejudice",
            "author": "Jane Austen",
            "description": "Elizabeth Bennet and the proud Mr. Darcy.",
            "isbn": "9780141439518",
            "genre": "Classics",
            "published_date": date(1813, 1, 28),
        },
        {
            "title": "Emma",
            "author": "Jane Austen",
            "description": "Handsome, clever, and rich, Emma Woodhouse plays matchmaker.",
            "isbn": "9780141439587",
            "genre": "Classics",
            "published_date": date(1815, 12, 23),
        },
        {
            "title": "The Hobbit",
            "author": "J.R.R. Tolkien",
            "description": "Bilbo Baggins is swept into a quest for dragon gold.",
            "isbn": "9780547928227",
            "genre": "Fantasy",
            "published_date": date(1937, 9, 21),
        },
        {
            "title": "Murder on the Orient Express",
            "author": "Agatha Christie",
            "description": "Hercule Poirot investigates a murder aboard a snowbound train.",
            "isbn": "9780062693662",
            "genre": "Mystery",
            "published_date": date(1934, 1, 1),
        },
        {
            "title": "Nineteen Eighty-Four",
            "author": "George Orwell",
            "description": "Winston Smith rebels against the Party and Big Brother.",
            "isbn": "9780451524935",
            "genre": "Dystopian",
            "published_date": date(1949, 6, 8),
        },
    ]

    books = {data["title"]: Book(**data) for data in books_data}
    db.add_all(books.values())
    db.commit()
    print(f"Created {len(books)} books.")
    return books


def create_reviews(db: Session, users: dict[str, User], books: dict[str, Book]) -> list[Review]:
    """Give most books a few ratings; leave one unreviewed."""
    print("Creating reviews...")
    reviews_data = [
        ("ada", "Dune", 5, "The best world-building in the genre."),
        ("bruno", "Dune", 4, "Slow start, brilliant ending."),
        ("chen", "Dune", 5, None),
        ("demo_user", "Dune", 4, "Worth the hype."),
        ("ada", "Foundation", 4, "Big ideas, thin characters."),
        ("bruno", "Foundation", 3, None),
        ("chen", "Neuromancer", 4, "Dense but rewarding."),
        ("ada", "Pride and Prejudice", 5, "Sharper every time I read it."),
        ("chen", "Pride and Prejudice", 4, None),
        ("bruno", "Emma", 2, "Emma was hard to like."),
        ("ada", "The Hobbit", 5, None),
        ("bruno", "The Hobbit", 5, "A perfect adventure."),
        ("demo_user", "Murder on the Orient Express", 3, "Guessed the ending."),
    ]

    reviews = [
        Review(
            user_id=users[username].id,
            book_id=books[title].id,
            rating=rating,
            comment=comment,
        )
        for username, title, rating, comment in reviews_data
    ]
    db.add_all(reviews)
    db.add(Wishlist(user_id=users["demo_user"].id, book_id=books["Nineteen Eighty-Four"].id))
    db.commit()
    print(f"Created {len(reviews)} reviews.")
    return reviews


def seed_database(clear_existing: bool = True) -> None:
    """
    Main function to seed the database.

    Args:
        clear_existing: If True, clears existing data before seeding.
    """
    print("=" * 60)
    print("Starting database seed...")
    print("=" * 60)

    settings = get_settings()
    database = Database.from_settings(settings)
    database.create_tables()
    db = database.session()

    try:
        if clear_existing:
            clear_data(db)

        users = create_users(db)
        books = create_books(db)
        reviews = create_reviews(db, users, books)

        print("=" * 60)
        print("Database seeding completed successfully!")
        print("=" * 60)
        print("\nSummary:")
        print(f"  - Users: {len(users)}")
        print(f"  - Books: {len(books)}")
        print(f"  - Reviews: {len(reviews)}")
        print(f"\nYou can now access the API at http://localhost:{settings.port}")
        print(f"API documentation at http://localhost:{settings.port}/docs")

    except Exception as e:
        print(f"Error seeding database: {e}")
        db.rollback()
        raise
    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    seed_database()
