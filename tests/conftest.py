"""
pytest Fixtures for Book Review API Tests

Shared fixtures used across all test files.

FIXTURE SCOPES:
- function (default): New instance per test function

Every test gets its own in-memory SQLite database, so tests can commit
freely (the API does) without leaking rows into each other.
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
import os

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-at-least-32-characters-long"
os.environ["DATABASE_URL"] = "sqlite://"

from collections.abc import Generator
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from bookreviews.database import Database, get_db
from bookreviews.main import create_app
from bookreviews.models import Book, Review, User, UserRole
from bookreviews.schemas.user import CallerIdentity
from tests.utils import add_review, make_user

# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture
def database() -> Generator[Database, None, None]:
    """
    Fresh in-memory SQLite database with all tables.

    Database.from_url uses StaticPool for SQLite, so every session shares
    the single connection and sees the same in-memory data.
    """
    database = Database.from_url("sqlite://")
    database.create_tables()

    yield database

    database.drop_tables()
    database.dispose()


@pytest.fixture
def db_session(database: Database) -> Generator[Session, None, None]:
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def client(database: Database, db_session: Session) -> Generator[TestClient, None, None]:
    """
    Test client wired to the test database.

    The get_db override hands the API the same session the test uses,
    so fixtures and requests see each other's commits.
    """
    app = create_app(database=database)

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# USER FIXTURES
# =============================================================================


@pytest.fixture
def sample_user(db_session: Session) -> User:
    """A regular reader."""
    return make_user(db_session, "reader", password="ReaderPass1")


@pytest.fixture
def second_user(db_session: Session) -> User:
    """Another regular user for ownership scenarios."""
    return make_user(db_session, "critic", password="CriticPass1")


@pytest.fixture
def admin_user(db_session: Session) -> User:
    return make_user(db_session, "admin", password="AdminPass1", role=UserRole.ADMIN)


@pytest.fixture
def admin_caller(admin_user: User) -> CallerIdentity:
    return CallerIdentity.model_validate(admin_user)


@pytest.fixture
def user_caller(sample_user: User) -> CallerIdentity:
    return CallerIdentity.model_validate(sample_user)


# =============================================================================
# BOOK AND REVIEW FIXTURES
# =============================================================================


@pytest.fixture
def sample_book(db_session: Session) -> Book:
    book = Book(
        title="Dune",
        author="Frank Herbert",
        description="A desert planet, a noble family and the spice melange.",
        isbn="9780441172719",
        genre="Science Fiction",
        cover_image="https://covers.example.com/dune.jpg",
        published_date=date(1965, 8, 1),
    )
    db_session.add(book)
    db_session.commit()
    return book


@pytest.fixture
def catalog(db_session: Session) -> list[Book]:
    """
    Five books in two genres, inserted in this order:

    Foundation, Neuromancer, Hyperion (Science Fiction),
    Emma, Persuasion (Classics).
    """
    books = [
        Book(title="Foundation", author="Isaac Asimov", isbn="9780553293357",
             genre="Science Fiction", published_date=date(1951, 6, 1)),
        Book(title="Neuromancer", author="William Gibson", isbn="9780441569595",
             genre="Science Fiction", published_date=date(1984, 7, 1)),
        Book(title="Hyperion", author="Dan Simmons", isbn="0385249497",
             genre="Science Fiction", published_date=date(1989, 5, 26)),
        Book(title="Emma", author="Jane Austen", genre="Classics",
             description="Handsome, clever, and rich.", published_date=date(1815, 12, 23)),
        Book(title="Persuasion", author="Jane Austen", genre="Classics",
             published_date=date(1817, 12, 20)),
    ]
    db_session.add_all(books)
    db_session.commit()
    return books


@pytest.fixture
def rated_catalog(db_session: Session, catalog: list[Book]) -> list[Book]:
    """
    The catalog with distinct average ratings:

    Foundation 5.0, Neuromancer 4.0, Hyperion 3.5, Emma 2.0, Persuasion 1.0
    """
    first = make_user(db_session, "alice")
    second = make_user(db_session, "bob")
    foundation, neuromancer, hyperion, emma, persuasion = catalog

    add_review(db_session, first, foundation, 5)
    add_review(db_session, second, foundation, 5)
    add_review(db_session, first, neuromancer, 4)
    add_review(db_session, first, hyperion, 4)
    add_review(db_session, second, hyperion, 3)
    add_review(db_session, first, emma, 2)
    add_review(db_session, first, persuasion, 1)
    return catalog


@pytest.fixture
def sample_review(db_session: Session, sample_book: Book, sample_user: User) -> Review:
    return add_review(db_session, sample_user, sample_book, 4, "Slow start, brilliant ending.")
