"""
Tests for book listings: filtering, sorting, pagination and the
computed rating aggregates.
"""

import pytest
from fastapi import status

from bookreviews.exceptions import ValidationError
from bookreviews.models import Book
from bookreviews.services.book_queries import (
    BookFilters,
    BookSort,
    book_count_statement,
    like_pattern,
    list_books,
    search_books,
)
from tests.utils import add_review, make_user


class TestBookSort:
    """Tests for sort parameter resolution."""

    def test_defaults(self):
        sort = BookSort.parse(None, None)
        assert sort.sort_by == "created_at"
        assert sort.sort_order == "DESC"

    def test_unknown_key_falls_back(self):
        """Anything outside the allow-list becomes created_at."""
        assert BookSort.parse("id; DROP TABLE books", "ASC").sort_by == "created_at"

    def test_order_is_case_insensitive(self):
        assert BookSort.parse("title", "asc").sort_order == "ASC"
        assert BookSort.parse("title", "sideways").sort_order == "DESC"


class TestBookFilters:
    def test_empty(self):
        assert BookFilters().is_empty
        assert not BookFilters(min_rating=0).is_empty

    def test_as_params_skips_unset(self):
        assert BookFilters(search="dune", min_rating=4.0).as_params() == {
            "q": "dune",
            "minRating": 4.0,
        }

    def test_like_pattern_escapes_wildcards(self):
        assert like_pattern("100%_") == "%100\\%\\_%"


class TestListBooks:
    """Tests for GET /api/v1/books/ endpoint."""

    def test_list_books_empty(self, client):
        response = client.get("/api/v1/books/")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["items"] == []
        assert data["pagination"] == {
            "page": 1,
            "limit": 10,
            "total": 0,
            "totalPages": 0,
            "hasNext": False,
            "hasPrev": False,
        }

    def test_default_order_newest_first(self, client, catalog):
        titles = [book["title"] for book in client.get("/api/v1/books/").json()["items"]]

        assert titles == ["Persuasion", "Emma", "Hyperion", "Neuromancer", "Foundation"]

    def test_pagination(self, client, catalog):
        response = client.get("/api/v1/books/?page=2&limit=2")

        data = response.json()
        assert len(data["items"]) == 2
        assert data["pagination"]["total"] == 5
        assert data["pagination"]["totalPages"] == 3
        assert data["pagination"]["hasNext"] is True
        assert data["pagination"]["hasPrev"] is True

    def test_pages_cover_every_book_once(self, client, catalog):
        seen = []
        for page in (1, 2, 3):
            data = client.get(f"/api/v1/books/?page={page}&limit=2&sortBy=title&sortOrder=ASC").json()
            seen.extend(book["id"] for book in data["items"])

        assert sorted(seen) == sorted(book.id for book in catalog)

    def test_page_beyond_last_is_empty(self, client, catalog):
        data = client.get("/api/v1/books/?page=9&limit=2").json()

        assert data["items"] == []
        assert data["pagination"]["total"] == 5

    def test_limit_is_clamped(self, client, catalog):
        data = client.get("/api/v1/books/?limit=1000").json()

        assert data["pagination"]["limit"] == 100

    def test_invalid_page(self, client):
        response = client.get("/api/v1/books/?page=0")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.parametrize("page", ["100000000000000000000", "1000001"])
    def test_page_too_large(self, client, page):
        response = client.get(f"/api/v1/books/?page={page}")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["details"][0]["field"] == "query.page"

    def test_search_page_too_large(self, client):
        response = client.get("/api/v1/books/search?q=dune&page=100000000000000000000")

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_sort_by_average_rating_ascending(self, client, rated_catalog):
        data = client.get("/api/v1/books/?sortBy=average_rating&sortOrder=ASC&page=1&limit=2").json()

        assert [book["title"] for book in data["items"]] == ["Persuasion", "Emma"]
        assert [book["average_rating"] for book in data["items"]] == [1.0, 2.0]
        assert data["pagination"]["total"] == 5
        assert data["pagination"]["totalPages"] == 3

    def test_sort_by_review_count(self, client, rated_catalog):
        data = client.get("/api/v1/books/?sortBy=review_count&sortOrder=DESC").json()

        counts = [book["review_count"] for book in data["items"]]
        assert counts == sorted(counts, reverse=True)
        assert counts[0] == 2

    def test_unknown_sort_key_uses_default(self, client, catalog):
        default = client.get("/api/v1/books/").json()["items"]
        fallback = client.get("/api/v1/books/?sortBy=hashed_password").json()["items"]

        assert [book["id"] for book in fallback] == [book["id"] for book in default]

    def test_filter_by_genre_case_insensitive(self, client, catalog):
        data = client.get("/api/v1/books/?genre=classics").json()

        assert {book["title"] for book in data["items"]} == {"Emma", "Persuasion"}
        assert data["pagination"]["total"] == 2

    def test_filter_by_author_substring(self, client, catalog):
        data = client.get("/api/v1/books/?author=austen").json()

        assert data["pagination"]["total"] == 2

    def test_search_matches_description(self, client, catalog):
        data = client.get("/api/v1/books/?search=clever").json()

        assert [book["title"] for book in data["items"]] == ["Emma"]

    def test_search_matches_isbn(self, client, catalog):
        data = client.get("/api/v1/books/?search=0441569").json()

        assert [book["title"] for book in data["items"]] == ["Neuromancer"]

    def test_search_wildcards_are_literal(self, client, catalog):
        data = client.get("/api/v1/books/?search=%25").json()

        assert data["items"] == []

    def test_min_rating_filters_on_average(self, client, rated_catalog):
        data = client.get("/api/v1/books/?minRating=3.5&sortBy=average_rating&sortOrder=DESC").json()

        assert [book["title"] for book in data["items"]] == ["Foundation", "Neuromancer", "Hyperion"]
        assert data["pagination"]["total"] == 3

    def test_max_rating_includes_unreviewed_books(self, client, catalog, sample_book, db_session):
        reader = make_user(db_session, "carol")
        add_review(db_session, reader, catalog[0], 5)

        data = client.get("/api/v1/books/?maxRating=0").json()

        assert data["pagination"]["total"] == 5
        assert all(book["review_count"] == 0 for book in data["items"])

    def test_min_greater_than_max(self, client):
        response = client.get("/api/v1/books/?minRating=4&maxRating=2")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "minRating cannot be greater than maxRating"}

    def test_rating_out_of_range(self, client):
        response = client.get("/api/v1/books/?minRating=6")

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestCountMatchesRows:
    """The total always equals the number of rows across all pages."""

    @pytest.mark.parametrize(
        "filters",
        [
            BookFilters(),
            BookFilters(genre="Science Fiction"),
            BookFilters(min_rating=3.5),
            BookFilters(search="an", max_rating=4.0),
        ],
    )
    def test_total_matches_rows(self, db_session, rated_catalog, filters):
        result = list_books(db_session, filters, BookSort(), page=1, limit=100)
        total = db_session.execute(book_count_statement(filters)).scalar_one()

        assert result.pagination.total == total == len(result.items)


class TestSearchBooks:
    """Tests for GET /api/v1/books/search endpoint."""

    def test_search_requires_a_filter(self, client, catalog):
        response = client.get("/api/v1/books/search")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "At least one search parameter is required" in response.json()["error"]

    def test_search_without_filters_raises(self, db_session):
        with pytest.raises(ValidationError):
            search_books(db_session, BookFilters(), BookSort(), page=1, limit=10)

    def test_search_with_query(self, client, catalog):
        response = client.get("/api/v1/books/search?q=foundation")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert [book["title"] for book in data["items"]] == ["Foundation"]
        assert data["search_params"] == {"q": "foundation"}

    def test_search_with_rating_only(self, client, rated_catalog):
        data = client.get("/api/v1/books/search?minRating=4").json()

        assert data["pagination"]["total"] == 2
        assert data["search_params"] == {"minRating": 4.0}


class TestBooksByAuthor:
    def test_books_by_author(self, client, catalog):
        data = client.get("/api/v1/books/author/Austen").json()

        # Newest publication first
        assert [book["title"] for book in data["items"]] == ["Persuasion", "Emma"]

    def test_books_by_unknown_author(self, client, catalog):
        data = client.get("/api/v1/books/author/Tolkien").json()

        assert data["items"] == []
        assert data["pagination"]["total"] == 0


class TestRelatedAndFeatured:
    def test_related_books_same_genre(self, client, rated_catalog):
        foundation = rated_catalog[0]
        data = client.get(f"/api/v1/books/{foundation.id}/related").json()

        assert [book["title"] for book in data] == ["Neuromancer", "Hyperion"]

    def test_related_books_without_genre(self, client, db_session):
        book = Book(title="Loose Leaf", author="Unknown")
        db_session.add(book)
        db_session.commit()

        response = client.get(f"/api/v1/books/{book.id}/related")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == []

    def test_related_books_not_found(self, client):
        assert client.get("/api/v1/books/99999/related").status_code == status.HTTP_404_NOT_FOUND

    def test_featured_books(self, client, rated_catalog):
        data = client.get("/api/v1/books/featured").json()

        assert [book["title"] for book in data] == ["Foundation", "Neuromancer"]

    def test_genres(self, client, catalog):
        data = client.get("/api/v1/books/genres").json()

        assert data == [
            {"genre": "Science Fiction", "book_count": 3},
            {"genre": "Classics", "book_count": 2},
        ]
