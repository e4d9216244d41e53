"""
Test Suite for the Book Review API

Test Organization:
- conftest.py: Shared fixtures (in-memory database, client, sample data)
- utils.py: Auth header and row helpers
- test_books.py: Single-book and admin CRUD endpoints
- test_book_queries.py: Filtering, sorting, pagination, related/featured
- test_reviews.py: Review CRUD and listings
- test_review_stats.py: Rating summaries and histograms
- test_users.py: Profiles and account administration
- test_auth.py: Registration, login and tokens
- test_cascade.py: Atomic cascading deletes
- test_app.py: Health check, settings and error bodies

Running Tests:
    pip install -e ".[test]"
    pytest
    pytest tests/test_book_queries.py -v
"""
