"""
Services Package

Business logic kept apart from HTTP handling. Services receive a
session, a CallerIdentity where authorization matters, and typed
parameters; they raise ``bookreviews.exceptions`` errors.

Current services:
- auth.py: Registration, credential checks, demo accounts
- book_queries.py: Filtered/sorted/paginated book listings with rating aggregates
- books.py: Book create/update/delete (admin only, atomic cascade)
- rate_limiter.py: Rate limiting with slowapi
- review_stats.py: Rating summaries, histograms, top reviewers
- reviews.py: Review listings and create/update/delete
- security.py: Password hashing and JWT utilities
- users.py: Account views and user mutations (atomic cascade on delete)
"""
