"""
Book Review API Application Package

A REST API for books, user accounts and star-rated reviews.

Package Structure:
- config.py: Application configuration using Pydantic Settings
- database.py: Database handle (engine + session factory) and transactions
- exceptions.py: Application error hierarchy mapped to HTTP status codes
- main.py: FastAPI application factory and exception handlers
- dependencies.py: Dependency injection (sessions, pagination, caller)
- models/: SQLAlchemy ORM models
- schemas/: Pydantic request/response schemas
- routers/: API route handlers
- services/: Query building, aggregation and mutation logic
"""

__version__ = "0.1.0"
