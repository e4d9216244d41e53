"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.

Key Concepts:
=============

1. Application Factory Pattern
   - create_app() returns a configured app
   - Tests pass their own Database handle (in-memory SQLite)

2. Lifespan Events
   - startup: optionally create tables, log configuration
   - shutdown: dispose of the connection pool

3. Middleware Stack
   - CORS: Allow cross-origin requests
   - SlowAPI: Per-client rate limiting

4. Exception Handlers
   - Every failure becomes a JSON body {"error": "<message>"}
   - Application errors keep their own status code
   - Storage-engine errors are logged, never echoed to the client
   - In debug mode a "stack" list is added to 500 responses
"""

import logging
import traceback
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from bookreviews.config import Settings, get_settings
from bookreviews.database import Database
from bookreviews.exceptions import BookReviewError, ConflictError, ServiceUnavailableError
from bookreviews.routers import auth_router, books_router, reviews_router, users_router
from bookreviews.services.rate_limiter import limiter, rate_limit_exceeded_handler

# =============================================================================
# Logging Configuration
# =============================================================================
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for "canceling statement due to statement timeout"
QUERY_CANCELED = "57014"

# Unique constraint / index name -> (field reported to the client, message)
CONFLICT_CONSTRAINTS = {
    "books_isbn_key": ("isbn", "A book with this ISBN already exists"),
    "ix_users_email": ("email", "An account with this email already exists"),
    "ix_users_username": ("username", "An account with this username already exists"),
    "uq_review_user_book": ("book_id", "You have already reviewed this book"),
}

# Drivers without diagnostics (SQLite) name the columns instead:
# "UNIQUE constraint failed: users.email"
CONFLICT_COLUMNS = {
    "books.isbn": "books_isbn_key",
    "users.email": "ix_users_email",
    "users.username": "ix_users_username",
    "reviews.user_id": "uq_review_user_book",
}


def describe_integrity_error(exc: IntegrityError) -> tuple[str, str | None]:
    """Map a unique-constraint violation to a readable message and field."""
    diag = getattr(exc.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint not in CONFLICT_CONSTRAINTS:
        text = str(exc.orig).lower()
        constraint = next(
            (name for marker, name in CONFLICT_COLUMNS.items() if marker in text),
            None,
        )
    if constraint is None:
        return "The request conflicts with existing data", None

    field, message = CONFLICT_CONSTRAINTS[constraint]
    return message, field


def error_response(
    status_code: int,
    message: str,
    exc: BaseException | None = None,
    debug: bool = False,
    **extra,
) -> JSONResponse:
    content = {"error": message, **extra}
    if debug and exc is not None:
        content["stack"] = traceback.format_exception(exc)
    return JSONResponse(status_code=status_code, content=content)


# =============================================================================
# Exception Handlers
# =============================================================================
def register_exception_handlers(app: FastAPI, app_settings: Settings) -> None:
    """Attach the JSON error handlers to ``app``."""
    debug = app_settings.debug

    @app.exception_handler(BookReviewError)
    async def app_error_handler(request: Request, exc: BookReviewError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__}: {exc.message} {exc.context}")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        if isinstance(exc, ConflictError):
            return error_response(exc.status_code, exc.message, field=exc.field)
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        response = error_response(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """
        Malformed input (bad JSON, wrong types, failed field rules) is a 400.
        """
        details = [
            {
                "field": ".".join(str(part) for part in error["loc"] if part != "body"),
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        return error_response(status.HTTP_400_BAD_REQUEST, "Validation failed", details=details)

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        message, field = describe_integrity_error(exc)
        logger.warning(f"Integrity error on {request.url.path}: {exc.orig}")
        return error_response(status.HTTP_409_CONFLICT, message, field=field)

    @app.exception_handler(PoolTimeoutError)
    async def pool_timeout_handler(request: Request, exc: PoolTimeoutError) -> JSONResponse:
        logger.error(f"Connection pool exhausted: {exc}")
        return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, ServiceUnavailableError().message)

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """
        Handle remaining database errors.

        Statement timeouts become 503; everything else is a 500 with a
        generic message.
        """
        if isinstance(exc, OperationalError) and getattr(exc.orig, "pgcode", None) == QUERY_CANCELED:
            logger.error(f"Statement timeout on {request.url.path}")
            return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, ServiceUnavailableError().message)

        logger.error(f"Database error: {exc}")
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "A database error occurred. Please try again later.",
            exc=exc,
            debug=debug,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error: {exc}", exc_info=True)
        message = str(exc) if debug else "An internal error occurred."
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            message,
            exc=exc,
            debug=debug,
        )


# =============================================================================
# Application Factory
# =============================================================================
def create_app(
    app_settings: Settings | None = None,
    database: Database | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Settings to use (defaults to the cached settings)
        database: Database handle (defaults to one built from settings)

    Returns:
        Configured FastAPI application instance
    """
    app_settings = app_settings or settings
    # A handle passed in by the caller is disposed by the caller
    owns_database = database is None
    if database is None:
        database = Database.from_settings(app_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # ----- STARTUP -----
        logger.info(f"Starting {app_settings.app_name}...")
        logger.info(f"Environment: {app_settings.environment}, debug: {app_settings.debug}")
        if app_settings.create_tables_on_startup:
            database.create_tables()
            logger.info("Database tables created")

        yield

        # ----- SHUTDOWN -----
        logger.info(f"Shutting down {app_settings.app_name}...")
        if owns_database:
            database.dispose()

    app = FastAPI(
        title=app_settings.app_name,
        description="""
## Book Review API

Browse books, rate them and read what other readers think.

### Features
- **Books**: Search, filter and sort with live rating aggregates
- **Reviews**: One rating (1-5) and comment per user per book
- **Users**: Profiles, statistics and admin management

### Authentication
Send `Authorization: Bearer <token>` from `/auth/login` or `/auth/register`.
        """,
        version=app_settings.api_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # The explicit database handle every request session comes from
    app.state.database = database

    # -------------------------------------------------------------------------
    # Rate Limiting
    # -------------------------------------------------------------------------
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, app_settings)

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    api_prefix = f"/api/{app_settings.api_version}"
    app.include_router(auth_router, prefix=api_prefix)
    app.include_router(books_router, prefix=api_prefix)
    app.include_router(reviews_router, prefix=api_prefix)
    app.include_router(users_router, prefix=api_prefix)

    # -------------------------------------------------------------------------
    # Health Check Endpoint
    # -------------------------------------------------------------------------
    @app.get(
        "/health",
        tags=["Health"],
        summary="Health check",
        description="Check that the API is running and the database answers.",
    )
    def health_check() -> dict:
        """
        Used by load balancers and container orchestrators.

        Returns 200 either way; ``database`` says whether SELECT 1 worked.
        """
        try:
            database_ok = database.ping()
        except SQLAlchemyError as exc:
            logger.error(f"Health check database ping failed: {exc}")
            database_ok = False

        return {
            "status": "healthy" if database_ok else "degraded",
            "app": app_settings.app_name,
            "version": app_settings.api_version,
            "database": database_ok,
            "rate_limiting": {
                "enabled": app_settings.rate_limit_enabled,
                "default_limit": app_settings.rate_limit_default,
            },
        }

    @app.get(
        "/",
        tags=["Root"],
        summary="API root",
    )
    def root() -> dict:
        """Root endpoint with API information."""
        return {
            "message": f"Welcome to {app_settings.app_name}",
            "version": app_settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    return app


# =============================================================================
# Application Instance
# =============================================================================
# This is what uvicorn imports: uvicorn bookreviews.main:app
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "bookreviews.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
