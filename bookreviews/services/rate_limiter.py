"""
Request Rate Limits

slowapi limiter shared by every router. Each route picks one of the
configured tiers with ``@limiter.limit(...)``:

- RATE_LIMIT_DEFAULT: single-entity reads
- RATE_LIMIT_SEARCH: listings and search
- RATE_LIMIT_WRITE: creates, updates and deletes
- RATE_LIMIT_AUTH: login and registration

Clients are keyed by IP. Counters live in process memory unless
RATE_LIMIT_STORAGE_URI points at a shared store.
"""

import logging

from fastapi import Request, status
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from bookreviews.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

RETRY_AFTER_SECONDS = 60


def get_client_ip(request: Request) -> str:
    """Client address, trusting X-Forwarded-For / X-Real-IP from a reverse proxy."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    client = forwarded.split(",")[0].strip()
    if client:
        return client

    real_ip = request.headers.get("X-Real-IP", "").strip()
    return real_ip or get_remote_address(request)


def create_limiter() -> Limiter:
    limiter = Limiter(
        key_func=get_client_ip,
        default_limits=[settings.rate_limit_default],
        storage_uri=settings.rate_limit_storage_uri,
        strategy="fixed-window",
        enabled=settings.rate_limit_enabled,
    )
    logger.info(
        f"Rate limiting {'on' if settings.rate_limit_enabled else 'off'} "
        f"(storage {settings.rate_limit_storage_uri})"
    )
    return limiter


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with the usual ``{"error": ...}`` body and a Retry-After header."""
    limit = str(exc.detail)
    logger.warning(f"{get_client_ip(request)} exceeded {limit} on {request.url.path}")

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": "Too many requests. Please slow down.", "limit": limit},
        headers={"Retry-After": str(RETRY_AFTER_SECONDS), "X-RateLimit-Limit": limit},
    )
