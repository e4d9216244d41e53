"""
Shared Response Schemas

Pagination metadata and the plain message body used by several routers.
"""

import math

from pydantic import BaseModel, ConfigDict, Field

# Primary keys are 32-bit INTEGER columns; larger ids would overflow the driver
MAX_ENTITY_ID = 2**31 - 1


class PaginationMeta(BaseModel):
    """
    Pagination block attached to every list response.

    Field names are snake_case in Python and camelCase on the wire
    (``totalPages``, ``hasNext``, ``hasPrev``).
    """

    page: int = Field(..., ge=1, description="Current page (1-indexed)")
    limit: int = Field(..., ge=1, description="Items per page")
    total: int = Field(..., ge=0, description="Rows matching the filters, before pagination")
    total_pages: int = Field(..., alias="totalPages", description="ceil(total / limit)")
    has_next: bool = Field(..., alias="hasNext")
    has_prev: bool = Field(..., alias="hasPrev")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        """Derive page counts and navigation flags from the totals."""
        total_pages = math.ceil(total / limit) if total > 0 else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class MessageResponse(BaseModel):
    """Body for mutations that return nothing but a confirmation."""

    message: str = Field(..., examples=["Review deleted successfully"])
