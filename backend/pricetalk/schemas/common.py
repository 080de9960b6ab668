"""
Response envelope shared by every REST endpoint.
"""
import math
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Pagination(BaseModel):
    """Pagination block returned with list endpoints."""
    page: int = Field(..., description="Current page (1-based)")
    limit: int = Field(..., description="Items per page")
    total: int = Field(..., description="Total number of items")
    total_pages: int = Field(..., description="Number of pages")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if limit else 0,
        )


class ApiResponse(BaseModel, Generic[T]):
    """Uniform success envelope: {success, data, message?, pagination?}."""
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    pagination: Optional[Pagination] = None


class Page(BaseModel, Generic[T]):
    """Service-level page of results before it is wrapped in the envelope."""
    items: list[T]
    pagination: Pagination
