"""
Response envelope shared by every router.

Successful responses look like ``{"success": true, "data": ...}``; failures
are raised as HTTPException with ``{"success": false, "error", "message"}``.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T | None = None
    message: str | None = None


class PageMeta(BaseModel):
    """Pagination block attached to list payloads."""

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    pages: int = Field(..., ge=0)


def error_detail(error_code: str, message: str) -> dict:
    """Build the failure envelope used as HTTPException detail."""
    return {"success": False, "error": error_code, "message": message}
