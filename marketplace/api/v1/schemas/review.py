"""
Schemas for product reviews.

Reference: https://fastapi.tiangolo.com/tutorial/body/
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ReviewCreate(BaseModel):
    """Schema for creating a review."""

    rating: int = Field(..., ge=1, le=5, description="Rating value (1-5 stars)")
    title: Optional[str] = Field(None, max_length=200, description="Review title")
    comment: Optional[str] = Field(None, max_length=5000, description="Review comment/text")


class ReviewResponse(BaseModel):
    """Schema for review response."""

    id: str
    product_id: str
    user_id: str
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    is_approved: bool
    helpful_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user_name: Optional[str] = Field(None, description="Reviewer display name")

    model_config = ConfigDict(from_attributes=True)
