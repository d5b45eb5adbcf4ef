"""
Schemas for product listings.

Reference: https://fastapi.tiangolo.com/tutorial/body/
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

ProductSortOption = Literal["newest", "price-asc", "price-desc", "rating"]


def _normalize_tags(value: Union[str, List[str], None]) -> Optional[List[str]]:
    """
    Accept tags as a list or as a JSON array string (form submissions).

    Tags are stored lowercase so that search can match them exactly.
    """
    if value is None:
        return None
    if isinstance(value, str):
        raw = value.strip()
        if not raw:
            return None
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = raw.split(",")
        if isinstance(parsed, str):
            parsed = [parsed]
        if not isinstance(parsed, list):
            raise ValueError("Tags must be a list of strings")
        value = parsed
    tags = []
    for tag in value:
        tag = str(tag).strip().lower()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


class ProductBase(BaseModel):
    """Base schema with common product fields."""

    name: str = Field(..., min_length=1, max_length=200, description="Product name")
    description: str = Field("", description="Product description")
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2, description="Price")
    quantity_available: int = Field(1, ge=0, description="Available inventory count")
    category_id: Optional[str] = Field(None, max_length=36, description="Category ID")
    materials_used: Optional[str] = Field(None, description="Materials used")
    dimensions: Optional[str] = Field(None, max_length=200, description="Dimensions")
    weight: Optional[Decimal] = Field(None, ge=0, description="Weight")
    care_instructions: Optional[str] = Field(None, description="Care instructions")
    tags: Optional[List[str]] = Field(
        None, description="List of tags for searching (e.g., ['ceramic', 'handmade'])"
    )
    is_featured: bool = Field(False, description="Feature on the homepage")
    is_active: bool = Field(True, description="Publicly listed")

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v):
        return _normalize_tags(v)


class ProductCreate(ProductBase):
    """
    Schema for creating a product.

    Attributes:
        image_url: Optional URL stored as the product's primary image
    """

    image_url: Optional[str] = Field(None, max_length=500, description="Primary image URL")


class ProductUpdate(BaseModel):
    """
    Schema for updating a product.

    All fields are optional for partial updates.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    quantity_available: Optional[int] = Field(None, ge=0)
    category_id: Optional[str] = Field(None, max_length=36)
    materials_used: Optional[str] = None
    dimensions: Optional[str] = Field(None, max_length=200)
    weight: Optional[Decimal] = Field(None, ge=0)
    care_instructions: Optional[str] = None
    tags: Optional[List[str]] = None
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None
    image_url: Optional[str] = Field(None, max_length=500, description="Primary image URL")

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v):
        return _normalize_tags(v)


class ProductImageResponse(BaseModel):
    """Image attached to a product."""

    id: str
    image_url: str
    is_primary: bool = False
    alt_text: Optional[str] = None
    display_order: int = 0
    created_at: Optional[datetime] = None


class ProductReviewResponse(BaseModel):
    """Review as embedded in product responses."""

    id: str
    user_id: str
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    is_approved: bool = False
    helpful_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    user_name: Optional[str] = None


class ProductSellerInfo(BaseModel):
    """Seller shop information attached to a product."""

    user_id: str
    shop_name: str = ""
    user_name: Optional[str] = None


class ProductResponse(BaseModel):
    """Schema for product response."""

    id: str
    seller_id: str
    category_id: Optional[str] = None
    name: str
    description: str
    price: float
    quantity_available: int
    is_featured: bool
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    materials_used: Optional[str] = None
    dimensions: Optional[str] = None
    weight: Optional[float] = None
    care_instructions: Optional[str] = None
    tags: Optional[List[str]] = None
    average_rating: float = 0.0
    review_count: int = 0
    images: List[ProductImageResponse] = Field(default_factory=list)
    reviews: List[ProductReviewResponse] = Field(default_factory=list)
    seller: Optional[ProductSellerInfo] = None


class ProductPage(BaseModel):
    """One page of the filtered, sorted product list."""

    products: List[ProductResponse]
    total_pages: int
    total_products: int


class ProductDeleteResult(BaseModel):
    """
    Outcome of a product deletion.

    deleted is False when the product was already gone; retrying a delete is safe.
    """

    message: str
    deleted: bool


class SellerRatingResponse(BaseModel):
    """Average rating over a seller's approved reviews."""

    average_rating: float
    review_count: int
