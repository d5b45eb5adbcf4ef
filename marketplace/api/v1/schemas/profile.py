"""
Schemas for buyer profiles and artisan shop profiles.

Reference: https://fastapi.tiangolo.com/tutorial/body/
"""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PHONE_NUMBER_PATTERN = re.compile(r"^\+?[0-9][0-9\s\-().]{5,28}$")


def _clean_shop_name(value: str) -> str:
    if not value.strip():
        raise ValueError("Shop name is required")
    return value.strip()


def _validate_url(value: Optional[str]) -> Optional[str]:
    if value is not None and not value.startswith(("http://", "https://", "/")):
        raise ValueError("Must be an absolute http(s) URL or a site-relative path")
    return value


class ProfileBase(BaseModel):
    """Base schema with common profile fields."""

    bio: Optional[str] = Field(None, max_length=2000, description="Short biography")
    profile_image_url: Optional[str] = Field(
        None, max_length=500, description="URL to the user's avatar"
    )
    address: Optional[str] = Field(None, max_length=255, description="Street address")
    city: Optional[str] = Field(None, max_length=100, description="City")
    state: Optional[str] = Field(None, max_length=100, description="State/province")
    zip_code: Optional[str] = Field(None, max_length=20, description="ZIP/postal code")
    country: Optional[str] = Field(None, max_length=100, description="Country")
    phone_number: Optional[str] = Field(None, max_length=30, description="Contact phone number")

    @field_validator("profile_image_url")
    @classmethod
    def validate_profile_image_url(cls, v: Optional[str]) -> Optional[str]:
        return _validate_url(v)

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not PHONE_NUMBER_PATTERN.match(v):
            raise ValueError("Invalid phone number")
        return v


class ProfileCreate(ProfileBase):
    """
    Schema for creating a profile.

    All fields are optional; the owning user is taken from the session.
    """

    pass


class ProfileUpdate(ProfileBase):
    """
    Schema for updating a profile.

    Only fields that are explicitly set are applied (model_dump(exclude_unset=True)).
    """

    pass


class ProfileResponse(ProfileBase):
    """Schema for profile response."""

    id: str = Field(..., description="Profile ID")
    user_id: str = Field(..., description="Owning user ID")
    created_at: Optional[datetime] = Field(None, description="Timestamp when profile was created")
    updated_at: Optional[datetime] = Field(None, description="Timestamp when profile was last updated")

    model_config = ConfigDict(from_attributes=True)


class ProfileStatusResponse(BaseModel):
    """
    Profile completeness for the authenticated user, read fresh from the database.
    """

    user_id: str
    role: Optional[str] = None
    has_profile: bool
    has_artisan_profile: bool


class ArtisanProfileBase(BaseModel):
    """Base schema with common artisan profile fields."""

    shop_description: Optional[str] = Field(None, max_length=2000, description="Shop description")
    bio: Optional[str] = Field(None, max_length=2000, description="Artisan biography")
    location: Optional[str] = Field(None, max_length=200, description="Location")
    website: Optional[str] = Field(None, max_length=500, description="Shop website URL")
    policies: Optional[str] = Field(None, description="General shop policies")
    shipping_info: Optional[str] = Field(None, description="Shipping information")
    return_policy: Optional[str] = Field(None, description="Return policy")

    @field_validator("website")
    @classmethod
    def validate_website(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("Website must start with http:// or https://")
        return v


class ArtisanProfileCreate(ArtisanProfileBase):
    """
    Schema for creating an artisan profile.

    Attributes:
        shop_name: Name of the shop (required)
    """

    shop_name: str = Field(..., min_length=1, max_length=200, description="Shop name")

    @field_validator("shop_name")
    @classmethod
    def validate_shop_name(cls, v: str) -> str:
        return _clean_shop_name(v)


class ArtisanProfileUpdate(ArtisanProfileBase):
    """
    Schema for updating an artisan profile.

    All fields are optional for partial updates.
    """

    shop_name: Optional[str] = Field(None, min_length=1, max_length=200, description="Shop name")

    @field_validator("shop_name")
    @classmethod
    def validate_shop_name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _clean_shop_name(v)


class ArtisanProfileResponse(ArtisanProfileBase):
    """Schema for artisan profile response."""

    id: str
    user_id: str
    shop_name: str
    is_top_artisan: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ArtisanProfileWithOwner(ArtisanProfileResponse):
    """Artisan profile flattened with the owner's name and email."""

    name: str = ""
    email: str = ""


class ArtisanProfileForDisplay(ArtisanProfileResponse):
    """
    Artisan profile projection for cards and detail pages.

    average_rating is the simple average of every review rating across all of
    the artisan's products, rounded to one decimal place. total_sales is the
    number of those reviews.
    """

    profile_image_url: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    phone_number: Optional[str] = None
    average_rating: float = 0.0
    total_sales: int = 0


class ArtisanProfilePage(BaseModel):
    """Paginated list of artisan profiles with owner details."""

    profiles: List[ArtisanProfileWithOwner]
    total_pages: int
    total_profiles: int


class ArtisanDisplayPage(BaseModel):
    """Paginated list of artisan display projections."""

    profiles: List[ArtisanProfileForDisplay]
    total_pages: int
    total_profiles: int
