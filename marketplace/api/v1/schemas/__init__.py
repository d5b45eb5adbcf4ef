"""
Pydantic schemas for API request/response models
"""

from marketplace.api.v1.schemas.identity import SessionIdentity
from marketplace.api.v1.schemas.product import ProductCreate, ProductResponse, ProductUpdate
from marketplace.api.v1.schemas.profile import ProfileCreate, ProfileResponse, ProfileUpdate

__all__ = [
    "ProductCreate",
    "ProductResponse",
    "ProductUpdate",
    "ProfileCreate",
    "ProfileResponse",
    "ProfileUpdate",
    "SessionIdentity",
]
