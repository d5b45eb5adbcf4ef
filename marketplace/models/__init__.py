"""
Database models
All SQLAlchemy models should be defined here or imported here
"""

from marketplace.core.database import Base
from marketplace.models.product import Product, ProductImage
from marketplace.models.review import Review
from marketplace.models.user import ArtisanProfile, Profile, User, UserRole

__all__ = [
    "ArtisanProfile",
    "Base",
    "Product",
    "ProductImage",
    "Profile",
    "Review",
    "User",
    "UserRole",
]
