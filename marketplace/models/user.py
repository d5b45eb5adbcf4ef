import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.core.database import Base

if TYPE_CHECKING:
    from marketplace.models.product import Product
    from marketplace.models.review import Review


def generate_uuid() -> str:
    return str(uuid.uuid4())


class UserRole(str, Enum):
    """User role enumeration."""

    BUYER = "buyer"
    ARTISAN = "artisan"
    ADMIN = "admin"


class User(Base):
    """
    User model representing an identity record in the database

    Owned by the identity provider; the stores in this service only read it.

    Attributes:
        id: Primary key, UUID
        name: Display name
        email: User email (unique)
        password_hash: Hashed password (managed by the identity provider)
        role: User role (buyer, artisan, admin)
        last_login: Timestamp of the last successful sign-in
        profile: One-to-one relationship to Profile
        artisan_profile: One-to-one relationship to ArtisanProfile
        created_at: Timestamp when user was created (auto-generated)

    Reference: https://docs.sqlalchemy.org/en/21/orm/basic_relationships.html#one-to-one
    """

    __tablename__ = "users"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    # Stored as String; enum validation is handled in Pydantic schemas
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.BUYER.value
    )
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    profile: Mapped[Optional["Profile"]] = relationship(
        "Profile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )

    artisan_profile: Mapped[Optional["ArtisanProfile"]] = relationship(
        "ArtisanProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )

    reviews: Mapped[list["Review"]] = relationship(
        "Review", back_populates="user", cascade="all, delete-orphan"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        "String representation of user"
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


class Profile(Base):
    """
    Buyer/general profile, one per user.

    Created on the first submission by its owning user and updated in place.

    Reference:
    - https://docs.sqlalchemy.org/en/21/orm/basic_relationships.html#one-to-one
    - https://docs.sqlalchemy.org/en/21/core/constraints.html#unique-constraint
    """

    __tablename__ = "profiles"
    __mapper_args__ = {"eager_defaults": True}

    # Table-level unique constraint for one-to-one relationship
    __table_args__ = (UniqueConstraint("user_id", name="uq_profiles_user_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    user: Mapped["User"] = relationship("User", back_populates="profile")

    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    profile_image_url: Mapped[Optional[str]] = mapped_column(
        String(500), nullable=True, comment="URL to user's avatar"
    )
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        "String representation of profile"
        return f"<Profile(id={self.id}, user_id={self.user_id})>"


class ArtisanProfile(Base):
    """
    Shop profile for artisan-role users.

    One-to-one relationship with User. Products reference the artisan through
    ``user_id`` (their seller id), so an artisan profile must exist before its
    owner can list products.

    Attributes:
        shop_name: Name of the shop (required)
        shop_description: Short description of the shop
        bio: Artisan biography
        location: Free-form location
        website: Shop website URL
        policies: General shop policies
        shipping_info: Shipping information
        return_policy: Return policy
        is_top_artisan: Editorial flag for homepage features
    """

    __tablename__ = "artisan_profiles"
    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (UniqueConstraint("user_id", name="uq_artisan_profiles_user_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="User ID (unique - one artisan profile per user)",
    )
    user: Mapped["User"] = relationship("User", back_populates="artisan_profile")

    shop_name: Mapped[str] = mapped_column(String(200), nullable=False)
    shop_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    policies: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    shipping_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    return_policy: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_top_artisan: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    products: Mapped[list["Product"]] = relationship(
        "Product", back_populates="seller", cascade="all, delete-orphan"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation of ArtisanProfile."""
        return (
            f"<ArtisanProfile(id={self.id}, user_id={self.user_id}, "
            f"shop_name={self.shop_name})>"
        )
