"""
Product listing models.

Reference: https://docs.sqlalchemy.org/en/21/orm/basic_relationships.html
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.core.database import Base
from marketplace.models.user import generate_uuid

if TYPE_CHECKING:
    from marketplace.models.review import Review
    from marketplace.models.user import ArtisanProfile


class Product(Base):
    """
    Product listing owned by an artisan.

    Attributes:
        id: Primary key (UUID)
        seller_id: Owning artisan (artisan_profiles.user_id)
        category_id: Optional category identifier
        name: Product name
        description: Product description
        price: Non-negative decimal price
        quantity_available: Non-negative stock count
        materials_used, dimensions, weight, care_instructions: Listing details
        tags: List of tags used for search
        is_active: Whether the product is publicly listed
        is_featured: Whether the product is featured on the homepage
        average_rating: Cached projection of approved review ratings
        review_count: Cached count of approved reviews
        created_at / updated_at: Timestamps
    """

    __tablename__ = "products"
    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        CheckConstraint("quantity_available >= 0", name="ck_products_quantity_non_negative"),
        Index("ix_products_seller_id", "seller_id"),
        Index("ix_products_category_id", "category_id"),
        Index("ix_products_active_featured", "is_active", "is_featured"),
        Index("ix_products_active_created", "is_active", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    seller_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("artisan_profiles.user_id", ondelete="CASCADE"),
        nullable=False,
        comment="Artisan user ID - links product to its shop",
    )
    category_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity_available: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )

    materials_used: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    dimensions: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    weight: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    care_instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[Optional[list[str]]] = mapped_column(
        JSON,
        nullable=True,
        comment="List of tags for searching (e.g., ['ceramic', 'handmade'])",
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Read-side projections of approved reviews, maintained by
    # marketplace.services.rating.refresh_product_rating
    average_rating: Mapped[Optional[float]] = mapped_column(
        Float, nullable=True, default=0.0
    )
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

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

    seller: Mapped["ArtisanProfile"] = relationship(
        "ArtisanProfile", back_populates="products"
    )
    images: Mapped[list["ProductImage"]] = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.display_order",
    )
    reviews: Mapped[list["Review"]] = relationship(
        "Review",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="Review.created_at.desc()",
    )

    def __repr__(self) -> str:
        """String representation of product"""
        return (
            f"<Product(id={self.id}, name='{self.name}', "
            f"seller_id={self.seller_id}, is_active={self.is_active})>"
        )


class ProductImage(Base):
    """
    Image attached to a product.

    At most one image per product is flagged primary. This is enforced by
    ProductService, not by a database constraint.
    """

    __tablename__ = "product_images"
    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        Index("ix_product_images_product_primary", "product_id", "is_primary"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    product: Mapped["Product"] = relationship("Product", back_populates="images")

    image_url: Mapped[str] = mapped_column(String(500), nullable=False)
    alt_text: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<ProductImage(id={self.id}, product_id={self.product_id}, "
            f"is_primary={self.is_primary})>"
        )
