"""
Product review model.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.core.database import Base
from marketplace.models.user import generate_uuid

if TYPE_CHECKING:
    from marketplace.models.product import Product
    from marketplace.models.user import User


class Review(Base):
    """
    Buyer review of a product.

    Attributes:
        id: Primary key
        product_id: Foreign key to products table
        user_id: Foreign key to users table (reviewer)
        rating: Rating value (1-5)
        title: Short review title
        comment: Review comment/text
        is_approved: Moderation flag; only approved reviews count toward
            product and seller ratings
        helpful_count: Number of "helpful" votes
        created_at: Timestamp when review was created
        updated_at: Timestamp when review was last updated
    """

    __tablename__ = "reviews"
    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
        Index("ix_reviews_product_id", "product_id"),
        Index("ix_reviews_user_id", "user_id"),
        Index("ix_reviews_product_approved", "product_id", "is_approved"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        comment="Product being reviewed",
    )
    product: Mapped["Product"] = relationship("Product", back_populates="reviews")

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="User who wrote the review",
    )
    user: Mapped["User"] = relationship("User", back_populates="reviews")

    rating: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Rating value (1-5 stars)",
    )
    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Moderation
    is_approved: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Whether the review has been approved by an admin",
    )
    helpful_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

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
        """String representation of review"""
        return (
            f"<Review(id={self.id}, product_id={self.product_id}, "
            f"user_id={self.user_id}, rating={self.rating})>"
        )
