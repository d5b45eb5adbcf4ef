"""
Review service for product reviews and moderation.

Every write that can change the set of approved reviews of a product
refreshes the product's cached rating in the same transaction.

Reference: https://docs.sqlalchemy.org/en/21/orm/queryguide/
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.v1.schemas.review import ReviewCreate
from marketplace.core.exceptions import DataAccessError
from marketplace.models.product import Product
from marketplace.models.review import Review
from marketplace.models.user import User
from marketplace.services.rating import refresh_product_rating

logger = logging.getLogger(__name__)


class ReviewService:
    """Service for managing product reviews"""

    async def get_review(self, db: AsyncSession, review_id: str) -> Optional[Review]:
        try:
            result = await db.execute(
                select(Review)
                .where(Review.id == review_id)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching review {review_id}", exc_info=True)
            raise DataAccessError("Failed to fetch review.") from e

    async def get_reviews_for_product(
        self,
        db: AsyncSession,
        product_id: str,
        include_unapproved: bool = False,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """
        Get reviews of a product, newest first, with reviewer names.

        Args:
            db: Database session
            product_id: Product ID
            include_unapproved: If True, includes unapproved reviews (admin only)
            skip: Number of reviews to skip (for pagination)
            limit: Maximum number of reviews to return

        Returns:
            List of review dicts
        """
        query = (
            select(Review, User.name)
            .join(User, User.id == Review.user_id)
            .where(Review.product_id == product_id)
        )
        # By default, only show approved reviews unless explicitly requested
        if not include_unapproved:
            query = query.where(Review.is_approved.is_(True))
        query = query.order_by(Review.created_at.desc(), Review.id).offset(skip).limit(limit)

        try:
            result = await db.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching reviews for product {product_id}", exc_info=True)
            raise DataAccessError("Failed to fetch reviews.") from e

        return [self._to_dict(review, user_name) for review, user_name in rows]

    async def create_review(
        self, db: AsyncSession, product_id: str, user_id: str, review_data: ReviewCreate
    ) -> Review:
        """
        Create a review. New reviews await moderation (is_approved False).

        Raises:
            ValueError: If the product doesn't exist or isn't active, or the
                user already reviewed it
            DataAccessError: If the database operation fails
        """
        try:
            product_result = await db.execute(
                select(Product.id, Product.is_active).where(Product.id == product_id)
            )
            product = product_result.one_or_none()
            if product is None or not product.is_active:
                raise ValueError(f"Product with ID {product_id} not found")

            existing_result = await db.execute(
                select(Review.id).where(
                    Review.product_id == product_id, Review.user_id == user_id
                )
            )
            if existing_result.scalar_one_or_none() is not None:
                raise ValueError(
                    "You have already reviewed this product. Delete your existing review first."
                )

            review = Review(
                product_id=product_id,
                user_id=user_id,
                rating=review_data.rating,
                title=review_data.title,
                comment=review_data.comment,
                is_approved=False,
            )
            db.add(review)
            await db.flush()
            await refresh_product_rating(db, product_id)
        except SQLAlchemyError as e:
            logger.error(f"Database error creating review for product {product_id}", exc_info=True)
            raise DataAccessError("Failed to create review.") from e

        logger.info(f"Created review {review.id} for product {product_id} by user {user_id}")
        return review

    async def approve_review(self, db: AsyncSession, review_id: str) -> Optional[Review]:
        """
        Approve a review (admin only) and refresh the product's rating.

        Returns:
            Approved review if found, None otherwise
        """
        review = await self.get_review(db, review_id)
        if not review:
            return None

        review.is_approved = True
        review.updated_at = datetime.now(timezone.utc)

        try:
            await db.flush()
            await refresh_product_rating(db, review.product_id)
        except SQLAlchemyError as e:
            logger.error(f"Database error approving review {review_id}", exc_info=True)
            raise DataAccessError("Failed to approve review.") from e

        logger.info(f"Approved review {review_id}")
        return review

    async def mark_helpful(self, db: AsyncSession, review_id: str) -> Optional[Review]:
        """
        Increment a review's helpful count.

        The increment happens in the UPDATE statement itself so concurrent
        votes are never lost.

        Returns:
            Updated review if found, None otherwise
        """
        try:
            result = await db.execute(
                update(Review)
                .where(Review.id == review_id)
                .values(helpful_count=Review.helpful_count + 1)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
        except SQLAlchemyError as e:
            logger.error(f"Database error marking review {review_id} helpful", exc_info=True)
            raise DataAccessError("Failed to update review.") from e

        logger.info(f"Review {review_id} marked helpful")
        return await self.get_review(db, review_id)

    async def delete_review(
        self, db: AsyncSession, review_id: str, user_id: str, is_admin: bool = False
    ) -> bool:
        """
        Delete a review and refresh the product's rating.

        Args:
            db: Database session
            review_id: Review ID
            user_id: ID of the user deleting the review
            is_admin: Admins may delete any review

        Returns:
            True if deleted, False if not found

        Raises:
            PermissionError: If the user is neither the author nor an admin
        """
        review = await self.get_review(db, review_id)
        if not review:
            return False

        if review.user_id != user_id and not is_admin:
            logger.warning(
                f"User {user_id} attempted to delete review {review_id} owned by {review.user_id}"
            )
            raise PermissionError("You can only delete your own reviews")

        product_id = review.product_id
        try:
            await db.execute(
                delete(Review)
                .where(Review.id == review_id)
                .execution_options(synchronize_session=False)
            )
            db.expunge(review)
            await refresh_product_rating(db, product_id)
        except SQLAlchemyError as e:
            logger.error(f"Database error deleting review {review_id}", exc_info=True)
            raise DataAccessError("Failed to delete review.") from e

        logger.info(f"Deleted review {review_id} by user {user_id}")
        return True

    @staticmethod
    def _to_dict(review: Review, user_name: Optional[str]) -> Dict[str, Any]:
        return {
            "id": review.id,
            "product_id": review.product_id,
            "user_id": review.user_id,
            "rating": review.rating,
            "title": review.title,
            "comment": review.comment,
            "is_approved": review.is_approved,
            "helpful_count": review.helpful_count,
            "created_at": review.created_at,
            "updated_at": review.updated_at,
            "user_name": user_name,
        }
