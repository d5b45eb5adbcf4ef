"""
Rating aggregation shared by products, sellers and artisan profiles.

Every rating shown by the API is derived from the reviews table by a single
database aggregate (SUM and COUNT), never by walking reviews in memory.

Approval policy:
- Product cached ratings and the seller rating count approved reviews only.
- Artisan profile display ratings count every review.
Both paths go through review_stats_query so the difference is one explicit
argument.

Reference: https://docs.sqlalchemy.org/en/20/tutorial/data_select.html#aggregate-functions-with-group-by-having
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models.product import Product
from marketplace.models.review import Review

logger = logging.getLogger(__name__)


def round_rating(total_rating: Optional[int], review_count: Optional[int]) -> float:
    """
    Simple average of ratings rounded half-up to one decimal place.

    Returns 0.0 when there are no reviews.

    >>> round_rating(13, 3)
    4.3
    """
    if not review_count:
        return 0.0
    average = Decimal(int(total_rating or 0)) / Decimal(int(review_count))
    return float(average.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def review_stats_query(approved_only: bool) -> Select:
    """
    Per-seller review totals across all of the seller's products.

    Columns: seller_id, total_rating, review_count. Use as a subquery and
    outer-join it on the seller ID; sellers without reviews get no row.
    """
    query = (
        select(
            Product.seller_id.label("seller_id"),
            func.sum(Review.rating).label("total_rating"),
            func.count(Review.id).label("review_count"),
        )
        .join(Review, Review.product_id == Product.id)
        .group_by(Product.seller_id)
    )
    if approved_only:
        query = query.where(Review.is_approved.is_(True))
    return query


async def get_seller_rating(
    db: AsyncSession, seller_id: str, approved_only: bool = True
) -> tuple[float, int]:
    """
    Average rating and review count for one seller.

    Returns:
        Tuple of (average rating rounded to one decimal, review count)
    """
    query = (
        select(func.sum(Review.rating), func.count(Review.id))
        .join(Product, Review.product_id == Product.id)
        .where(Product.seller_id == seller_id)
    )
    if approved_only:
        query = query.where(Review.is_approved.is_(True))

    result = await db.execute(query)
    total_rating, review_count = result.one()
    review_count = int(review_count or 0)
    return round_rating(total_rating, review_count), review_count


async def refresh_product_rating(db: AsyncSession, product_id: str) -> tuple[float, int]:
    """
    Recompute a product's cached average_rating and review_count.

    Must be called in the same transaction as any write that adds, removes or
    (un)approves a review of the product.

    Returns:
        Tuple of (average rating, approved review count)
    """
    result = await db.execute(
        select(func.sum(Review.rating), func.count(Review.id)).where(
            Review.product_id == product_id,
            Review.is_approved.is_(True),
        )
    )
    total_rating, review_count = result.one()
    review_count = int(review_count or 0)
    average_rating = round_rating(total_rating, review_count)

    await db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(average_rating=average_rating, review_count=review_count)
        .execution_options(synchronize_session="fetch")
    )
    await db.flush()
    logger.info(
        f"Refreshed rating for product {product_id}: {average_rating} ({review_count} reviews)"
    )
    return average_rating, review_count
