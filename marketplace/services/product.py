"""
Product service for managing artisan product listings.

Reference: https://docs.sqlalchemy.org/en/21/orm/queryguide/
"""

import json
import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import String, cast, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.api.v1.schemas.product import ProductCreate, ProductSortOption, ProductUpdate
from marketplace.core.exceptions import DataAccessError
from marketplace.models.product import Product, ProductImage
from marketplace.models.review import Review
from marketplace.models.user import ArtisanProfile
from marketplace.services.json_agg import json_rows
from marketplace.services.rating import get_seller_rating

logger = logging.getLogger(__name__)

# Columns that are NOT NULL; an explicit null in a partial update leaves them as they are
REQUIRED_PRODUCT_FIELDS = (
    "name",
    "description",
    "price",
    "quantity_available",
    "is_active",
    "is_featured",
)

# Keys of the JSON objects built by the correlated sub-queries
IMAGE_JSON_COLUMNS = {
    "id": ProductImage.id,
    "image_url": ProductImage.image_url,
    "is_primary": ProductImage.is_primary,
    "alt_text": ProductImage.alt_text,
    "display_order": ProductImage.display_order,
    "created_at": ProductImage.created_at,
}
REVIEW_JSON_COLUMNS = {
    "id": Review.id,
    "user_id": Review.user_id,
    "rating": Review.rating,
    "title": Review.title,
    "comment": Review.comment,
    "is_approved": Review.is_approved,
    "helpful_count": Review.helpful_count,
    "created_at": Review.created_at,
    "updated_at": Review.updated_at,
}


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    try:
        return float(str(value))
    except ValueError:
        logger.warning(f"Unexpected value during float conversion: {value!r}")
        return None


def _to_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return int(float(value))


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "t", "true", "yes")
    return bool(value)


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def _to_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _parse_json_list(value: Any) -> List[Dict[str, Any]]:
    """Aggregated JSON arrives as text (or None when no rows matched)."""
    if value is None:
        return []
    if isinstance(value, (bytes, str)):
        value = json.loads(value)
    return [item for item in value or [] if item is not None]


def _coerce_image(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(raw["id"]),
        "image_url": str(raw["image_url"]),
        "is_primary": _to_bool(raw.get("is_primary")),
        "alt_text": _to_str(raw.get("alt_text")),
        "display_order": _to_int(raw.get("display_order")),
        "created_at": _to_datetime(raw.get("created_at")),
    }


def _coerce_review(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(raw["id"]),
        "user_id": str(raw["user_id"]),
        "rating": _to_int(raw.get("rating")),
        "title": _to_str(raw.get("title")),
        "comment": _to_str(raw.get("comment")),
        "is_approved": _to_bool(raw.get("is_approved")),
        "helpful_count": _to_int(raw.get("helpful_count")),
        "created_at": _to_datetime(raw.get("created_at")),
        "updated_at": _to_datetime(raw.get("updated_at")),
    }


def _coerce_tags(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, (bytes, str)):
        value = json.loads(value)
    return [str(tag) for tag in value]


class ProductService:
    """Service for managing product listings"""

    async def create_product(
        self, db: AsyncSession, seller_id: str, product_data: ProductCreate
    ) -> Dict[str, Any]:
        """
        Create a product and, when image_url is given, its primary image.

        Both rows are written in the caller's transaction, so a failure
        between them leaves neither behind.

        Args:
            db: Database session
            seller_id: Artisan user ID (must own an artisan profile)
            product_data: Product data

        Returns:
            Created product with relations

        Raises:
            ValueError: If the seller has no artisan profile
            DataAccessError: If the database operation fails
        """
        try:
            seller_result = await db.execute(
                select(ArtisanProfile.id).where(ArtisanProfile.user_id == seller_id)
            )
            if seller_result.scalar_one_or_none() is None:
                raise ValueError(
                    f"No artisan profile found for user {seller_id}. Please create a shop profile first."
                )

            product = Product(
                seller_id=seller_id,
                **product_data.model_dump(exclude={"image_url"}),
            )
            db.add(product)
            await db.flush()

            if product_data.image_url:
                await self.set_primary_image(db, product.id, product_data.image_url)

            logger.info(f"Created product '{product.name}' (ID: {product.id}) for seller {seller_id}")
            product_id = product.id
        except SQLAlchemyError as e:
            logger.error(f"Database error creating product for seller {seller_id}", exc_info=True)
            raise DataAccessError("Failed to create product.") from e

        return await self.get_product(db, product_id)

    async def get_product(self, db: AsyncSession, product_id: str) -> Optional[Dict[str, Any]]:
        """
        Get a product by ID with all images, seller shop and owner name, and
        reviews with reviewer names.

        Returns:
            Product dict if found, None otherwise
        """
        try:
            result = await db.execute(
                select(Product)
                .where(Product.id == product_id)
                .options(
                    selectinload(Product.images),
                    selectinload(Product.seller).selectinload(ArtisanProfile.user),
                    selectinload(Product.reviews).selectinload(Review.user),
                )
                .execution_options(populate_existing=True)
            )
            product = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching product {product_id}", exc_info=True)
            raise DataAccessError("Failed to fetch product.") from e

        if not product:
            return None
        return self._serialize(
            product,
            images=product.images,
            reviews=product.reviews,
            include_seller=True,
            include_names=True,
        )

    async def update_product(
        self, db: AsyncSession, product_id: str, product_data: ProductUpdate
    ) -> Optional[Dict[str, Any]]:
        """
        Update a product (partial).

        Only provided fields are written. A provided image_url replaces the
        primary image URL, or creates the primary image if there is none.

        Returns:
            Updated product if found, None otherwise
        """
        try:
            result = await db.execute(select(Product).where(Product.id == product_id))
            product = result.scalar_one_or_none()
            if not product:
                return None

            update_data = product_data.model_dump(exclude_unset=True)
            image_url = update_data.pop("image_url", None)
            for field in REQUIRED_PRODUCT_FIELDS:
                if field in update_data and update_data[field] is None:
                    update_data.pop(field)

            for field, value in update_data.items():
                setattr(product, field, value)
            product.updated_at = datetime.now(timezone.utc)
            await db.flush()

            if image_url:
                await self.set_primary_image(db, product_id, image_url)

            logger.info(f"Updated product {product_id}")
        except SQLAlchemyError as e:
            logger.error(f"Database error updating product {product_id}", exc_info=True)
            raise DataAccessError("Failed to update product.") from e

        return await self.get_product(db, product_id)

    async def set_primary_image(
        self, db: AsyncSession, product_id: str, image_url: str
    ) -> ProductImage:
        """
        Make image_url the product's primary image.

        Idempotent: reuses the earliest existing primary image and clears the
        flag on any extra primaries left behind by concurrent writers.
        """
        result = await db.execute(
            select(ProductImage)
            .where(ProductImage.product_id == product_id, ProductImage.is_primary.is_(True))
            .order_by(ProductImage.created_at, ProductImage.id)
        )
        primaries = list(result.scalars().all())

        if primaries:
            primary = primaries[0]
            primary.image_url = image_url
            for extra in primaries[1:]:
                extra.is_primary = False
        else:
            primary = ProductImage(product_id=product_id, image_url=image_url, is_primary=True)
            db.add(primary)

        await db.flush()
        return primary

    async def delete_product(self, db: AsyncSession, product_id: str) -> Dict[str, Any]:
        """
        Delete a product's images, then the product.

        A product that no longer exists is reported as already deleted rather
        than as an error, so the call is safe to retry.

        Returns:
            Dict with message and deleted flag
        """
        try:
            await db.execute(delete(ProductImage).where(ProductImage.product_id == product_id))
            result = await db.execute(delete(Product).where(Product.id == product_id))
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Database error deleting product {product_id}", exc_info=True)
            raise DataAccessError("Failed to delete product.") from e

        if result.rowcount == 0:
            logger.info(f"Product {product_id} not found or already deleted")
            return {"message": "Product not found or already deleted.", "deleted": False}

        logger.info(f"Deleted product {product_id}")
        return {"message": "Product deleted successfully.", "deleted": True}

    async def get_products_by_seller(
        self, db: AsyncSession, seller_id: str
    ) -> List[Dict[str, Any]]:
        """Get every product of a seller (active or not), newest first."""
        try:
            result = await db.execute(
                select(Product)
                .where(Product.seller_id == seller_id)
                .options(selectinload(Product.images), selectinload(Product.reviews))
                .order_by(Product.created_at.desc(), Product.id)
                .execution_options(populate_existing=True)
            )
            products = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching products for seller {seller_id}", exc_info=True)
            raise DataAccessError("Failed to fetch products.") from e

        return [
            self._serialize(p, images=p.images, reviews=p.reviews, include_seller=False)
            for p in products
        ]

    async def get_products_by_seller_with_shop_info(
        self, db: AsyncSession, seller_id: str
    ) -> List[Dict[str, Any]]:
        """Same as get_products_by_seller, plus the seller's shop name."""
        try:
            result = await db.execute(
                select(Product)
                .where(Product.seller_id == seller_id)
                .options(
                    selectinload(Product.images),
                    selectinload(Product.reviews),
                    selectinload(Product.seller),
                )
                .order_by(Product.created_at.desc(), Product.id)
                .execution_options(populate_existing=True)
            )
            products = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(
                f"Database error fetching products with shop info for seller {seller_id}",
                exc_info=True,
            )
            raise DataAccessError("Failed to fetch products for artisan with shop info.") from e

        return [
            self._serialize(p, images=p.images, reviews=p.reviews, include_seller=True)
            for p in products
        ]

    async def get_featured_products(
        self, db: AsyncSession, limit: int = 4
    ) -> List[Dict[str, Any]]:
        """Get the newest active, featured products with their primary image."""
        try:
            result = await db.execute(
                select(Product)
                .where(Product.is_active.is_(True), Product.is_featured.is_(True))
                .options(
                    selectinload(Product.images.and_(ProductImage.is_primary.is_(True))),
                    selectinload(Product.seller),
                    selectinload(Product.reviews),
                )
                .order_by(Product.created_at.desc(), Product.id)
                .limit(limit)
                .execution_options(populate_existing=True)
            )
            products = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error fetching featured products", exc_info=True)
            raise DataAccessError("Failed to fetch featured products.") from e

        return [
            self._serialize(p, images=p.images[:1], reviews=p.reviews, include_seller=True)
            for p in products
        ]

    async def get_products(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 12,
        search_query: str = "",
        category_id: str = "",
        sort_by: ProductSortOption = "newest",
    ) -> Dict[str, Any]:
        """
        Get one page of active products with optional search, category filter
        and sorting.

        Filters combine with AND:
        - is_active is always required
        - search_query matches name or description (case-insensitive
          substring) or an exact tag
        - category_id must match exactly

        Each product's primary image and reviews are attached by correlated
        sub-queries; seller shop names are resolved in one batch query for the
        page.

        Args:
            db: Database session
            page: 1-based page number
            limit: Page size
            search_query: Optional search text
            category_id: Optional category ID
            sort_by: newest (default), price-asc, price-desc or rating

        Returns:
            Dict with products, total_pages and total_products
        """
        offset = (page - 1) * limit

        conditions = [Product.is_active.is_(True)]
        search_query = (search_query or "").strip()
        if search_query:
            term = search_query.lower()
            conditions.append(
                or_(
                    Product.name.icontains(term, autoescape=True),
                    Product.description.icontains(term, autoescape=True),
                    cast(Product.tags, String).icontains(json.dumps(term), autoescape=True),
                )
            )
        if category_id:
            conditions.append(Product.category_id == category_id)

        if sort_by == "price-asc":
            order_by = [Product.price.asc()]
        elif sort_by == "price-desc":
            order_by = [Product.price.desc()]
        elif sort_by == "rating":
            order_by = [Product.average_rating.desc().nulls_last(), Product.review_count.desc()]
        else:
            order_by = [Product.created_at.desc()]
        order_by.append(Product.id)

        images_json = (
            select(json_rows(IMAGE_JSON_COLUMNS))
            .where(ProductImage.product_id == Product.id, ProductImage.is_primary.is_(True))
            .correlate(Product)
            .scalar_subquery()
            .label("images_json")
        )
        reviews_json = (
            select(json_rows(REVIEW_JSON_COLUMNS))
            .where(Review.product_id == Product.id)
            .correlate(Product)
            .scalar_subquery()
            .label("reviews_json")
        )

        try:
            count_result = await db.execute(
                select(func.count(Product.id)).where(*conditions)
            )
            total_products = int(count_result.scalar() or 0)

            result = await db.execute(
                select(*Product.__table__.c, images_json, reviews_json)
                .where(*conditions)
                .order_by(*order_by)
                .offset(offset)
                .limit(limit)
            )
            raw_products = result.mappings().all()

            seller_ids = sorted({row["seller_id"] for row in raw_products if row["seller_id"]})
            shop_names: Dict[str, str] = {}
            if seller_ids:
                seller_result = await db.execute(
                    select(ArtisanProfile.user_id, ArtisanProfile.shop_name).where(
                        ArtisanProfile.user_id.in_(seller_ids)
                    )
                )
                shop_names = {str(user_id): shop_name for user_id, shop_name in seller_result.all()}
        except SQLAlchemyError as e:
            logger.error("Database error fetching products with filters", exc_info=True)
            raise DataAccessError("Failed to fetch products with filters.") from e

        products = [self._coerce_row(row, shop_names) for row in raw_products]
        logger.info(
            f"Fetched page {page} of products ({len(products)} of {total_products}, sort={sort_by})"
        )
        return {
            "products": products,
            "total_pages": math.ceil(total_products / limit),
            "total_products": total_products,
        }

    async def get_seller_average_rating(
        self, db: AsyncSession, seller_id: str
    ) -> Dict[str, Any]:
        """
        Average rating over the seller's approved reviews.

        Returns:
            Dict with average_rating (one decimal, 0 when none) and review_count
        """
        try:
            average_rating, review_count = await get_seller_rating(
                db, seller_id, approved_only=True
            )
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching rating for seller {seller_id}", exc_info=True)
            raise DataAccessError("Failed to fetch seller average rating.") from e
        return {"average_rating": average_rating, "review_count": review_count}

    @staticmethod
    def _coerce_row(row, shop_names: Dict[str, str]) -> Dict[str, Any]:
        """
        Convert a loosely typed row from the list query into product fields.

        Aggregated JSON carries numbers, booleans and timestamps as whatever
        the database serialized, so every field is converted explicitly.
        """
        seller_id = str(row["seller_id"])
        shop_name = shop_names.get(seller_id)
        images = [_coerce_image(raw) for raw in _parse_json_list(row["images_json"])]
        # JSON aggregates carry no row order; newest review first, as in get_reviews_for_product
        reviews = sorted(
            (_coerce_review(raw) for raw in _parse_json_list(row["reviews_json"])),
            key=lambda review: (review["created_at"] or datetime.min, review["id"]),
            reverse=True,
        )
        return {
            "id": str(row["id"]),
            "seller_id": seller_id,
            "category_id": _to_str(row["category_id"]),
            "name": str(row["name"]),
            "description": str(row["description"] or ""),
            "price": _to_float(row["price"]) or 0.0,
            "quantity_available": _to_int(row["quantity_available"]),
            "is_featured": _to_bool(row["is_featured"]),
            "is_active": _to_bool(row["is_active"]),
            "created_at": _to_datetime(row["created_at"]),
            "updated_at": _to_datetime(row["updated_at"]),
            "materials_used": _to_str(row["materials_used"]),
            "dimensions": _to_str(row["dimensions"]),
            "weight": _to_float(row["weight"]),
            "care_instructions": _to_str(row["care_instructions"]),
            "tags": _coerce_tags(row["tags"]),
            "average_rating": _to_float(row["average_rating"]) or 0.0,
            "review_count": _to_int(row["review_count"]),
            "images": images[:1],
            "reviews": reviews,
            "seller": {"user_id": seller_id, "shop_name": shop_name} if shop_name else None,
        }

    @staticmethod
    def _serialize(
        product: Product,
        images,
        reviews,
        include_seller: bool,
        include_names: bool = False,
    ) -> Dict[str, Any]:
        seller = None
        if include_seller and product.seller is not None:
            seller = {
                "user_id": product.seller.user_id,
                "shop_name": product.seller.shop_name or "",
            }
            if include_names and product.seller.user is not None:
                seller["user_name"] = product.seller.user.name

        return {
            "id": product.id,
            "seller_id": product.seller_id,
            "category_id": product.category_id or None,
            "name": product.name,
            "description": product.description,
            "price": _to_float(product.price),
            "quantity_available": product.quantity_available,
            "is_featured": product.is_featured,
            "is_active": product.is_active,
            "created_at": product.created_at,
            "updated_at": product.updated_at,
            "materials_used": product.materials_used or None,
            "dimensions": product.dimensions or None,
            "weight": _to_float(product.weight),
            "care_instructions": product.care_instructions or None,
            "tags": product.tags or None,
            "average_rating": product.average_rating or 0.0,
            "review_count": product.review_count or 0,
            "images": [
                {
                    "id": image.id,
                    "image_url": image.image_url,
                    "is_primary": image.is_primary,
                    "alt_text": image.alt_text,
                    "display_order": image.display_order,
                    "created_at": image.created_at,
                }
                for image in images
            ],
            "reviews": [
                {
                    "id": review.id,
                    "user_id": review.user_id,
                    "rating": review.rating,
                    "title": review.title,
                    "comment": review.comment,
                    "is_approved": review.is_approved,
                    "helpful_count": review.helpful_count,
                    "created_at": review.created_at,
                    "updated_at": review.updated_at,
                    "user_name": (
                        review.user.name
                        if include_names and review.user is not None
                        else None
                    ),
                }
                for review in reviews
            ],
            "seller": seller,
        }
