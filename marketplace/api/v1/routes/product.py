"""
Routes for product listings.

Reads are public. Writes are limited to the owning artisan; admins may
update or delete any product.

Embedded reviews awaiting moderation are shown only to admins and to the
product's owner.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.v1.schemas.identity import SessionIdentity
from marketplace.api.v1.schemas.product import (
    ProductCreate,
    ProductDeleteResult,
    ProductPage,
    ProductResponse,
    ProductSortOption,
    ProductUpdate,
)
from marketplace.core.config import settings
from marketplace.core.database import get_db
from marketplace.core.dependencies import get_optional_identity, require_roles
from marketplace.core.exceptions import DataAccessError
from marketplace.models.user import UserRole
from marketplace.services.product import ProductService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/products",
    tags=["products"],
)


def _server_error(e: DataAccessError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=e.message,
    )


def with_visible_reviews(product: dict, identity: Optional[SessionIdentity]) -> dict:
    """Drop unapproved reviews unless the caller is an admin or owns the product."""
    if identity is not None and (
        identity.role == UserRole.ADMIN or identity.id == product["seller_id"]
    ):
        return product
    return {
        **product,
        "reviews": [review for review in product["reviews"] if review["is_approved"]],
    }


def _ensure_can_manage(identity: SessionIdentity, product: dict) -> None:
    if identity.role != UserRole.ADMIN and product["seller_id"] != identity.id:
        logger.warning(
            f"User {identity.id} attempted to modify product {product['id']} "
            f"owned by {product['seller_id']}"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only manage your own products",
        )


@router.get(
    "",
    response_model=ProductPage,
    summary="List products",
    description=(
        "Active products with optional search (name, description or tag), "
        "category filter, sorting and pagination."
    ),
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Products retrieved successfully"},
        422: {"description": "Invalid query parameters"},
        500: {"description": "Internal server error"},
    },
)
async def list_products(
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: int = Query(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Page size"
    ),
    search: str = Query("", max_length=200, description="Search text"),
    category_id: str = Query("", max_length=36, description="Category ID"),
    sort_by: ProductSortOption = Query("newest", description="Sort order"),
    identity: Optional[SessionIdentity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> ProductPage:
    """
    **Sorting:**
    - newest: creation date, newest first (default)
    - price-asc / price-desc: by price
    - rating: average rating, highest first, unrated last; ties by review count
    """
    try:
        page_data = await ProductService().get_products(
            db,
            page=page,
            limit=limit,
            search_query=search,
            category_id=category_id,
            sort_by=sort_by,
        )
    except DataAccessError as e:
        raise _server_error(e) from e

    page_data["products"] = [
        with_visible_reviews(product, identity) for product in page_data["products"]
    ]
    return page_data


@router.get(
    "/featured",
    response_model=List[ProductResponse],
    summary="Featured products",
    description="Newest active, featured products with their primary image.",
    status_code=status.HTTP_200_OK,
)
async def featured_products(
    identity: Optional[SessionIdentity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> List[ProductResponse]:
    try:
        products = await ProductService().get_featured_products(
            db, limit=settings.FEATURED_PRODUCTS_LIMIT
        )
    except DataAccessError as e:
        raise _server_error(e) from e
    return [with_visible_reviews(product, identity) for product in products]


@router.get(
    "/mine",
    response_model=List[ProductResponse],
    summary="My products",
    description="Every product of the authenticated artisan, including inactive ones.",
    status_code=status.HTTP_200_OK,
    responses={
        401: {"description": "Unauthorized - authentication required"},
        403: {"description": "Artisan role required"},
    },
)
async def my_products(
    identity: SessionIdentity = Depends(require_roles(UserRole.ARTISAN)),
    db: AsyncSession = Depends(get_db),
) -> List[ProductResponse]:
    try:
        return await ProductService().get_products_by_seller(db, identity.id)
    except DataAccessError as e:
        raise _server_error(e) from e


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get product",
    description="Product with images, seller shop and reviews.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Product retrieved successfully"},
        404: {"description": "Product not found"},
    },
)
async def get_product(
    product_id: str,
    identity: Optional[SessionIdentity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    try:
        product = await ProductService().get_product(db, product_id)
    except DataAccessError as e:
        raise _server_error(e) from e
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return with_visible_reviews(product, identity)


@router.post(
    "",
    response_model=ProductResponse,
    summary="Create product",
    description="Create a product, with an optional primary image, for the authenticated artisan.",
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Product created successfully"},
        400: {"description": "No artisan profile for this user"},
        401: {"description": "Unauthorized - authentication required"},
        403: {"description": "Artisan role required"},
        500: {"description": "Internal server error"},
    },
)
async def create_product(
    product_data: ProductCreate,
    identity: SessionIdentity = Depends(require_roles(UserRole.ARTISAN)),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    try:
        return await ProductService().create_product(db, identity.id, product_data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except DataAccessError as e:
        raise _server_error(e) from e


@router.patch(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update product",
    description="Partial update. A provided image_url replaces the primary image.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Product updated successfully"},
        403: {"description": "Not the product owner"},
        404: {"description": "Product not found"},
    },
)
async def update_product(
    product_id: str,
    product_data: ProductUpdate,
    identity: SessionIdentity = Depends(require_roles(UserRole.ARTISAN, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    product_service = ProductService()
    try:
        product = await product_service.get_product(db, product_id)
        if product is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
        _ensure_can_manage(identity, product)
        return await product_service.update_product(db, product_id, product_data)
    except HTTPException:
        raise
    except DataAccessError as e:
        raise _server_error(e) from e


@router.delete(
    "/{product_id}",
    response_model=ProductDeleteResult,
    summary="Delete product",
    description=(
        "Delete a product and its images. Deleting a product that is already "
        "gone reports deleted=false instead of failing."
    ),
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Product deleted, or already deleted"},
        403: {"description": "Not the product owner"},
    },
)
async def delete_product(
    product_id: str,
    identity: SessionIdentity = Depends(require_roles(UserRole.ARTISAN, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> ProductDeleteResult:
    product_service = ProductService()
    try:
        product = await product_service.get_product(db, product_id)
        if product is not None:
            _ensure_can_manage(identity, product)
        return await product_service.delete_product(db, product_id)
    except HTTPException:
        raise
    except DataAccessError as e:
        raise _server_error(e) from e
