"""
Routes for product reviews.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.v1.schemas.identity import SessionIdentity
from marketplace.api.v1.schemas.review import ReviewCreate, ReviewResponse
from marketplace.core.database import get_db
from marketplace.core.dependencies import get_current_identity, get_optional_identity, require_roles
from marketplace.core.exceptions import DataAccessError
from marketplace.models.user import UserRole
from marketplace.services.review import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(
    tags=["reviews"],
)


def _server_error(e: DataAccessError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=e.message,
    )


@router.get(
    "/products/{product_id}/reviews",
    response_model=List[ReviewResponse],
    summary="Get product reviews",
    description="Approved reviews of a product, newest first. Admins may include unapproved ones.",
    status_code=status.HTTP_200_OK,
)
async def get_product_reviews(
    product_id: str,
    include_unapproved: bool = Query(
        False, description="Include unapproved reviews (admin only, defaults to False)"
    ),
    skip: int = Query(0, ge=0, description="Number of reviews to skip (for pagination)"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of reviews to return"),
    identity: Optional[SessionIdentity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> List[ReviewResponse]:
    if include_unapproved and (identity is None or identity.role != UserRole.ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can view unapproved reviews",
        )
    try:
        return await ReviewService().get_reviews_for_product(
            db, product_id, include_unapproved=include_unapproved, skip=skip, limit=limit
        )
    except DataAccessError as e:
        raise _server_error(e) from e


@router.post(
    "/products/{product_id}/reviews",
    response_model=ReviewResponse,
    summary="Create review",
    description="Review a product. New reviews await admin approval.",
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Review created successfully"},
        400: {"description": "Product unavailable or already reviewed"},
        401: {"description": "Unauthorized - authentication required"},
        403: {"description": "Buyer role required"},
    },
)
async def create_review(
    product_id: str,
    review_data: ReviewCreate,
    identity: SessionIdentity = Depends(require_roles(UserRole.BUYER)),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    try:
        return await ReviewService().create_review(db, product_id, identity.id, review_data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except DataAccessError as e:
        raise _server_error(e) from e


@router.post(
    "/reviews/{review_id}/approve",
    response_model=ReviewResponse,
    summary="Approve review",
    description="Approve a review (admin only). The product's rating is refreshed.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Review approved successfully"},
        403: {"description": "Admin role required"},
        404: {"description": "Review not found"},
    },
)
async def approve_review(
    review_id: str,
    identity: SessionIdentity = Depends(require_roles(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    try:
        review = await ReviewService().approve_review(db, review_id)
    except DataAccessError as e:
        raise _server_error(e) from e
    if review is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    return review


@router.post(
    "/reviews/{review_id}/helpful",
    response_model=ReviewResponse,
    summary="Mark review helpful",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Helpful count incremented"},
        401: {"description": "Unauthorized - authentication required"},
        404: {"description": "Review not found"},
    },
)
async def mark_review_helpful(
    review_id: str,
    identity: SessionIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> ReviewResponse:
    try:
        review = await ReviewService().mark_helpful(db, review_id)
    except DataAccessError as e:
        raise _server_error(e) from e
    if review is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    return review


@router.delete(
    "/reviews/{review_id}",
    summary="Delete review",
    description="Delete a review (its author or an admin). The product's rating is refreshed.",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        204: {"description": "Review deleted successfully"},
        403: {"description": "Not the review author"},
        404: {"description": "Review not found"},
    },
)
async def delete_review(
    review_id: str,
    identity: SessionIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Response:
    try:
        deleted = await ReviewService().delete_review(
            db, review_id, identity.id, is_admin=identity.role == UserRole.ADMIN
        )
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
    except DataAccessError as e:
        raise _server_error(e) from e
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
