"""
Routes for artisan shop profiles.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.v1.routes.product import with_visible_reviews
from marketplace.api.v1.schemas.identity import SessionIdentity
from marketplace.api.v1.schemas.product import ProductResponse, SellerRatingResponse
from marketplace.api.v1.schemas.profile import (
    ArtisanDisplayPage,
    ArtisanProfileCreate,
    ArtisanProfileForDisplay,
    ArtisanProfilePage,
    ArtisanProfileResponse,
    ArtisanProfileUpdate,
)
from marketplace.core.config import settings
from marketplace.core.database import get_db
from marketplace.core.dependencies import get_optional_identity, require_roles
from marketplace.core.exceptions import DataAccessError, ProfileExistsError
from marketplace.models.user import UserRole
from marketplace.services.artisan import ArtisanProfileService
from marketplace.services.product import ProductService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/artisans",
    tags=["artisans"],
)

require_artisan = require_roles(UserRole.ARTISAN)


def _server_error(e: DataAccessError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=e.message,
    )


@router.get(
    "",
    response_model=ArtisanProfilePage,
    summary="List artisan profiles",
    description="Paginated artisan profiles with the owner's name and email.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Profiles retrieved successfully"},
        500: {"description": "Internal server error"},
    },
)
async def list_artisans(
    page: int = Query(1, ge=1, description="1-based page number"),
    limit: int = Query(
        settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Page size"
    ),
    db: AsyncSession = Depends(get_db),
) -> ArtisanProfilePage:
    try:
        return await ArtisanProfileService().get_all_profiles(db, page=page, limit=limit)
    except DataAccessError as e:
        raise _server_error(e) from e


@router.get(
    "/list",
    response_model=ArtisanDisplayPage,
    summary="List artisans for display",
    description="Paginated artisan cards with ratings, ordered by shop name.",
    status_code=status.HTTP_200_OK,
)
async def list_artisans_for_display(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
) -> ArtisanDisplayPage:
    try:
        return await ArtisanProfileService().get_profiles_for_list(db, page=page, limit=limit)
    except DataAccessError as e:
        raise _server_error(e) from e


@router.get(
    "/top",
    response_model=List[ArtisanProfileForDisplay],
    summary="Top artisans",
    description="Highest-rated artisans for the homepage.",
    status_code=status.HTTP_200_OK,
)
async def top_artisans(
    limit: int = Query(settings.TOP_ARTISANS_LIMIT, ge=1, le=settings.MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
) -> List[ArtisanProfileForDisplay]:
    try:
        return await ArtisanProfileService().get_top_artisans(db, limit=limit)
    except DataAccessError as e:
        raise _server_error(e) from e


# IMPORTANT: /me routes must come BEFORE /{user_id}
# Otherwise FastAPI will match /me as user_id="me"
@router.get(
    "/me",
    response_model=ArtisanProfileResponse,
    summary="Get my artisan profile",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Artisan profile retrieved successfully"},
        401: {"description": "Unauthorized - authentication required"},
        403: {"description": "Artisan role required"},
        404: {"description": "Artisan profile not found"},
    },
)
async def get_my_artisan_profile(
    identity: SessionIdentity = Depends(require_artisan),
    db: AsyncSession = Depends(get_db),
) -> ArtisanProfileResponse:
    try:
        artisan_profile = await ArtisanProfileService().get_artisan_profile(db, identity.id)
    except DataAccessError as e:
        raise _server_error(e) from e
    if not artisan_profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Artisan profile not found"
        )
    return artisan_profile


@router.post(
    "/me",
    response_model=ArtisanProfileResponse,
    summary="Create my artisan profile",
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Artisan profile created successfully"},
        400: {"description": "User does not exist"},
        401: {"description": "Unauthorized - authentication required"},
        403: {"description": "Artisan role required"},
        409: {"description": "Artisan profile already exists for this user"},
        500: {"description": "Internal server error"},
    },
)
async def create_my_artisan_profile(
    profile_data: ArtisanProfileCreate,
    identity: SessionIdentity = Depends(require_artisan),
    db: AsyncSession = Depends(get_db),
) -> ArtisanProfileResponse:
    try:
        return await ArtisanProfileService().create_artisan_profile(
            db, identity.id, profile_data
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except ProfileExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.message) from e
    except DataAccessError as e:
        raise _server_error(e) from e


@router.patch(
    "/me",
    response_model=ArtisanProfileResponse,
    summary="Update my artisan profile",
    description="Partial update; omitted fields keep their stored values.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Artisan profile updated successfully"},
        404: {"description": "Artisan profile not found"},
    },
)
async def update_my_artisan_profile(
    profile_data: ArtisanProfileUpdate,
    identity: SessionIdentity = Depends(require_artisan),
    db: AsyncSession = Depends(get_db),
) -> ArtisanProfileResponse:
    try:
        artisan_profile = await ArtisanProfileService().update_artisan_profile(
            db, identity.id, profile_data
        )
    except DataAccessError as e:
        raise _server_error(e) from e
    if not artisan_profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Artisan profile not found"
        )
    return artisan_profile


@router.delete(
    "/me",
    summary="Delete my artisan profile",
    description="Deletes the shop profile; its products are removed with it.",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_my_artisan_profile(
    identity: SessionIdentity = Depends(require_artisan),
    db: AsyncSession = Depends(get_db),
) -> Response:
    try:
        deleted = await ArtisanProfileService().delete_artisan_profile(db, identity.id)
    except DataAccessError as e:
        raise _server_error(e) from e
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Artisan profile not found"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{user_id}",
    response_model=ArtisanProfileForDisplay,
    summary="Get artisan details",
    description="Artisan profile with owner details, contact info and rating.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Artisan retrieved successfully"},
        404: {"description": "Artisan not found"},
    },
)
async def get_artisan(
    user_id: str,
    db: AsyncSession = Depends(get_db),
) -> ArtisanProfileForDisplay:
    try:
        artisan = await ArtisanProfileService().get_profile_and_user_details(db, user_id)
    except DataAccessError as e:
        raise _server_error(e) from e
    if artisan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Artisan not found")
    return artisan


@router.get(
    "/{user_id}/products",
    response_model=List[ProductResponse],
    summary="Get artisan products",
    description="Products of one artisan with the shop name. Inactive listings are visible to their owner only.",
    status_code=status.HTTP_200_OK,
)
async def get_artisan_products(
    user_id: str,
    identity: Optional[SessionIdentity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> List[ProductResponse]:
    try:
        products = await ProductService().get_products_by_seller_with_shop_info(db, user_id)
    except DataAccessError as e:
        raise _server_error(e) from e

    if identity is None or identity.id != user_id:
        products = [product for product in products if product["is_active"]]
    return [with_visible_reviews(product, identity) for product in products]


@router.get(
    "/{user_id}/rating",
    response_model=SellerRatingResponse,
    summary="Get artisan rating",
    description="Average rating over the artisan's approved reviews.",
    status_code=status.HTTP_200_OK,
)
async def get_artisan_rating(
    user_id: str,
    db: AsyncSession = Depends(get_db),
) -> SellerRatingResponse:
    try:
        return await ProductService().get_seller_average_rating(db, user_id)
    except DataAccessError as e:
        raise _server_error(e) from e
