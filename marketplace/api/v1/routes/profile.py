"""
Routes for the buyer/general profile.

Two surfaces:
- /api/v1/profile: JSON reads and deletion
- /api/profile: form-encoded create (POST) and update (PUT), answering
  {"success": true}

Profile completeness gates what the dashboard renders, so every response is
marked Cache-Control: no-store.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.v1.forms import FormValidationError, form_error_response, parse_form
from marketplace.api.v1.schemas.identity import SessionIdentity
from marketplace.api.v1.schemas.profile import (
    ProfileCreate,
    ProfileResponse,
    ProfileStatusResponse,
    ProfileUpdate,
)
from marketplace.core.config import settings
from marketplace.core.database import get_db
from marketplace.core.dependencies import get_current_identity, get_optional_identity
from marketplace.core.exceptions import DataAccessError, ProfileExistsError
from marketplace.services.profile import ProfileService

logger = logging.getLogger(__name__)

NO_STORE = {"Cache-Control": "no-store"}

router = APIRouter(
    prefix="/profile",
    tags=["profile"],
)

# Mounted without the /api/v1 prefix
form_router = APIRouter(
    prefix="/api/profile",
    tags=["profile"],
)


def _unauthorized() -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": "Unauthorized"},
        headers=NO_STORE,
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=NO_STORE)


@router.get(
    "",
    response_model=ProfileResponse,
    summary="Get profile",
    description="Get the profile of the authenticated user.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Profile retrieved successfully"},
        401: {"description": "Unauthorized - authentication required"},
        404: {"description": "Profile not found"},
        500: {"description": "Internal server error"},
    },
)
async def get_profile(
    response: Response,
    identity: SessionIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> ProfileResponse:
    response.headers.update(NO_STORE)
    profile_service = ProfileService()
    try:
        profile = await profile_service.get_profile(db, identity.id)
        if not profile:
            logger.warning(f"Profile not found for user_id: {identity.id}")
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Profile not found",
                headers=NO_STORE,
            )
        return profile
    except HTTPException:
        raise
    except DataAccessError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message,
            headers=NO_STORE,
        ) from e


@router.get(
    "/status",
    response_model=ProfileStatusResponse,
    summary="Get profile status",
    description=(
        "Role and profile completeness of the authenticated user, read from the "
        "database rather than from the session token."
    ),
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Status retrieved successfully"},
        401: {"description": "Unauthorized - authentication required"},
        500: {"description": "Internal server error"},
    },
)
async def get_profile_status(
    response: Response,
    identity: SessionIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> ProfileStatusResponse:
    response.headers.update(NO_STORE)
    profile_service = ProfileService()
    try:
        user = await profile_service.get_user(db, identity.id)
        profile = await profile_service.get_profile(db, identity.id)
        has_artisan_profile = await profile_service.has_artisan_profile(db, identity.id)
    except DataAccessError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message,
            headers=NO_STORE,
        ) from e

    # Debug logging (only in development)
    if settings.ENVIRONMENT == "development":
        logger.debug(
            f"Profile status for user {identity.id}: token firstLogin={identity.first_login}, "
            f"hasProfile={identity.has_profile}; database has_profile={profile is not None}, "
            f"has_artisan_profile={has_artisan_profile}"
        )

    return ProfileStatusResponse(
        user_id=identity.id,
        role=user.role if user else (identity.role.value if identity.role else None),
        has_profile=profile is not None,
        has_artisan_profile=has_artisan_profile,
    )


@router.delete(
    "",
    summary="Delete profile",
    description="Delete the profile of the authenticated user.",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        204: {"description": "Profile deleted successfully"},
        401: {"description": "Unauthorized - authentication required"},
        404: {"description": "Profile not found"},
        500: {"description": "Internal server error"},
    },
)
async def delete_profile(
    identity: SessionIdentity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
) -> Response:
    profile_service = ProfileService()
    try:
        deleted = await profile_service.delete_profile(db, identity.id)
    except DataAccessError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message,
            headers=NO_STORE,
        ) from e

    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
            headers=NO_STORE,
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=NO_STORE)


@form_router.post(
    "",
    summary="Create profile (form)",
    description="Create the authenticated user's profile from a form-encoded body.",
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Profile created"},
        400: {"description": "User does not exist"},
        401: {"description": "Unauthorized - authentication required"},
        409: {"description": "Profile already exists for this user"},
        422: {"description": "Field-keyed validation errors"},
        500: {"description": "Internal server error"},
    },
)
async def create_profile_form(
    request: Request,
    identity: Optional[SessionIdentity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    if identity is None:
        return _unauthorized()

    try:
        profile_data = parse_form(ProfileCreate, await request.form())
    except FormValidationError as e:
        logger.warning(f"Invalid profile form from user {identity.id}: {e.errors}")
        return form_error_response(e, headers=NO_STORE)

    profile_service = ProfileService()
    try:
        await profile_service.create_profile(db, identity.id, profile_data)
    except ValueError as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except ProfileExistsError as e:
        return _error(status.HTTP_409_CONFLICT, e.message)
    except DataAccessError as e:
        await db.rollback()
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message)

    return JSONResponse(content={"success": True}, headers=NO_STORE)


@form_router.put(
    "",
    summary="Update profile (form)",
    description=(
        "Partially update the authenticated user's profile from a form-encoded body. "
        "Only submitted fields are changed."
    ),
    status_code=status.HTTP_200_OK,
    responses={
        200: {"description": "Profile updated"},
        401: {"description": "Unauthorized - authentication required"},
        404: {"description": "Profile not found"},
        422: {"description": "Field-keyed validation errors"},
        500: {"description": "Internal server error"},
    },
)
async def update_profile_form(
    request: Request,
    identity: Optional[SessionIdentity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    if identity is None:
        return _unauthorized()

    try:
        profile_data = parse_form(ProfileUpdate, await request.form())
    except FormValidationError as e:
        logger.warning(f"Invalid profile form from user {identity.id}: {e.errors}")
        return form_error_response(e, headers=NO_STORE)

    profile_service = ProfileService()
    try:
        profile = await profile_service.update_profile(db, identity.id, profile_data)
    except DataAccessError as e:
        await db.rollback()
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, e.message)

    if profile is None:
        return _error(status.HTTP_404_NOT_FOUND, "Profile not found")
    return JSONResponse(content={"success": True}, headers=NO_STORE)
