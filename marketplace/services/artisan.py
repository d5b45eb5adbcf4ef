"""
Artisan profile service: shop profile CRUD and rating-aware read models.

Reference: https://docs.sqlalchemy.org/en/20/orm/queryguide/select.html#joins
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Select, delete, func, literal_column, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.v1.schemas.profile import ArtisanProfileCreate, ArtisanProfileUpdate
from marketplace.core.exceptions import DataAccessError, ProfileExistsError
from marketplace.models.user import ArtisanProfile, Profile, User
from marketplace.services.rating import review_stats_query, round_rating

logger = logging.getLogger(__name__)


class ArtisanProfileService:
    """Service for artisan shop profiles"""

    async def create_artisan_profile(
        self, db: AsyncSession, user_id: str, profile_data: ArtisanProfileCreate
    ) -> ArtisanProfile:
        """
        Create an artisan profile for a given user.

        Raises:
            ValueError: If user doesn't exist
            ProfileExistsError: If the user already has an artisan profile
            DataAccessError: If the database operation fails
        """
        try:
            user_result = await db.execute(select(User.id).where(User.id == user_id))
            if user_result.scalar_one_or_none() is None:
                logger.warning(
                    f"Attempted to create artisan profile for non-existent user: {user_id}"
                )
                raise ValueError(f"User with ID '{user_id}' does not exist")

            if await self.get_artisan_profile(db, user_id):
                logger.warning(f"Artisan profile already exists for user: {user_id}")
                raise ProfileExistsError("Failed to create artisan profile.")

            artisan_profile = ArtisanProfile(
                user_id=user_id, **profile_data.model_dump(exclude_unset=True)
            )
            db.add(artisan_profile)
            await db.flush()
            logger.info(f"Created artisan profile '{artisan_profile.shop_name}' for user: {user_id}")
            return artisan_profile
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"Artisan profile creation race condition detected for user: {user_id}")
            raise ProfileExistsError("Failed to create artisan profile.") from e
        except SQLAlchemyError as e:
            logger.error(f"Database error creating artisan profile for user {user_id}", exc_info=True)
            raise DataAccessError("Failed to create artisan profile.") from e

    async def get_artisan_profile(
        self, db: AsyncSession, user_id: str
    ) -> Optional[ArtisanProfile]:
        """
        Get artisan profile by owner user ID.

        Returns:
            ArtisanProfile if found, None otherwise
        """
        try:
            result = await db.execute(
                select(ArtisanProfile).where(ArtisanProfile.user_id == user_id)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching artisan profile for user {user_id}", exc_info=True)
            raise DataAccessError("Failed to fetch artisan profile.") from e

    async def update_artisan_profile(
        self, db: AsyncSession, user_id: str, profile_data: ArtisanProfileUpdate
    ) -> Optional[ArtisanProfile]:
        """
        Update an existing artisan profile (partial).

        Returns:
            Updated ArtisanProfile if found, None otherwise
        """
        existing_profile = await self.get_artisan_profile(db, user_id)
        if not existing_profile:
            return None

        update_data = profile_data.model_dump(exclude_unset=True)
        # shop_name is required; an explicit null never clears it
        if update_data.get("shop_name") is None:
            update_data.pop("shop_name", None)
        if not update_data:
            return existing_profile

        for field, value in update_data.items():
            setattr(existing_profile, field, value)

        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Database error updating artisan profile for user {user_id}", exc_info=True)
            raise DataAccessError("Failed to update artisan profile.") from e

        existing_profile.updated_at = datetime.now(timezone.utc)

        logger.info(f"Artisan profile updated for user: {user_id}")
        return existing_profile

    async def delete_artisan_profile(self, db: AsyncSession, user_id: str) -> bool:
        """
        Delete an artisan profile. The shop's products are removed by the
        database cascade.

        Returns:
            True if deleted, False if not found
        """
        try:
            result = await db.execute(
                delete(ArtisanProfile).where(ArtisanProfile.user_id == user_id)
            )
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Database error deleting artisan profile for user {user_id}", exc_info=True)
            raise DataAccessError("Failed to delete artisan profile.") from e

        if result.rowcount == 0:
            return False
        logger.info(f"Artisan profile deleted for user: {user_id}")
        return True

    async def get_all_profiles(
        self, db: AsyncSession, page: int = 1, limit: int = 12
    ) -> Dict[str, Any]:
        """
        Get artisan profiles joined with the owner's name and email.

        Args:
            db: Database session
            page: 1-based page number
            limit: Page size

        Returns:
            Dict with profiles, total_pages and total_profiles
        """
        offset = (page - 1) * limit
        try:
            total_profiles = await self._count_profiles(db)
            result = await db.execute(
                select(ArtisanProfile, User.name, User.email)
                .join(User, User.id == ArtisanProfile.user_id)
                .order_by(ArtisanProfile.created_at.desc(), ArtisanProfile.id)
                .offset(offset)
                .limit(limit)
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error fetching artisan profiles", exc_info=True)
            raise DataAccessError("Failed to fetch artisan profiles.") from e

        profiles = []
        for artisan, name, email in rows:
            profile = self._profile_fields(artisan)
            profile["name"] = name or ""
            profile["email"] = email or ""
            profiles.append(profile)

        return {
            "profiles": profiles,
            "total_pages": math.ceil(total_profiles / limit),
            "total_profiles": total_profiles,
        }

    async def get_profiles_for_list(
        self, db: AsyncSession, page: int = 1, limit: int = 12
    ) -> Dict[str, Any]:
        """
        Get artisan display projections ordered by shop name.

        Returns:
            Dict with profiles, total_pages and total_profiles
        """
        offset = (page - 1) * limit
        try:
            total_profiles = await self._count_profiles(db)
            query = (
                self._display_query()
                .order_by(ArtisanProfile.shop_name.asc(), ArtisanProfile.id)
                .offset(offset)
                .limit(limit)
            )
            result = await db.execute(query)
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error fetching artisan profiles for list", exc_info=True)
            raise DataAccessError(
                "Failed to fetch artisan profiles for list with calculated ratings."
            ) from e

        return {
            "profiles": [self._to_display(row) for row in rows],
            "total_pages": math.ceil(total_profiles / limit),
            "total_profiles": total_profiles,
        }

    async def get_top_artisans(self, db: AsyncSession, limit: int = 3) -> List[Dict[str, Any]]:
        """
        Get the highest-rated artisans for the homepage.

        Artisans are ranked by the displayed average: the simple average of
        every review across all of their products, rounded to one decimal (0
        when none), highest first. Artisans showing the same average are
        ordered by shop name.
        """
        stats = review_stats_query(approved_only=False).subquery()
        # Numeric division; round() then matches round_rating (half away from zero)
        average = func.coalesce(
            func.round(
                stats.c.total_rating * literal_column("1.0")
                / func.nullif(stats.c.review_count, 0),
                1,
            ),
            0,
        )
        try:
            result = await db.execute(
                self._display_query(stats)
                .order_by(average.desc(), ArtisanProfile.shop_name.asc())
                .limit(limit)
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error fetching top artisans", exc_info=True)
            raise DataAccessError("Failed to fetch top artisans for homepage.") from e

        return [self._to_display(row) for row in rows]

    async def get_profile_and_user_details(
        self, db: AsyncSession, user_id: str
    ) -> Optional[Dict[str, Any]]:
        """
        Get one artisan's display projection, including the phone number and
        profile image from the owner's profile.

        Returns:
            Display dict if the artisan profile exists, None otherwise
        """
        try:
            result = await db.execute(
                self._display_query().where(ArtisanProfile.user_id == user_id)
            )
            row = result.one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching artisan details for user {user_id}", exc_info=True)
            raise DataAccessError("Failed to fetch artisan profile and user details.") from e

        if row is None:
            return None
        return self._to_display(row)

    async def _count_profiles(self, db: AsyncSession) -> int:
        result = await db.execute(select(func.count(ArtisanProfile.id)))
        return int(result.scalar() or 0)

    def _display_query(self, stats=None) -> Select:
        """
        Artisan profile joined to its owner, the owner's profile and the
        per-seller review totals (all reviews, approved or not).
        """
        if stats is None:
            stats = review_stats_query(approved_only=False).subquery()
        return (
            select(
                ArtisanProfile,
                User.name,
                User.email,
                Profile.profile_image_url,
                Profile.phone_number,
                stats.c.total_rating,
                stats.c.review_count,
            )
            .join(User, User.id == ArtisanProfile.user_id)
            .outerjoin(Profile, Profile.user_id == User.id)
            .outerjoin(stats, stats.c.seller_id == ArtisanProfile.user_id)
        )

    @staticmethod
    def _profile_fields(artisan: ArtisanProfile) -> Dict[str, Any]:
        return {
            "id": artisan.id,
            "user_id": artisan.user_id,
            "shop_name": artisan.shop_name,
            "shop_description": artisan.shop_description,
            "bio": artisan.bio,
            "location": artisan.location,
            "website": artisan.website,
            "policies": artisan.policies,
            "shipping_info": artisan.shipping_info,
            "return_policy": artisan.return_policy,
            "is_top_artisan": artisan.is_top_artisan,
            "created_at": artisan.created_at,
            "updated_at": artisan.updated_at,
        }

    def _to_display(self, row) -> Dict[str, Any]:
        (
            artisan,
            user_name,
            user_email,
            profile_image_url,
            phone_number,
            total_rating,
            review_count,
        ) = row
        review_count = int(review_count or 0)
        display = self._profile_fields(artisan)
        display.update(
            {
                "profile_image_url": profile_image_url or None,
                "user_name": user_name or None,
                "user_email": user_email or None,
                "phone_number": phone_number or None,
                "average_rating": round_rating(total_rating, review_count),
                "total_sales": review_count,
            }
        )
        return display
