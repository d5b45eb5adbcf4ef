import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api.v1.schemas.profile import ProfileCreate, ProfileUpdate
from marketplace.core.exceptions import DataAccessError, ProfileExistsError
from marketplace.models.user import ArtisanProfile, Profile, User

logger = logging.getLogger(__name__)


class ProfileService:
    """Service for the buyer/general profile (one per user)"""

    async def get_user(self, db: AsyncSession, user_id: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def create_profile(
        self, db: AsyncSession, user_id: str, profile_data: ProfileCreate
    ) -> Profile:
        """
        Create a profile for a given user.

        Edge cases handled:
        - Validates user exists before creating profile
        - Prevents duplicate profile creation (one profile per user)
        - Only sets fields that were explicitly provided (exclude_unset=True)

        Args:
            db: Database session
            user_id: ID of the user to create profile for
            profile_data: Profile data to create

        Returns:
            Created Profile instance

        Raises:
            ValueError: If user doesn't exist
            ProfileExistsError: If a profile already exists for this user
            DataAccessError: If the database operation fails
        """
        try:
            user = await self.get_user(db, user_id)
            if not user:
                logger.warning(f"Attempted to create profile for non-existent user: {user_id}")
                raise ValueError(f"User with ID '{user_id}' does not exist")

            if await self.get_profile(db, user_id):
                logger.warning(f"Profile already exists for user: {user_id}")
                raise ProfileExistsError()

            profile = Profile(user_id=user_id, **profile_data.model_dump(exclude_unset=True))
            db.add(profile)
            await db.flush()
            logger.info(f"Created profile for user: {user_id}")
            return profile
        except IntegrityError as e:
            # Concurrent request inserted the same user's profile first
            await db.rollback()
            logger.warning(f"Profile creation race condition detected for user: {user_id}")
            raise ProfileExistsError() from e
        except SQLAlchemyError as e:
            logger.error(f"Database error creating profile for user {user_id}", exc_info=True)
            raise DataAccessError("Failed to create profile.") from e

    async def get_profile(self, db: AsyncSession, user_id: str) -> Optional[Profile]:
        """
        Get profile by user ID.

        Returns:
            Profile if found, None otherwise
        """
        try:
            result = await db.execute(select(Profile).where(Profile.user_id == user_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Database error fetching profile for user {user_id}", exc_info=True)
            raise DataAccessError("Failed to fetch profile.") from e

    async def update_profile(
        self, db: AsyncSession, user_id: str, profile_data: ProfileUpdate
    ) -> Optional[Profile]:
        """
        Update an existing profile.

        Only fields that were explicitly set are written; omitted fields keep
        their stored values.

        Returns:
            Updated Profile if found, None otherwise
        """
        existing_profile = await self.get_profile(db, user_id)
        if not existing_profile:
            return None

        update_data = profile_data.model_dump(exclude_unset=True)
        if not update_data:
            return existing_profile

        for field, value in update_data.items():
            setattr(existing_profile, field, value)

        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Database error updating profile for user {user_id}", exc_info=True)
            raise DataAccessError("Failed to update profile.") from e

        # Set updated_at explicitly; onupdate values are not refreshed before commit
        existing_profile.updated_at = datetime.now(timezone.utc)

        logger.info(f"Profile updated for user: {user_id}")
        return existing_profile

    async def delete_profile(self, db: AsyncSession, user_id: str) -> bool:
        """
        Delete a profile.

        Returns:
            True if deleted, False if not found
        """
        try:
            result = await db.execute(delete(Profile).where(Profile.user_id == user_id))
            await db.flush()
        except SQLAlchemyError as e:
            logger.error(f"Database error deleting profile for user {user_id}", exc_info=True)
            raise DataAccessError("Failed to delete profile.") from e

        if result.rowcount == 0:
            logger.debug(f"Profile not found for user: {user_id}")
            return False

        logger.info(f"Profile deleted for user: {user_id}")
        return True

    async def has_artisan_profile(self, db: AsyncSession, user_id: str) -> bool:
        try:
            result = await db.execute(
                select(ArtisanProfile.id).where(ArtisanProfile.user_id == user_id)
            )
            return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            logger.error(f"Database error checking artisan profile for user {user_id}", exc_info=True)
            raise DataAccessError("Failed to fetch profile status.") from e
