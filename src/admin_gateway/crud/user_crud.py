# src/admin_gateway/crud/user_crud.py
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from ..exceptions import PersistenceError
from ..models.profile import Profile

logger = logging.getLogger(__name__)


async def _first(db_session: AsyncSession, stmt, what: str) -> Profile | None:
    try:
        result = await db_session.execute(stmt)
        return result.scalars().first()
    except SQLAlchemyError as e:
        logger.error(f"Database error while fetching profile by {what}: {e}", exc_info=True)
        raise PersistenceError("Failed to read user profile.") from e


async def get_profile_by_user_id(db_session: AsyncSession, user_id: str) -> Profile | None:
    """Retrieves a user profile from the database by user_id."""
    return await _first(
        db_session, select(Profile).filter(Profile.user_id == user_id), "user_id"
    )


async def get_profile_by_email(db_session: AsyncSession, email: str) -> Profile | None:
    """Retrieves a user profile by email, ignoring case."""
    return await _first(
        db_session,
        select(Profile).filter(Profile.email == email.strip().lower()),
        "email",
    )


async def get_profile_by_phone_number(
    db_session: AsyncSession, phone_number: str
) -> Profile | None:
    return await _first(
        db_session,
        select(Profile).filter(Profile.phone_number == phone_number),
        "phone_number",
    )


async def create_profile(
    db_session: AsyncSession,
    user_id: str,
    email: str,
    display_name: Optional[str] = None,
    phone_number: Optional[str] = None,
) -> Profile:
    """Creates a new user profile. The caller owns the commit."""
    try:
        profile = Profile(
            user_id=user_id,
            email=email.strip().lower(),
            display_name=display_name,
            phone_number=phone_number,
        )
        db_session.add(profile)
        await db_session.flush()
        await db_session.refresh(profile)
        logger.info(f"Profile created successfully for user_id: {profile.user_id}")
        return profile
    except SQLAlchemyError as e:
        logger.error(
            f"Database error during profile creation for user_id {user_id}: {e}",
            exc_info=True,
        )
        await db_session.rollback()
        raise PersistenceError("Failed to create user profile.") from e


async def update_profile(
    db_session: AsyncSession, profile: Profile, update_data: dict
) -> Profile:
    """Applies the given column values to a profile and flushes them."""
    try:
        for key, value in update_data.items():
            if hasattr(profile, key):
                setattr(profile, key, value)

        await db_session.flush()
        await db_session.refresh(profile)
        logger.info(f"Profile updated successfully for user_id: {profile.user_id}")
        return profile
    except SQLAlchemyError as e:
        logger.error(
            f"Database error during profile update for user_id {profile.user_id}: {e}",
            exc_info=True,
        )
        await db_session.rollback()
        raise PersistenceError("Failed to update user profile.") from e


async def delete_profile(db_session: AsyncSession, user_id: str) -> bool:
    """Removes the profile for a deleted identity. Returns False if none existed."""
    profile = await get_profile_by_user_id(db_session, user_id)
    if not profile:
        return False
    try:
        await db_session.delete(profile)
        await db_session.flush()
        logger.info(f"Profile deleted for user_id: {user_id}")
        return True
    except SQLAlchemyError as e:
        logger.error(
            f"Database error during profile deletion for user_id {user_id}: {e}",
            exc_info=True,
        )
        await db_session.rollback()
        raise PersistenceError("Failed to delete user profile.") from e
