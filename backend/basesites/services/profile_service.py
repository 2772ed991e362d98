"""
BaseSites Backend: Profile Service
==================================

What:  Profile reads and owner edits, role lookup for authentication, and
       account deletion.
How:   Account deletion removes the profile row (the database cascades to
       submissions, favorites and logbook) and then asks the identity
       provider to delete the login. Both happen inside the request
       transaction: if the provider call fails, the profile deletion rolls
       back with it.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.exceptions import (
    BaseSitesError,
    ConflictError,
    DatabaseError,
    InvalidInputError,
    NotFoundError,
)
from basesites.models.profile import Profile
from basesites.schemas.profile import ProfileResponse, ProfileUpdate
from basesites.services.access_policy import Role, parse_role
from basesites.services.identity_service import IdentityGateway

logger = logging.getLogger(__name__)

USERNAME_TAKEN = "Username already taken"


class ProfileService:

    async def get_role(self, db: AsyncSession, user_id: UUID) -> Optional[Role]:
        """
        The stored role, or None when it cannot be resolved.

        Lookup failures are logged and yield None; role gates treat None as
        a denial, so authentication itself still succeeds. The read runs in a
        SAVEPOINT so a failure leaves the request transaction usable.
        """
        try:
            async with db.begin_nested():
                stored = (
                    await db.execute(select(Profile.role).where(Profile.id == user_id))
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.warning("Role lookup failed for %s: %s", user_id, e)
            return None
        if stored is None:
            logger.warning("No profile for authenticated user %s", user_id)
            return None
        return parse_role(stored)

    async def get_profile(self, db: AsyncSession, user_id: UUID) -> ProfileResponse:
        profile = await self._get(db, user_id)
        return ProfileResponse.model_validate(profile)

    async def update_profile(
        self,
        db: AsyncSession,
        user_id: UUID,
        data: ProfileUpdate,
    ) -> ProfileResponse:
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise InvalidInputError("At least one field must be provided for update")

        try:
            profile = await self._get(db, user_id)

            username = changes.get("username")
            if username is not None:
                taken = (
                    await db.execute(
                        select(Profile.id).where(Profile.username == username, Profile.id != user_id)
                    )
                ).scalar_one_or_none()
                if taken is not None:
                    raise ConflictError(USERNAME_TAKEN, context={"field": "username"})

            for field, value in changes.items():
                setattr(profile, field, value)
            async with db.begin_nested():
                await db.flush()
            await db.refresh(profile)
        except IntegrityError:
            raise ConflictError(USERNAME_TAKEN, context={"field": "username"})
        except BaseSitesError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error updating profile %s: %s", user_id, e, exc_info=True)
            raise DatabaseError(message="Could not update the profile. Please try again.")

        logger.info("Profile %s updated (fields=%s)", user_id, sorted(changes))
        return ProfileResponse.model_validate(profile)

    async def delete_account(
        self,
        db: AsyncSession,
        identity: IdentityGateway,
        user_id: UUID,
        confirmation: str,
    ) -> None:
        if confirmation.strip().upper() != "DELETE":
            raise InvalidInputError(
                'Please type "DELETE" to confirm account deletion',
                field="confirmation",
            )

        try:
            result = await db.execute(
                delete(Profile)
                .where(Profile.id == user_id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting profile %s: %s", user_id, e, exc_info=True)
            raise DatabaseError(message="Could not delete the account. Please try again.")
        if result.rowcount == 0:
            logger.warning("Account deletion for %s found no profile row", user_id)

        await identity.delete_identity(user_id)
        logger.info("Account %s deleted", user_id)

    @staticmethod
    async def _get(db: AsyncSession, user_id: UUID) -> Profile:
        profile = await db.get(Profile, user_id)
        if profile is None:
            raise NotFoundError(resource="Profile", resource_id=user_id, message="Profile not found")
        return profile


profile_service = ProfileService()
