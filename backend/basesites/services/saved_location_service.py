"""
BaseSites Backend: Saved Locations (Favorites)
==============================================

Save, list and remove favorites. The (user_id, location_id) unique
constraint backs the "already saved" check, so a race between two saves
surfaces as the same ConflictError rather than a duplicate row.
"""

import logging
from typing import Tuple
from uuid import UUID

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.exceptions import BaseSitesError, ConflictError, DatabaseError, NotFoundError
from basesites.models.location import Location
from basesites.models.saved_location import SavedLocation
from basesites.schemas.location import LocationResponse
from basesites.schemas.saved_location import (
    SavedLocationCreated,
    SavedLocationItem,
    SavedLocationListResponse,
)

logger = logging.getLogger(__name__)

ALREADY_SAVED = "Location is already saved to your favorites"


class SavedLocationService:

    async def save(
        self,
        db: AsyncSession,
        user_id: UUID,
        location_id: int,
    ) -> Tuple[SavedLocationCreated, str]:
        """Returns the new favorite and the location's name for the message."""
        try:
            location = await db.get(Location, location_id)
            if location is None:
                raise NotFoundError(resource="Location", resource_id=location_id)

            existing = (
                await db.execute(
                    select(SavedLocation.id).where(
                        SavedLocation.user_id == user_id,
                        SavedLocation.location_id == location_id,
                    )
                )
            ).scalar_one_or_none()
            if existing is not None:
                raise ConflictError(ALREADY_SAVED, context={"location_id": location_id})

            saved = SavedLocation(user_id=user_id, location_id=location_id)
            async with db.begin_nested():
                db.add(saved)
        except IntegrityError:
            raise ConflictError(ALREADY_SAVED, context={"location_id": location_id})
        except BaseSitesError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error saving location %s: %s", location_id, e, exc_info=True)
            raise DatabaseError(message="Could not save the location. Please try again.")

        logger.info("User %s saved location %s", user_id, location_id)
        return (
            SavedLocationCreated(
                save_id=saved.id, location_id=location_id, saved_at=saved.created_at
            ),
            location.name,
        )

    async def list_saved(
        self,
        db: AsyncSession,
        user_id: UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> SavedLocationListResponse:
        """The caller's favorites, most recently saved first."""
        try:
            rows = (
                await db.execute(
                    select(SavedLocation)
                    .where(SavedLocation.user_id == user_id)
                    .order_by(desc(SavedLocation.created_at))
                    .limit(limit)
                    .offset(offset)
                )
            ).scalars().all()
            total = (
                await db.execute(
                    select(func.count(SavedLocation.id)).where(SavedLocation.user_id == user_id)
                )
            ).scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error listing favorites for %s: %s", user_id, e, exc_info=True)
            raise DatabaseError(message="Could not retrieve saved locations. Please try again.")

        return SavedLocationListResponse(
            saved_locations=[
                SavedLocationItem(
                    save_id=row.id,
                    saved_at=row.created_at,
                    location=LocationResponse.model_validate(row.location),
                )
                for row in rows
            ],
            total_count=total,
            has_more=total > offset + limit,
        )

    async def unsave(self, db: AsyncSession, user_id: UUID, location_id: int) -> str:
        """Removes one favorite; returns the location's name for the message."""
        try:
            location = await db.get(Location, location_id)
            if location is None:
                raise NotFoundError(resource="Location", resource_id=location_id)

            result = await db.execute(
                delete(SavedLocation)
                .where(
                    SavedLocation.user_id == user_id,
                    SavedLocation.location_id == location_id,
                )
                .execution_options(synchronize_session=False)
            )
        except BaseSitesError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error removing favorite %s: %s", location_id, e, exc_info=True)
            raise DatabaseError(message="Could not remove the saved location. Please try again.")

        if result.rowcount == 0:
            raise NotFoundError(
                resource="Saved location",
                resource_id=location_id,
                message="Location is not in your favorites",
            )
        logger.info("User %s removed location %s from favorites", user_id, location_id)
        return location.name


saved_location_service = SavedLocationService()
