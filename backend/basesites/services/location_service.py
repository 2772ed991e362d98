"""
BaseSites Backend: Location Service
===================================

What:  Public directory listing and the admin create/update/delete paths.
Who:   routes/locations.py (listing) and routes/admin.py (mutations, which
       are role-gated there: ADMIN+ for create/update, SUPERUSER for delete).

Deletion:
    Favorites referencing the site are removed by ON DELETE CASCADE and
    submissions keep their history with `existing_location_id` set NULL.
    The number of affected favorites is logged as a warning first.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.exceptions import BaseSitesError, DatabaseError, InvalidInputError, NotFoundError
from basesites.models.location import Location
from basesites.models.saved_location import SavedLocation
from basesites.schemas.location import (
    DeletedLocation,
    LocationCreate,
    LocationQuery,
    LocationResponse,
    LocationSummary,
    LocationUpdate,
)

logger = logging.getLogger(__name__)


def _contains(column, text: str):
    """Case-insensitive substring match."""
    return column.icontains(text, autoescape=True)


class LocationService:

    async def list_locations(self, db: AsyncSession, params: LocationQuery) -> List[LocationResponse]:
        """Visible locations matching the filters, ordered by name."""
        query = select(Location).where(Location.is_hidden.is_(False))

        if params.country:
            query = query.where(_contains(Location.country, params.country))
        if params.min_height is not None:
            query = query.where(Location.total_height_ft >= params.min_height)
        if params.max_height is not None:
            query = query.where(Location.total_height_ft <= params.max_height)
        if params.search:
            query = query.where(
                or_(
                    _contains(Location.name, params.search),
                    _contains(Location.country, params.search),
                    _contains(Location.notes, params.search),
                )
            )

        try:
            rows = (await db.execute(query.order_by(Location.name, Location.id))).scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing locations: %s", e, exc_info=True)
            raise DatabaseError(message="Could not retrieve locations. Please try again.")
        return [LocationResponse.model_validate(row) for row in rows]

    async def get_location(self, db: AsyncSession, location_id: int) -> LocationResponse:
        location = await self._get(db, location_id)
        return LocationResponse.model_validate(location)

    async def create_location(
        self,
        db: AsyncSession,
        actor_id: UUID,
        data: LocationCreate,
    ) -> LocationResponse:
        fields = data.model_dump()
        if fields.get("video_link") == "":
            fields["video_link"] = None
        location = Location(**fields, created_by=actor_id, updated_by=actor_id)
        try:
            db.add(location)
            await db.flush()
            await db.refresh(location)
        except SQLAlchemyError as e:
            logger.error("Database error creating location: %s", e, exc_info=True)
            raise DatabaseError(message="Could not create the location. Please try again.")

        logger.info("Location %s (%s) created by %s", location.id, location.name, actor_id)
        return LocationResponse.model_validate(location)

    async def update_location(
        self,
        db: AsyncSession,
        actor_id: UUID,
        location_id: int,
        data: LocationUpdate,
    ) -> LocationResponse:
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise InvalidInputError("No update data provided")
        if changes.get("video_link") == "":
            changes["video_link"] = None

        try:
            location = await self._get(db, location_id)
            for field, value in changes.items():
                setattr(location, field, value)
            location.updated_by = actor_id
            await db.flush()
            await db.refresh(location)
        except BaseSitesError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error updating location %s: %s", location_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not update the location. Please try again.",
                context={"location_id": location_id},
            )

        logger.info("Location %s updated by %s (fields=%s)", location_id, actor_id, sorted(changes))
        return LocationResponse.model_validate(location)

    async def delete_location(
        self,
        db: AsyncSession,
        actor_id: UUID,
        location_id: int,
    ) -> DeletedLocation:
        try:
            location = await self._get(db, location_id)
            summary = LocationSummary.model_validate(location)

            saved_refs = (
                await db.execute(
                    select(func.count(SavedLocation.id)).where(SavedLocation.location_id == location_id)
                )
            ).scalar() or 0
            if saved_refs:
                logger.warning(
                    "Deleting location %s still saved by %d user(s); favorites will be removed",
                    location_id,
                    saved_refs,
                )

            await db.execute(
                delete(Location)
                .where(Location.id == location_id)
                .execution_options(synchronize_session=False)
            )
            db.expunge(location)
        except BaseSitesError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error deleting location %s: %s", location_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not delete the location. Please try again.",
                context={"location_id": location_id},
            )

        logger.info("Location %s (%s) deleted by %s", location_id, summary.name, actor_id)
        return DeletedLocation(deleted_location=summary)

    @staticmethod
    async def _get(db: AsyncSession, location_id: int) -> Location:
        location = await db.get(Location, location_id)
        if location is None:
            raise NotFoundError(resource="Location", resource_id=location_id)
        return location


location_service = LocationService()
