"""
BaseSites Backend: Logbook Service
==================================

CRUD over a user's personal jump records. Every query is scoped by
`user_id`; another user's entry reads as "Logbook entry not found".
"""

import logging
from typing import Tuple
from uuid import UUID

from sqlalchemy import asc, desc, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.exceptions import BaseSitesError, DatabaseError, InvalidInputError, NotFoundError
from basesites.models.logbook import LogbookEntry
from basesites.schemas.logbook import (
    LogbookEntryCreate,
    LogbookEntryResponse,
    LogbookEntryUpdate,
    LogbookListResponse,
    LogbookQuery,
)

logger = logging.getLogger(__name__)


class LogbookService:

    async def create_entry(
        self,
        db: AsyncSession,
        user_id: UUID,
        data: LogbookEntryCreate,
    ) -> LogbookEntryResponse:
        values = data.model_dump()
        if values["exit_type"] is not None:
            values["exit_type"] = values["exit_type"].value
        entry = LogbookEntry(user_id=user_id, **values)
        try:
            db.add(entry)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating logbook entry: %s", e, exc_info=True)
            raise DatabaseError(message="Could not create the logbook entry. Please try again.")
        logger.info("Logbook entry %s created by %s", entry.id, user_id)
        return LogbookEntryResponse.model_validate(entry)

    async def list_entries(
        self,
        db: AsyncSession,
        user_id: UUID,
        params: LogbookQuery,
    ) -> LogbookListResponse:
        filters = [LogbookEntry.user_id == user_id]
        if params.search:
            filters.append(
                or_(
                    LogbookEntry.location_name.icontains(params.search, autoescape=True),
                    LogbookEntry.details.icontains(params.search, autoescape=True),
                )
            )
        if params.exit_type is not None:
            filters.append(LogbookEntry.exit_type == params.exit_type.value)
        if params.date_from is not None:
            filters.append(LogbookEntry.jump_date >= params.date_from)
        if params.date_to is not None:
            filters.append(LogbookEntry.jump_date <= params.date_to)

        direction = asc if params.order == "asc" else desc
        try:
            rows = (
                await db.execute(
                    select(LogbookEntry)
                    .where(*filters)
                    .order_by(direction(LogbookEntry.jump_date), direction(LogbookEntry.created_at))
                    .limit(params.limit)
                    .offset(params.offset)
                )
            ).scalars().all()
            total = (
                await db.execute(select(func.count(LogbookEntry.id)).where(*filters))
            ).scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error listing logbook for %s: %s", user_id, e, exc_info=True)
            raise DatabaseError(message="Could not retrieve logbook entries. Please try again.")

        return LogbookListResponse(
            entries=[LogbookEntryResponse.model_validate(row) for row in rows],
            total_count=total,
            has_more=total > params.offset + params.limit,
        )

    async def update_entry(
        self,
        db: AsyncSession,
        user_id: UUID,
        entry_id: UUID,
        data: LogbookEntryUpdate,
    ) -> LogbookEntryResponse:
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise InvalidInputError("No fields provided to update")
        if changes.get("exit_type") is not None:
            changes["exit_type"] = changes["exit_type"].value

        try:
            entry = await self._get_owned(db, user_id, entry_id)
            for field, value in changes.items():
                setattr(entry, field, value)
            await db.flush()
            await db.refresh(entry)
        except BaseSitesError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error updating logbook entry %s: %s", entry_id, e, exc_info=True)
            raise DatabaseError(message="Could not update the logbook entry. Please try again.")
        return LogbookEntryResponse.model_validate(entry)

    async def delete_entry(
        self,
        db: AsyncSession,
        user_id: UUID,
        entry_id: UUID,
    ) -> Tuple[UUID, str]:
        """Returns (id, location_name) of the removed entry."""
        try:
            entry = await self._get_owned(db, user_id, entry_id)
            removed = (entry.id, entry.location_name)
            await db.delete(entry)
            await db.flush()
        except BaseSitesError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error deleting logbook entry %s: %s", entry_id, e, exc_info=True)
            raise DatabaseError(message="Could not delete the logbook entry. Please try again.")
        logger.info("Logbook entry %s deleted by %s", entry_id, user_id)
        return removed

    @staticmethod
    async def _get_owned(db: AsyncSession, user_id: UUID, entry_id: UUID) -> LogbookEntry:
        entry = (
            await db.execute(
                select(LogbookEntry).where(
                    LogbookEntry.id == entry_id,
                    LogbookEntry.user_id == user_id,
                )
            )
        ).scalar_one_or_none()
        if entry is None:
            raise NotFoundError(
                resource="Logbook entry",
                resource_id=entry_id,
                message="Logbook entry not found",
            )
        return entry


logbook_service = LogbookService()
