"""
BaseSites Backend: Logbook Service Tests
========================================
"""

from datetime import date
from uuid import uuid4

import pytest

from basesites.exceptions import InvalidInputError, NotFoundError
from basesites.models.enums import ExitType
from basesites.schemas.logbook import LogbookEntryCreate, LogbookEntryUpdate, LogbookQuery
from basesites.services.logbook_service import logbook_service


async def _log(db, user, name, jump_date, **fields):
    return await logbook_service.create_entry(
        db, user.id, LogbookEntryCreate(location_name=name, jump_date=jump_date, **fields)
    )


class TestLogbook:

    @pytest.mark.asyncio
    async def test_create_and_list_in_jump_date_order(self, db_session, make_profile):
        user = await make_profile()
        await _log(db_session, user, "Kjerag", date(2026, 7, 1), exit_type=ExitType.EARTH)
        await _log(db_session, user, "Perrine", date(2026, 5, 2), exit_type=ExitType.SPAN)
        await _log(db_session, user, "KL Tower", date(2026, 9, 9), exit_type=ExitType.ANTENNA)

        newest_first = await logbook_service.list_entries(db_session, user.id, LogbookQuery())
        assert [e.location_name for e in newest_first.entries] == ["KL Tower", "Kjerag", "Perrine"]
        assert newest_first.total_count == 3

        oldest_first = await logbook_service.list_entries(db_session, user.id, LogbookQuery(order="asc"))
        assert oldest_first.entries[0].location_name == "Perrine"

    @pytest.mark.asyncio
    async def test_filters(self, db_session, make_profile):
        user = await make_profile()
        await _log(db_session, user, "Kjerag", date(2026, 7, 1), exit_type=ExitType.EARTH,
                   details="Perfect winds")
        await _log(db_session, user, "Perrine", date(2026, 5, 2), exit_type=ExitType.SPAN)

        by_type = await logbook_service.list_entries(
            db_session, user.id, LogbookQuery(exit_type=ExitType.SPAN)
        )
        assert [e.location_name for e in by_type.entries] == ["Perrine"]

        by_details = await logbook_service.list_entries(
            db_session, user.id, LogbookQuery(search="winds")
        )
        assert [e.location_name for e in by_details.entries] == ["Kjerag"]

        by_range = await logbook_service.list_entries(
            db_session, user.id, LogbookQuery(date_from=date(2026, 6, 1), date_to=date(2026, 12, 31))
        )
        assert [e.location_name for e in by_range.entries] == ["Kjerag"]

        paged = await logbook_service.list_entries(db_session, user.id, LogbookQuery(limit=1))
        assert paged.has_more is True

    @pytest.mark.asyncio
    async def test_update_and_delete_are_owner_only(self, db_session, make_profile):
        owner = await make_profile()
        stranger = await make_profile()
        entry = await _log(db_session, owner, "Kjerag", date(2026, 7, 1))

        with pytest.raises(NotFoundError) as exc_info:
            await logbook_service.update_entry(
                db_session, stranger.id, entry.id, LogbookEntryUpdate(delay_seconds=3)
            )
        assert exc_info.value.message == "Logbook entry not found"
        with pytest.raises(NotFoundError):
            await logbook_service.delete_entry(db_session, stranger.id, entry.id)

        updated = await logbook_service.update_entry(
            db_session, owner.id, entry.id, LogbookEntryUpdate(delay_seconds=3, details=None)
        )
        assert updated.delay_seconds == 3
        assert updated.location_name == "Kjerag"

        removed_id, name = await logbook_service.delete_entry(db_session, owner.id, entry.id)
        assert removed_id == entry.id
        assert name == "Kjerag"

        listing = await logbook_service.list_entries(db_session, owner.id, LogbookQuery())
        assert listing.total_count == 0

    @pytest.mark.asyncio
    async def test_empty_update_and_unknown_entry(self, db_session, make_profile):
        user = await make_profile()
        with pytest.raises(InvalidInputError) as exc_info:
            await logbook_service.update_entry(db_session, user.id, uuid4(), LogbookEntryUpdate())
        assert exc_info.value.message == "No fields provided to update"

        with pytest.raises(NotFoundError):
            await logbook_service.update_entry(
                db_session, user.id, uuid4(), LogbookEntryUpdate(location_name="x")
            )
