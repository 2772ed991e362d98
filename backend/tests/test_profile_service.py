"""
BaseSites Backend: Profile Service Tests
========================================

What we test:
    ✅ Profile read/update, username uniqueness
    ✅ Role lookup: stored role, missing profile, unknown value, DB failure
    ✅ Account deletion: confirmation text, cascade, identity-provider call
"""

from datetime import date
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from basesites.exceptions import ConflictError, InvalidInputError, NotFoundError, UpstreamError
from basesites.models.logbook import LogbookEntry
from basesites.models.profile import Profile
from basesites.models.saved_location import SavedLocation
from basesites.schemas.profile import ProfileUpdate
from basesites.services.access_policy import Role
from basesites.services.profile_service import profile_service


class TestProfileReadAndUpdate:

    @pytest.mark.asyncio
    async def test_get_profile(self, db_session, make_profile):
        user = await make_profile(name="Carl", jump_number=12)
        profile = await profile_service.get_profile(db_session, user.id)

        assert profile.name == "Carl"
        assert profile.jump_number == 12
        assert profile.role == Role.USER
        assert profile.subscription_status.value == "free"

    @pytest.mark.asyncio
    async def test_get_missing_profile(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            await profile_service.get_profile(db_session, uuid4())
        assert exc_info.value.message == "Profile not found"

    @pytest.mark.asyncio
    async def test_update_sent_fields(self, db_session, make_profile):
        user = await make_profile(name="Before", jump_number=3)
        profile = await profile_service.update_profile(
            db_session, user.id, ProfileUpdate(username="skydiver", jump_number=4)
        )

        assert profile.username == "skydiver"
        assert profile.jump_number == 4
        assert profile.name == "Before"

    @pytest.mark.asyncio
    async def test_update_requires_a_field(self, db_session, make_profile):
        user = await make_profile()
        with pytest.raises(InvalidInputError) as exc_info:
            await profile_service.update_profile(db_session, user.id, ProfileUpdate())
        assert exc_info.value.message == "At least one field must be provided for update"

    @pytest.mark.asyncio
    async def test_username_taken_by_someone_else(self, db_session, make_profile):
        await make_profile(username="taken")
        user = await make_profile(username="mine")

        with pytest.raises(ConflictError) as exc_info:
            await profile_service.update_profile(db_session, user.id, ProfileUpdate(username="taken"))
        assert exc_info.value.message == "Username already taken"

        # Re-sending your own username is not a conflict
        profile = await profile_service.update_profile(db_session, user.id, ProfileUpdate(username="mine"))
        assert profile.username == "mine"


class TestGetRole:

    @pytest.mark.asyncio
    async def test_stored_role(self, db_session, make_profile):
        admin = await make_profile(role="ADMIN")
        assert await profile_service.get_role(db_session, admin.id) == Role.ADMIN

    @pytest.mark.asyncio
    async def test_missing_or_unknown_role_is_none(self, db_session, make_profile):
        odd = await make_profile(role="MODERATOR")
        assert await profile_service.get_role(db_session, odd.id) is None
        assert await profile_service.get_role(db_session, uuid4()) is None

    @pytest.mark.asyncio
    async def test_database_failure_is_none(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
        assert await profile_service.get_role(mock_db_session, uuid4()) is None

    @pytest.mark.asyncio
    async def test_lookup_runs_in_savepoint(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        await profile_service.get_role(mock_db_session, uuid4())

        # The failed read is rolled back to the savepoint, not the request transaction
        mock_db_session.begin_nested.assert_called_once()
        exit_args = mock_db_session.begin_nested.return_value.__aexit__.await_args.args
        assert exit_args[0] is OperationalError


class TestDeleteAccount:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("confirmation", ["", "delete me", "DELET"])
    async def test_confirmation_must_be_delete(self, mock_db_session, identity, confirmation):
        with pytest.raises(InvalidInputError) as exc_info:
            await profile_service.delete_account(mock_db_session, identity, uuid4(), confirmation)

        assert exc_info.value.message == 'Please type "DELETE" to confirm account deletion'
        mock_db_session.execute.assert_not_called()
        assert identity.deleted == []

    @pytest.mark.asyncio
    async def test_deletes_profile_data_and_identity(
        self, session_factory, identity, make_profile, make_location
    ):
        user = await make_profile()
        location = await make_location()
        async with session_factory() as session:
            session.add(SavedLocation(user_id=user.id, location_id=location.id))
            session.add(LogbookEntry(user_id=user.id, location_name="Kjerag", jump_date=date(2026, 1, 1)))
            await session.commit()

        async with session_factory() as session:
            await profile_service.delete_account(session, identity, user.id, " delete ")
            await session.commit()

        assert identity.deleted == [user.id]
        async with session_factory() as session:
            for model in (Profile, SavedLocation, LogbookEntry):
                count = (await session.execute(select(func.count()).select_from(model))).scalar()
                assert count == 0, model.__name__

    @pytest.mark.asyncio
    async def test_identity_failure_keeps_profile(self, session_factory, identity, make_profile):
        user = await make_profile()
        identity.fail_deletes = True

        async with session_factory() as session:
            with pytest.raises(UpstreamError):
                await profile_service.delete_account(session, identity, user.id, "DELETE")
            await session.rollback()

        async with session_factory() as session:
            count = (
                await session.execute(select(func.count(Profile.id)).where(Profile.id == user.id))
            ).scalar()
        assert count == 1

    @pytest.mark.asyncio
    async def test_delete_provider_called_without_profile(self, mock_db_session):
        mock_db_session.execute.return_value.rowcount = 0
        gateway = AsyncMock()
        user_id = uuid4()

        await profile_service.delete_account(mock_db_session, gateway, user_id, "DELETE")

        gateway.delete_identity.assert_awaited_once_with(user_id)
