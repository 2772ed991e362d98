"""
BaseSites Backend: Submission Lifecycle Tests
=============================================

Runs SubmissionService against a real SQLite database so the conditional
writes, cascades and savepoints behave as they do in production.

What we test:
    ✅ Create: type/target rules, quota refusal, ordered images
    ✅ Owner edit/withdraw only while pending, and only by the owner
    ✅ Review: exactly-once transition, location materialization,
       presence-based override merge, audit columns
    ✅ An approval whose target location vanished rolls back entirely
    ✅ Listings and the admin status summary
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from basesites.exceptions import ConflictError, InvalidInputError, NotFoundError, RateLimitedError
from basesites.models.enums import SubmissionStatus, SubmissionType
from basesites.models.location import Location
from basesites.models.submission import Submission, SubmissionImage
from basesites.schemas.submission import (
    AdminSubmissionListQuery,
    SubmissionCreate,
    SubmissionListQuery,
    SubmissionReview,
    SubmissionUpdate,
)
from basesites.services.location_service import location_service
from basesites.services.quota_service import DAILY_LIMIT, PENDING_LIMIT, QuotaTracker
from basesites.services.submission_service import SubmissionService


@pytest.fixture
def service():
    return SubmissionService(quota=QuotaTracker(max_pending=5, max_daily=10))


async def _create(service, db, user, site_payload, **overrides):
    data = SubmissionCreate(**{**site_payload, **overrides})
    return await service.create_submission(db, user.id, data)


# ══════════════════════════════════════════════════════════════════════════
# Create
# ══════════════════════════════════════════════════════════════════════════


class TestCreateSubmission:

    @pytest.mark.asyncio
    async def test_new_submission_is_pending_with_ordered_images(
        self, service, db_session, make_profile, site_payload
    ):
        user = await make_profile()
        created = await _create(
            service, db_session, user, site_payload,
            image_urls=["https://img.test/b.jpg", "https://img.test/a.jpg"],
        )

        assert created.status == SubmissionStatus.PENDING
        assert created.submission_type == SubmissionType.NEW

        detail = await service.get_submission(db_session, user.id, created.id)
        assert detail.images == ["https://img.test/b.jpg", "https://img.test/a.jpg"]
        assert detail.existing_location_id is None

    @pytest.mark.asyncio
    async def test_update_requires_target(self, service, db_session, make_profile, site_payload):
        user = await make_profile()
        with pytest.raises(InvalidInputError):
            await _create(service, db_session, user, site_payload, submission_type="update")

    @pytest.mark.asyncio
    async def test_new_rejects_target(self, service, db_session, make_profile, make_location, site_payload):
        user = await make_profile()
        location = await make_location()
        with pytest.raises(InvalidInputError):
            await _create(service, db_session, user, site_payload, existing_location_id=location.id)

    @pytest.mark.asyncio
    async def test_update_with_missing_target_is_not_found(
        self, service, db_session, make_profile, site_payload
    ):
        user = await make_profile()
        with pytest.raises(NotFoundError) as exc_info:
            await _create(
                service, db_session, user, site_payload,
                submission_type="update", existing_location_id=9999,
            )
        assert exc_info.value.message == "Existing location not found"

    @pytest.mark.asyncio
    async def test_update_submission_records_target(
        self, service, db_session, make_profile, make_location, site_payload
    ):
        user = await make_profile()
        location = await make_location(name="Perrine Bridge")
        created = await _create(
            service, db_session, user, site_payload,
            submission_type="update", existing_location_id=location.id,
        )

        detail = await service.get_submission(db_session, user.id, created.id)
        assert detail.existing_location_id == location.id
        assert detail.existing_location_name == "Perrine Bridge"

    @pytest.mark.asyncio
    async def test_unknown_profile_is_not_found(self, service, db_session, site_payload):
        with pytest.raises(NotFoundError):
            await service.create_submission(db_session, uuid4(), SubmissionCreate(**site_payload))

    @pytest.mark.asyncio
    async def test_pending_cap_refuses_sixth(self, service, db_session, make_profile, site_payload):
        user = await make_profile()
        for _ in range(5):
            await _create(service, db_session, user, site_payload)

        with pytest.raises(RateLimitedError) as exc_info:
            await _create(service, db_session, user, site_payload)
        assert exc_info.value.reason == PENDING_LIMIT

        count = (await db_session.execute(select(func.count(Submission.id)))).scalar()
        assert count == 5

    @pytest.mark.asyncio
    async def test_daily_cap_counts_reviewed_submissions(
        self, db_session, make_profile, site_payload
    ):
        service = SubmissionService(quota=QuotaTracker(max_pending=2, max_daily=3))
        user = await make_profile()
        admin = await make_profile(role="ADMIN")

        for _ in range(3):
            created = await _create(service, db_session, user, site_payload)
            await service.review_submission(
                db_session, admin.id, created.id, SubmissionReview(status="rejected")
            )

        with pytest.raises(RateLimitedError) as exc_info:
            await _create(service, db_session, user, site_payload)
        assert exc_info.value.reason == DAILY_LIMIT


# ══════════════════════════════════════════════════════════════════════════
# Owner edit / withdraw
# ══════════════════════════════════════════════════════════════════════════


class TestOwnerEdit:

    @pytest.mark.asyncio
    async def test_partial_edit_changes_only_sent_fields(
        self, service, db_session, make_profile, site_payload
    ):
        user = await make_profile()
        created = await _create(service, db_session, user, site_payload)

        updated = await service.update_submission(
            db_session, user.id, created.id, SubmissionUpdate(notes=None, rock_drop_ft=3000)
        )

        assert updated.notes is None
        assert updated.rock_drop_ft == 3000
        assert updated.name == site_payload["name"]
        assert updated.status == SubmissionStatus.PENDING

    @pytest.mark.asyncio
    async def test_image_list_is_replaced_in_order(
        self, service, db_session, make_profile, site_payload
    ):
        user = await make_profile()
        created = await _create(
            service, db_session, user, site_payload, image_urls=["https://img.test/1.jpg"]
        )

        updated = await service.update_submission(
            db_session, user.id, created.id,
            SubmissionUpdate(image_urls=["https://img.test/2.jpg", "https://img.test/3.jpg"]),
        )
        assert updated.images == ["https://img.test/2.jpg", "https://img.test/3.jpg"]

        orders = (
            await db_session.execute(
                select(SubmissionImage.image_order)
                .where(SubmissionImage.submission_id == created.id)
                .order_by(SubmissionImage.image_order)
            )
        ).scalars().all()
        assert orders == [0, 1]

    @pytest.mark.asyncio
    async def test_empty_edit_is_invalid(self, service, db_session, make_profile, site_payload):
        user = await make_profile()
        created = await _create(service, db_session, user, site_payload)
        with pytest.raises(InvalidInputError):
            await service.update_submission(db_session, user.id, created.id, SubmissionUpdate())

    @pytest.mark.asyncio
    async def test_empty_image_list_removes_every_image(
        self, service, db_session, make_profile, site_payload
    ):
        user = await make_profile()
        urls = ["https://img.test/a.jpg", "https://img.test/b.jpg", "https://img.test/c.jpg"]
        created = await _create(service, db_session, user, site_payload, image_urls=urls)

        fetched = await service.get_submission(db_session, user.id, created.id)
        assert fetched.images == urls

        updated = await service.update_submission(
            db_session, user.id, created.id, SubmissionUpdate(image_urls=[])
        )
        assert updated.images == []

        remaining = (
            await db_session.execute(
                select(func.count(SubmissionImage.id)).where(SubmissionImage.submission_id == created.id)
            )
        ).scalar()
        assert remaining == 0

    @pytest.mark.asyncio
    async def test_null_image_list_alone_is_not_an_edit(
        self, service, db_session, make_profile, site_payload
    ):
        user = await make_profile()
        created = await _create(
            service, db_session, user, site_payload, image_urls=["https://img.test/1.jpg"]
        )

        with pytest.raises(InvalidInputError) as exc_info:
            await service.update_submission(
                db_session, user.id, created.id, SubmissionUpdate(image_urls=None)
            )
        assert exc_info.value.message == "At least one field must be provided for update"

        fetched = await service.get_submission(db_session, user.id, created.id)
        assert fetched.images == ["https://img.test/1.jpg"]

    @pytest.mark.asyncio
    async def test_other_users_submission_reads_as_not_found(
        self, service, db_session, make_profile, site_payload
    ):
        owner = await make_profile()
        stranger = await make_profile()
        created = await _create(service, db_session, owner, site_payload)

        with pytest.raises(NotFoundError):
            await service.update_submission(
                db_session, stranger.id, created.id, SubmissionUpdate(name="Mine now")
            )
        with pytest.raises(NotFoundError):
            await service.delete_submission(db_session, stranger.id, created.id)
        with pytest.raises(NotFoundError):
            await service.get_submission(db_session, stranger.id, created.id)

    @pytest.mark.asyncio
    async def test_reviewed_submission_cannot_be_edited_or_withdrawn(
        self, service, db_session, make_profile, site_payload
    ):
        user = await make_profile()
        admin = await make_profile(role="ADMIN")
        created = await _create(service, db_session, user, site_payload)
        await service.review_submission(
            db_session, admin.id, created.id, SubmissionReview(status="rejected")
        )

        with pytest.raises(NotFoundError) as exc_info:
            await service.update_submission(
                db_session, user.id, created.id, SubmissionUpdate(name="Late edit")
            )
        assert exc_info.value.message == "Submission not found or can no longer be edited"

        with pytest.raises(NotFoundError) as exc_info:
            await service.delete_submission(db_session, user.id, created.id)
        assert exc_info.value.message == "Submission not found or can no longer be deleted"

    @pytest.mark.asyncio
    async def test_withdraw_removes_submission_and_images(
        self, service, db_session, make_profile, site_payload
    ):
        user = await make_profile()
        created = await _create(
            service, db_session, user, site_payload, image_urls=["https://img.test/1.jpg"]
        )
        await db_session.commit()

        await service.delete_submission(db_session, user.id, created.id)
        await db_session.commit()

        remaining = (
            await db_session.execute(select(func.count(Submission.id)).where(Submission.id == created.id))
        ).scalar()
        assert remaining == 0
        images = (await db_session.execute(select(func.count(SubmissionImage.id)))).scalar()
        assert images == 0


# ══════════════════════════════════════════════════════════════════════════
# Review
# ══════════════════════════════════════════════════════════════════════════


class TestReview:

    @pytest.mark.asyncio
    async def test_approving_new_creates_location_with_audit(
        self, service, db_session, make_profile, site_payload
    ):
        user = await make_profile()
        admin = await make_profile(role="ADMIN")
        created = await _create(service, db_session, user, site_payload)

        result, message = await service.review_submission(
            db_session, admin.id, created.id,
            SubmissionReview(status="approved", admin_notes="Verified"),
        )

        assert message == "Submission approved and location created"
        assert result.updated_location is None
        location = result.created_location
        assert location.name == "Kjerag"
        assert location.total_height_ft == 3280
        assert location.created_by == admin.id
        assert location.updated_by == admin.id

        submission = result.submission
        assert submission.status == SubmissionStatus.APPROVED
        assert submission.admin_notes == "Verified"
        assert submission.reviewed_by == admin.id
        assert submission.reviewed_at is not None

    @pytest.mark.asyncio
    async def test_override_presence_wins_even_when_falsy(
        self, service, db_session, make_profile, site_payload
    ):
        user = await make_profile()
        admin = await make_profile(role="ADMIN")
        created = await _create(
            service, db_session, user, site_payload, video_link="https://video.test/kjerag"
        )

        review = SubmissionReview.model_validate({
            "status": "approved",
            "override_data": {
                "name": "Kjerag (Exit 1)",
                "notes": None,
                "cliff_aspect": "",
                "video_link": "",
                "latitude": 0,
            },
        })
        result, _ = await service.review_submission(db_session, admin.id, created.id, review)

        location = result.created_location
        assert location.name == "Kjerag (Exit 1)"
        assert location.notes is None
        assert location.cliff_aspect == ""
        assert location.video_link is None
        assert location.latitude == 0
        # Keys the admin did not send keep the submitted value
        assert location.country == "Norway"
        assert location.rock_drop_ft == 3200

    @pytest.mark.asyncio
    async def test_approving_update_modifies_target(
        self, service, db_session, make_profile, make_location, site_payload
    ):
        user = await make_profile()
        admin = await make_profile(role="ADMIN")
        location = await make_location(name="Old Name", total_height_ft=100)
        created = await _create(
            service, db_session, user, site_payload,
            submission_type="update", existing_location_id=location.id,
            name="New Name", total_height_ft=486,
        )

        result, message = await service.review_submission(
            db_session, admin.id, created.id, SubmissionReview(status="approved")
        )

        assert message == "Submission approved and location updated"
        assert result.created_location is None
        assert result.updated_location.id == location.id
        assert result.updated_location.name == "New Name"
        assert result.updated_location.total_height_ft == 486
        assert result.updated_location.updated_by == admin.id

        count = (await db_session.execute(select(func.count(Location.id)))).scalar()
        assert count == 1

    @pytest.mark.asyncio
    async def test_rejection_creates_nothing(self, service, db_session, make_profile, site_payload):
        user = await make_profile()
        admin = await make_profile(role="ADMIN")
        created = await _create(service, db_session, user, site_payload)

        result, message = await service.review_submission(
            db_session, admin.id, created.id,
            SubmissionReview(status="rejected", override_data={"name": "Ignored"}),
        )

        assert message == "Submission rejected"
        assert result.created_location is None
        assert result.submission.status == SubmissionStatus.REJECTED
        count = (await db_session.execute(select(func.count(Location.id)))).scalar()
        assert count == 0

    @pytest.mark.asyncio
    async def test_second_review_conflicts(self, service, db_session, make_profile, site_payload):
        user = await make_profile()
        admin = await make_profile(role="ADMIN")
        created = await _create(service, db_session, user, site_payload)
        await service.review_submission(
            db_session, admin.id, created.id, SubmissionReview(status="approved")
        )

        with pytest.raises(ConflictError) as exc_info:
            await service.review_submission(
                db_session, admin.id, created.id, SubmissionReview(status="rejected")
            )
        assert exc_info.value.message == "Submission already approved"

        count = (await db_session.execute(select(func.count(Location.id)))).scalar()
        assert count == 1

    @pytest.mark.asyncio
    async def test_unknown_submission_is_not_found(self, service, db_session, make_profile):
        admin = await make_profile(role="ADMIN")
        with pytest.raises(NotFoundError):
            await service.review_submission(
                db_session, admin.id, uuid4(), SubmissionReview(status="approved")
            )

    @pytest.mark.asyncio
    async def test_vanished_target_rolls_back_the_approval(
        self, service, session_factory, make_profile, make_location, site_payload
    ):
        user = await make_profile()
        admin = await make_profile(role="SUPERUSER")
        location = await make_location()

        async with session_factory() as session:
            created = await _create(
                service, session, user, site_payload,
                submission_type="update", existing_location_id=location.id,
            )
            await session.commit()

        async with session_factory() as session:
            await location_service.delete_location(session, admin.id, location.id)
            await session.commit()

        async with session_factory() as session:
            with pytest.raises(NotFoundError):
                await service.review_submission(
                    session, admin.id, created.id, SubmissionReview(status="approved")
                )
            await session.rollback()

        async with session_factory() as session:
            row = await session.get(Submission, created.id)
            assert row.status == SubmissionStatus.PENDING.value
            assert row.existing_location_id is None
            assert row.reviewed_by is None


# ══════════════════════════════════════════════════════════════════════════
# Listings
# ══════════════════════════════════════════════════════════════════════════


class TestListings:

    @pytest.mark.asyncio
    async def test_user_listing_is_scoped_filtered_and_paged(
        self, service, db_session, make_profile, site_payload
    ):
        user = await make_profile()
        other = await make_profile()
        admin = await make_profile(role="ADMIN")
        first = await _create(service, db_session, user, site_payload, name="First")
        await _create(service, db_session, user, site_payload, name="Second")
        await _create(service, db_session, other, site_payload, name="Not mine")
        await service.review_submission(
            db_session, admin.id, first.id, SubmissionReview(status="rejected")
        )

        everything = await service.list_user_submissions(
            db_session, user.id, SubmissionListQuery(limit=1)
        )
        assert everything.total_count == 2
        assert everything.has_more is True
        assert len(everything.submissions) == 1

        pending = await service.list_user_submissions(
            db_session, user.id, SubmissionListQuery(status=SubmissionStatus.PENDING)
        )
        assert [s.name for s in pending.submissions] == ["Second"]

    @pytest.mark.asyncio
    async def test_admin_listing_includes_submitter_and_summary(
        self, service, db_session, make_profile, site_payload
    ):
        user = await make_profile(name="Carl Boenish")
        admin = await make_profile(role="ADMIN")
        first = await _create(service, db_session, user, site_payload, name="Alpha")
        await _create(service, db_session, user, site_payload, name="Bravo")
        await service.review_submission(
            db_session, admin.id, first.id, SubmissionReview(status="approved")
        )

        listing = await service.list_all_submissions(
            db_session, AdminSubmissionListQuery(sort_by="name", sort_order="asc")
        )

        assert [s.name for s in listing.submissions] == ["Alpha", "Bravo"]
        assert listing.submissions[0].profile.full_name == "Carl Boenish"
        assert listing.summary.pending == 1
        assert listing.summary.approved == 1
        assert listing.summary.rejected == 0

        only_user = await service.list_all_submissions(
            db_session, AdminSubmissionListQuery(user_id=admin.id)
        )
        assert only_user.total_count == 0
