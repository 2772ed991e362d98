"""
BaseSites Backend: Submission Lifecycle
=======================================

What:  The submission state machine: create (quota-checked), owner edit and
       withdraw while pending, admin review with location materialization.
How:   Every state-guarded write is a single conditional statement whose
       affected-row count decides the outcome:

           edit      UPDATE ... WHERE id AND user_id AND status='pending'
           withdraw  DELETE ... WHERE id AND user_id AND status='pending'
           review    UPDATE ... WHERE id AND status='pending'

       Zero rows means the precondition failed; nothing was checked first
       and then written, so two concurrent reviews cannot both succeed.
       Review and the location insert/update run on the request session and
       commit together (see database.get_db_session), so an approval never
       lands without its location or the other way round.
Who:   Routes in routes/submissions.py and routes/admin.py.

Ownership folding:
    Edit and withdraw report "not found" both for a missing submission and
    for one owned by somebody else (or no longer pending), so callers
    cannot probe for other users' submission ids.

Override merge (review):
    Effective value per site field = override value if the admin SENT that
    key, else the submitted value. Presence decides, not truthiness: an
    override of 0, "" or null replaces the submitted value.
"""

import logging
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import asc, delete, desc, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.exceptions import (
    BaseSitesError,
    ConflictError,
    DatabaseError,
    InvalidInputError,
    NotFoundError,
    RateLimitedError,
)
from basesites.models.enums import SubmissionStatus, SubmissionType
from basesites.models.location import Location
from basesites.models.mixins import SITE_FIELDS, utcnow
from basesites.models.profile import Profile
from basesites.models.submission import Submission, SubmissionImage
from basesites.schemas.location import LocationResponse
from basesites.schemas.submission import (
    AdminSubmissionListQuery,
    AdminSubmissionListResponse,
    AdminSubmissionResponse,
    ReviewResult,
    StatusSummary,
    SubmissionCreate,
    SubmissionCreated,
    SubmissionListQuery,
    SubmissionListResponse,
    SubmissionResponse,
    SubmissionReview,
    SubmissionUpdate,
)
from basesites.services.quota_service import QuotaTracker, quota_tracker

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "created_at": Submission.created_at,
    "name": Submission.name,
    "status": Submission.status,
}


class SubmissionService:
    """
    Stateless; every method receives the request's session.

    Responsibilities:
        - create_submission(): quota check, update-target check, insert
        - update_submission() / delete_submission(): owner-only, pending-only
        - review_submission(): the single pending → approved/rejected transition
        - list_*(): user and admin listings
    """

    def __init__(self, quota: QuotaTracker):
        self.quota = quota

    # ══════════════════════════════════════════════════════════════════════
    # Create
    # ══════════════════════════════════════════════════════════════════════

    async def create_submission(
        self,
        db: AsyncSession,
        user_id: UUID,
        data: SubmissionCreate,
    ) -> SubmissionCreated:
        """
        Open a new pending submission.

        Raises:
            NotFoundError: no profile for the user, or the update target is missing
            InvalidInputError: update without a target, or new with one
            RateLimitedError: pending or daily cap reached
        """
        try:
            # Serialises concurrent creates by the same user where the
            # database supports row locks
            profile_id = (
                await db.execute(
                    select(Profile.id).where(Profile.id == user_id).with_for_update()
                )
            ).scalar_one_or_none()
            if profile_id is None:
                raise NotFoundError(resource="Profile", resource_id=user_id)

            decision = await self.quota.check(db, user_id)
            if not decision.allowed:
                logger.info("Submission refused for %s: %s", user_id, decision.reason)
                raise RateLimitedError(message=decision.message, reason=decision.reason)

            existing_location_id = await self._resolve_target(db, data)

            submission = Submission(
                user_id=user_id,
                submission_type=data.submission_type.value,
                existing_location_id=existing_location_id,
                status=SubmissionStatus.PENDING.value,
                images=[
                    SubmissionImage(image_url=url, image_order=index)
                    for index, url in enumerate(data.image_urls)
                ],
                **{field: getattr(data, field) for field in SITE_FIELDS},
            )
            if submission.video_link == "":
                submission.video_link = None
            db.add(submission)
            await db.flush()

            logger.info(
                "Submission %s created by %s (type=%s, images=%d)",
                submission.id,
                user_id,
                submission.submission_type,
                len(data.image_urls),
            )
            return SubmissionCreated(
                id=submission.id,
                status=SubmissionStatus(submission.status),
                submission_type=SubmissionType(submission.submission_type),
            )

        except BaseSitesError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error creating submission: %s", e, exc_info=True)
            raise DatabaseError(
                message="Could not create the submission. Please try again.",
                context={"user_id": str(user_id)},
            )

    async def _resolve_target(self, db: AsyncSession, data: SubmissionCreate) -> Optional[int]:
        if data.submission_type == SubmissionType.NEW:
            if data.existing_location_id is not None:
                raise InvalidInputError(
                    "existing_location_id is only allowed for update submissions",
                    field="existing_location_id",
                )
            return None

        if data.existing_location_id is None:
            raise InvalidInputError(
                "An existing location ID is required for update submissions",
                field="existing_location_id",
            )
        found = (
            await db.execute(select(Location.id).where(Location.id == data.existing_location_id))
        ).scalar_one_or_none()
        if found is None:
            raise NotFoundError(
                resource="Location",
                resource_id=data.existing_location_id,
                message="Existing location not found",
            )
        return found

    # ══════════════════════════════════════════════════════════════════════
    # Owner edit / withdraw
    # ══════════════════════════════════════════════════════════════════════

    async def update_submission(
        self,
        db: AsyncSession,
        user_id: UUID,
        submission_id: UUID,
        data: SubmissionUpdate,
    ) -> SubmissionResponse:
        """
        Partial edit while pending. A present `image_urls` replaces every
        image; the new list is stored with positions 0..n-1.
        """
        changes = data.site_changes()
        # An explicit null image_urls leaves the images untouched
        if not changes and data.image_urls is None:
            raise InvalidInputError("At least one field must be provided for update")

        if changes.get("video_link") == "":
            changes["video_link"] = None

        try:
            result = await db.execute(
                update(Submission)
                .where(
                    Submission.id == submission_id,
                    Submission.user_id == user_id,
                    Submission.status == SubmissionStatus.PENDING.value,
                )
                .values(**changes, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise NotFoundError(
                    resource="Submission",
                    resource_id=submission_id,
                    message="Submission not found or can no longer be edited",
                )

            if data.image_urls is not None:
                await db.execute(
                    delete(SubmissionImage).where(SubmissionImage.submission_id == submission_id)
                )
                db.add_all(
                    SubmissionImage(submission_id=submission_id, image_url=url, image_order=index)
                    for index, url in enumerate(data.image_urls)
                )
                await db.flush()

            submission = await self._reload(db, submission_id)
            logger.info(
                "Submission %s edited by owner (fields=%s, images_replaced=%s)",
                submission_id,
                sorted(changes),
                data.image_urls is not None,
            )
            return SubmissionResponse.from_model(submission)

        except BaseSitesError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error updating submission %s: %s", submission_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not update the submission. Please try again.",
                context={"submission_id": str(submission_id)},
            )

    async def delete_submission(
        self,
        db: AsyncSession,
        user_id: UUID,
        submission_id: UUID,
    ) -> None:
        """Withdraw while pending; image rows go with it via ON DELETE CASCADE."""
        try:
            result = await db.execute(
                delete(Submission)
                .where(
                    Submission.id == submission_id,
                    Submission.user_id == user_id,
                    Submission.status == SubmissionStatus.PENDING.value,
                )
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting submission %s: %s", submission_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not delete the submission. Please try again.",
                context={"submission_id": str(submission_id)},
            )

        if result.rowcount == 0:
            raise NotFoundError(
                resource="Submission",
                resource_id=submission_id,
                message="Submission not found or can no longer be deleted",
            )
        logger.info("Submission %s withdrawn by owner %s", submission_id, user_id)

    # ══════════════════════════════════════════════════════════════════════
    # Review
    # ══════════════════════════════════════════════════════════════════════

    async def review_submission(
        self,
        db: AsyncSession,
        reviewer_id: UUID,
        submission_id: UUID,
        review: SubmissionReview,
    ) -> Tuple[ReviewResult, str]:
        """
        Move a pending submission to approved or rejected, exactly once.

        On approval the effective fields (override where sent, else
        submitted) are written to a new Location (type new) or onto the
        targeted Location (type update). Audit columns record the reviewer.

        Returns:
            (result, message) where message distinguishes
            "approved and location created" / "... updated" / "rejected".

        Raises:
            NotFoundError: no such submission, or the update target is gone
            ConflictError: the submission is no longer pending
        """
        now = utcnow()
        try:
            result = await db.execute(
                update(Submission)
                .where(
                    Submission.id == submission_id,
                    Submission.status == SubmissionStatus.PENDING.value,
                )
                .values(
                    status=review.status,
                    admin_notes=review.admin_notes,
                    reviewed_at=now,
                    reviewed_by=reviewer_id,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self._raise_not_reviewable(db, submission_id)

            submission = await self._reload(db, submission_id)
            created: Optional[Location] = None
            updated: Optional[Location] = None

            if review.status == SubmissionStatus.APPROVED.value:
                fields = self._effective_fields(submission, review)
                if submission.submission_type == SubmissionType.NEW.value:
                    created = await self._create_location(db, fields, reviewer_id)
                else:
                    updated = await self._apply_to_location(
                        db, submission.existing_location_id, fields, reviewer_id
                    )
                # Picks up existing_location after an update-type approval
                submission = await self._reload(db, submission_id)

            logger.info(
                "Submission %s %s by %s (created_location=%s, updated_location=%s)",
                submission_id,
                review.status,
                reviewer_id,
                created.id if created else None,
                updated.id if updated else None,
            )
            return (
                ReviewResult(
                    submission=SubmissionResponse.from_model(submission),
                    created_location=LocationResponse.model_validate(created) if created else None,
                    updated_location=LocationResponse.model_validate(updated) if updated else None,
                ),
                self._review_message(review.status, created, updated),
            )

        except BaseSitesError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error reviewing submission %s: %s", submission_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not review the submission. Please try again.",
                context={"submission_id": str(submission_id)},
            )

    async def _raise_not_reviewable(self, db: AsyncSession, submission_id: UUID) -> None:
        status = (
            await db.execute(select(Submission.status).where(Submission.id == submission_id))
        ).scalar_one_or_none()
        if status is None:
            raise NotFoundError(resource="Submission", resource_id=submission_id)
        raise ConflictError(
            message=f"Submission already {status}",
            context={"submission_id": str(submission_id), "status": status},
        )

    @staticmethod
    def _effective_fields(submission: Submission, review: SubmissionReview) -> dict:
        fields = {field: getattr(submission, field) for field in SITE_FIELDS}
        if review.override_data is not None:
            fields.update(review.override_data.site_changes())
        if fields.get("video_link") == "":
            fields["video_link"] = None
        return fields

    @staticmethod
    async def _create_location(db: AsyncSession, fields: dict, reviewer_id: UUID) -> Location:
        location = Location(**fields, created_by=reviewer_id, updated_by=reviewer_id)
        db.add(location)
        await db.flush()
        await db.refresh(location)
        return location

    @staticmethod
    async def _apply_to_location(
        db: AsyncSession,
        location_id: Optional[int],
        fields: dict,
        reviewer_id: UUID,
    ) -> Location:
        location = None
        if location_id is not None:
            location = (
                await db.execute(
                    select(Location).where(Location.id == location_id).with_for_update()
                )
            ).scalar_one_or_none()
        if location is None:
            # Rolls back the status change with the rest of the transaction
            raise NotFoundError(
                resource="Location",
                resource_id=location_id,
                message="The location targeted by this update no longer exists",
            )
        for field, value in fields.items():
            setattr(location, field, value)
        location.updated_by = reviewer_id
        await db.flush()
        await db.refresh(location)
        return location

    @staticmethod
    def _review_message(
        status: str,
        created: Optional[Location],
        updated: Optional[Location],
    ) -> str:
        if status == SubmissionStatus.REJECTED.value:
            return "Submission rejected"
        if created is not None:
            return "Submission approved and location created"
        if updated is not None:
            return "Submission approved and location updated"
        return "Submission approved"

    # ══════════════════════════════════════════════════════════════════════
    # Reads
    # ══════════════════════════════════════════════════════════════════════

    async def list_user_submissions(
        self,
        db: AsyncSession,
        user_id: UUID,
        params: SubmissionListQuery,
    ) -> SubmissionListResponse:
        """The caller's submissions, newest first."""
        filters = [Submission.user_id == user_id]
        if params.status is not None:
            filters.append(Submission.status == params.status.value)
        if params.submission_type is not None:
            filters.append(Submission.submission_type == params.submission_type.value)

        try:
            rows = (
                await db.execute(
                    select(Submission)
                    .where(*filters)
                    .order_by(desc(Submission.created_at))
                    .limit(params.limit)
                    .offset(params.offset)
                )
            ).scalars().all()
            total = (
                await db.execute(select(func.count(Submission.id)).where(*filters))
            ).scalar() or 0
        except SQLAlchemyError as e:
            logger.error("Database error listing submissions for %s: %s", user_id, e, exc_info=True)
            raise DatabaseError(
                message="Could not retrieve submissions. Please try again.",
                context={"user_id": str(user_id)},
            )

        return SubmissionListResponse(
            submissions=[SubmissionResponse.from_model(row) for row in rows],
            total_count=total,
            has_more=total > params.offset + params.limit,
        )

    async def list_all_submissions(
        self,
        db: AsyncSession,
        params: AdminSubmissionListQuery,
    ) -> AdminSubmissionListResponse:
        """Every submission, with submitter and target summaries plus status totals."""
        filters = []
        if params.status is not None:
            filters.append(Submission.status == params.status.value)
        if params.submission_type is not None:
            filters.append(Submission.submission_type == params.submission_type.value)
        if params.user_id is not None:
            filters.append(Submission.user_id == params.user_id)

        column = _SORT_COLUMNS[params.sort_by]
        ordering = asc(column) if params.sort_order == "asc" else desc(column)

        try:
            rows = (
                await db.execute(
                    select(Submission)
                    .where(*filters)
                    .order_by(ordering, desc(Submission.id))
                    .limit(params.limit)
                    .offset(params.offset)
                )
            ).scalars().all()
            total = (
                await db.execute(select(func.count(Submission.id)).where(*filters))
            ).scalar() or 0
            summary = await self.status_summary(db)
        except SQLAlchemyError as e:
            logger.error("Database error listing all submissions: %s", e, exc_info=True)
            raise DatabaseError(message="Could not retrieve submissions. Please try again.")

        return AdminSubmissionListResponse(
            submissions=[AdminSubmissionResponse.from_model(row) for row in rows],
            total_count=total,
            has_more=total > params.offset + params.limit,
            summary=summary,
        )

    @staticmethod
    async def status_summary(db: AsyncSession) -> StatusSummary:
        rows = await db.execute(
            select(Submission.status, func.count(Submission.id)).group_by(Submission.status)
        )
        counts = {status: count for status, count in rows.all()}
        return StatusSummary(
            pending=counts.get(SubmissionStatus.PENDING.value, 0),
            approved=counts.get(SubmissionStatus.APPROVED.value, 0),
            rejected=counts.get(SubmissionStatus.REJECTED.value, 0),
        )

    async def get_submission(
        self,
        db: AsyncSession,
        user_id: UUID,
        submission_id: UUID,
    ) -> SubmissionResponse:
        """One of the caller's own submissions."""
        submission = (
            await db.execute(
                select(Submission).where(
                    Submission.id == submission_id,
                    Submission.user_id == user_id,
                )
            )
        ).scalar_one_or_none()
        if submission is None:
            raise NotFoundError(resource="Submission", resource_id=submission_id)
        return SubmissionResponse.from_model(submission)

    @staticmethod
    async def _reload(db: AsyncSession, submission_id: UUID) -> Submission:
        """Fresh copy after bulk statements bypassed the identity map."""
        return (
            await db.execute(
                select(Submission)
                .where(Submission.id == submission_id)
                .execution_options(populate_existing=True)
            )
        ).scalar_one()


submission_service = SubmissionService(quota=quota_tracker)
