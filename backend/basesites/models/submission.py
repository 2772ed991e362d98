"""
BaseSites Backend: Submission Models
====================================

What:  A user's proposal for a new site or for changes to an existing one,
       plus its ordered image list.
Who:   Owned by the submitting user while pending; reviewed by an admin.

State machine:
    pending ──approve──▶ approved   (terminal)
        └────reject───▶ rejected   (terminal)

    Owners may edit or withdraw only while pending. The review transition
    is a conditional UPDATE ... WHERE status = 'pending', see
    services/submission_service.py.

Images:
    `image_order` is the 0-based position in the list the user sent. An
    edit that supplies `image_urls` deletes every image row and inserts the
    new list with fresh positions. Deleting a submission deletes its images
    through the foreign key (ON DELETE CASCADE).
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from basesites.database import Base
from basesites.models.enums import SubmissionStatus
from basesites.models.location import Location
from basesites.models.mixins import SiteFieldsMixin, TimestampMixin, utcnow
from basesites.models.profile import Profile


class Submission(SiteFieldsMixin, TimestampMixin, Base):
    __tablename__ = "location_submission_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )

    # "new" or "update"; existing_location_id is set iff type is "update"
    submission_type: Mapped[str] = mapped_column(String(10), nullable=False)
    existing_location_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("locations.id", ondelete="SET NULL"), nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubmissionStatus.PENDING.value
    )

    # ── Review (set exactly once, by the review transition) ───────────────
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )

    # ── Relationships ─────────────────────────────────────────────────────
    images: Mapped[List["SubmissionImage"]] = relationship(
        back_populates="submission",
        order_by="SubmissionImage.image_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )
    existing_location: Mapped[Optional[Location]] = relationship(lazy="selectin")
    submitter: Mapped[Profile] = relationship(foreign_keys=[user_id], lazy="selectin")

    __table_args__ = (
        Index("idx_submissions_user_status", "user_id", "status"),
        Index("idx_submissions_user_created", "user_id", "created_at"),
        Index("idx_submissions_status_created", "status", "created_at"),
    )

    @property
    def image_urls(self) -> List[str]:
        return [image.image_url for image in self.images]

    def __repr__(self) -> str:
        return (
            f"<Submission(id={self.id}, type='{self.submission_type}', "
            f"status='{self.status}')>"
        )


class SubmissionImage(Base):
    __tablename__ = "submission_images"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("location_submission_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    image_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    submission: Mapped[Submission] = relationship(back_populates="images")

    __table_args__ = (
        Index("idx_submission_images_submission_order", "submission_id", "image_order"),
    )
