"""
BaseSites Backend: Location Model
=================================

What:  A canonical jump site in the public directory.
Who:   Written by admins directly, or by the review workflow when a
       submission is approved; read by every authenticated client.

Lifecycle:
    - Created by an admin, or by approving a `new` submission
    - Updated by an admin, or by approving an `update` submission
    - Hard-deleted only by a superuser; favorites cascade, submissions that
      pointed at the site keep their history with `existing_location_id`
      set to NULL
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from basesites.database import Base
from basesites.models.mixins import SiteFieldsMixin, TimestampMixin


class Location(SiteFieldsMixin, TimestampMixin, Base):
    __tablename__ = "locations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Hidden sites stay in the table but drop out of the public listing
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # ── Audit ─────────────────────────────────────────────────────────────
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    updated_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        Index("idx_locations_name", "name"),
        Index("idx_locations_country", "country"),
    )

    def __repr__(self) -> str:
        return f"<Location(id={self.id}, name='{self.name}')>"
