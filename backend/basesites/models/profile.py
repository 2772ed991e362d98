"""
BaseSites Backend: Profile Model
================================

One row per identity. The primary key is the identity provider's user id,
so a profile is never created here: provisioning happens alongside sign-up
in the identity provider. Deleting a profile cascades to the user's
submissions, favorites and logbook entries.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from basesites.database import Base
from basesites.models.mixins import TimestampMixin


class Profile(TimestampMixin, Base):
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Unique and case-sensitive
    username: Mapped[Optional[str]] = mapped_column(String(30), nullable=True, unique=True)
    jump_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # USER < ADMIN < SUPERUSER, see services/access_policy.py
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="USER")

    # ── Subscription ──────────────────────────────────────────────────────
    subscription_status: Mapped[str] = mapped_column(String(20), nullable=False, default="free")
    subscription_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    subscription_updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    revenuecat_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, role='{self.role}')>"
