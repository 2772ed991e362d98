"""
BaseSites Backend: Logbook Entry Model
======================================

A personal jump record. The location is free text (not a foreign key):
jumpers log sites that are not in the directory. Entries are visible only
to their owner.
"""

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import Date, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from basesites.database import Base
from basesites.models.mixins import TimestampMixin


class LogbookEntry(TimestampMixin, Base):
    __tablename__ = "logbook_entries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    location_name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Building, Antenna, Span or Earth
    exit_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    delay_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    jump_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_logbook_user_jump_date", "user_id", "jump_date"),
    )

    def __repr__(self) -> str:
        return f"<LogbookEntry(id={self.id}, location='{self.location_name}')>"
