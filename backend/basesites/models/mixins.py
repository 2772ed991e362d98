"""
BaseSites Backend: Shared Column Mixins
=======================================

What:  Column groups reused by several tables.
How:   SQLAlchemy copies `mapped_column()` attributes declared on a mixin
       into every mapped subclass, so Location and Submission share one
       definition of the descriptive site fields.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware current time; every stored timestamp is UTC."""
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )


class SiteFieldsMixin:
    """
    Descriptive fields of a jump site.

    Latitude and longitude are always present; range checks live in the
    request schemas. Height fields are optional positive integers (feet).
    """

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    rock_drop_ft: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total_height_ft: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    cliff_aspect: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    anchor_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    access_info: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    opened_by_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    opened_date: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    video_link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


# Column names of SiteFieldsMixin, in declaration order. Used to copy
# reviewed submission values onto a Location.
SITE_FIELDS = (
    "name",
    "country",
    "latitude",
    "longitude",
    "rock_drop_ft",
    "total_height_ft",
    "cliff_aspect",
    "anchor_info",
    "access_info",
    "notes",
    "opened_by_name",
    "opened_date",
    "video_link",
)
