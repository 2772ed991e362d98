"""Closed value sets stored as short strings in the database."""

import enum


class SubmissionStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SubmissionType(str, enum.Enum):
    NEW = "new"
    UPDATE = "update"


class SubscriptionStatus(str, enum.Enum):
    FREE = "free"
    TRIAL = "trial"
    ACTIVE = "active"
    EXPIRED = "expired"


class ExitType(str, enum.Enum):
    BUILDING = "Building"
    ANTENNA = "Antenna"
    SPAN = "Span"
    EARTH = "Earth"
