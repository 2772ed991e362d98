"""
BaseSites Backend: Submission Quota Tracker
===========================================

What:  Decides whether a user may open another submission right now.
How:   Two counts over the user's submissions:
           pending  = status 'pending'                 (cap: 5)
           today    = created since local midnight     (cap: 10)
       The pending cap is checked first, so a user at the pending cap is
       told about it regardless of the daily count.
Who:   SubmissionService.create_submission() and GET /locations/submission-limits.

Failure policy:
    `check()` fails OPEN: if a count cannot be read, the submission is
    allowed and a warning is logged. The reads run inside a SAVEPOINT so a
    failed read leaves the surrounding transaction usable for the insert.
    `limits()` is a plain read and lets database errors propagate.

Concurrency:
    Counting happens before the insert, so two simultaneous creates can
    both observe 4-of-5 and both succeed. The caps are abuse prevention,
    not a hard ceiling; SubmissionService narrows the window by locking
    the submitter's profile row first.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.config import settings
from basesites.exceptions import DatabaseError
from basesites.models.enums import SubmissionStatus
from basesites.models.submission import Submission
from basesites.schemas.submission import SubmissionLimits

logger = logging.getLogger(__name__)

PENDING_LIMIT = "pending_limit"
DAILY_LIMIT = "daily_limit"


def local_now() -> datetime:
    """Current time in the server's local timezone (aware)."""
    return datetime.now().astimezone()


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    reason: Optional[str] = None
    message: Optional[str] = None


class QuotaTracker:
    """
    Pending and daily submission caps.

    `clock` returns an aware datetime in the timezone whose midnight starts
    the daily window; tests pass a fixed clock.
    """

    def __init__(
        self,
        max_pending: int = 5,
        max_daily: int = 10,
        clock: Callable[[], datetime] = local_now,
    ):
        self.max_pending = max_pending
        self.max_daily = max_daily
        self.clock = clock

    # ── Day boundaries ────────────────────────────────────────────────────

    def day_start(self) -> datetime:
        """Local midnight of today, expressed in UTC."""
        now = self.clock()
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return midnight.astimezone(timezone.utc)

    def next_day_start(self) -> datetime:
        """Local midnight of tomorrow, expressed in UTC."""
        now = self.clock()
        tomorrow = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
        return tomorrow.astimezone(timezone.utc)

    # ── Counts ────────────────────────────────────────────────────────────

    async def count_pending(self, db: AsyncSession, user_id: UUID) -> int:
        result = await db.execute(
            select(func.count(Submission.id)).where(
                Submission.user_id == user_id,
                Submission.status == SubmissionStatus.PENDING.value,
            )
        )
        return result.scalar() or 0

    async def count_today(self, db: AsyncSession, user_id: UUID) -> int:
        result = await db.execute(
            select(func.count(Submission.id)).where(
                Submission.user_id == user_id,
                Submission.created_at >= self.day_start(),
            )
        )
        return result.scalar() or 0

    # ── Decisions ─────────────────────────────────────────────────────────

    async def check(self, db: AsyncSession, user_id: UUID) -> QuotaDecision:
        """Allow or deny one more submission; read failures allow."""
        try:
            async with db.begin_nested():
                pending = await self.count_pending(db, user_id)
        except SQLAlchemyError as e:
            logger.warning("Pending count unavailable for %s, allowing: %s", user_id, e)
            return QuotaDecision(allowed=True)

        if pending >= self.max_pending:
            return QuotaDecision(
                allowed=False,
                reason=PENDING_LIMIT,
                message=(
                    f"You have reached the maximum of {self.max_pending} pending submissions. "
                    "Please wait for review."
                ),
            )

        try:
            async with db.begin_nested():
                today = await self.count_today(db, user_id)
        except SQLAlchemyError as e:
            logger.warning("Daily count unavailable for %s, allowing: %s", user_id, e)
            return QuotaDecision(allowed=True)

        if today >= self.max_daily:
            return QuotaDecision(
                allowed=False,
                reason=DAILY_LIMIT,
                message=(
                    f"You have reached the daily limit of {self.max_daily} submissions. "
                    "Please try again tomorrow."
                ),
            )

        return QuotaDecision(allowed=True)

    async def limits(self, db: AsyncSession, user_id: UUID) -> SubmissionLimits:
        """Read-only view of both counters for the client."""
        try:
            pending = await self.count_pending(db, user_id)
            today = await self.count_today(db, user_id)
        except SQLAlchemyError as e:
            logger.error("Could not read submission counts for %s: %s", user_id, e)
            raise DatabaseError(
                message="Could not retrieve submission limits. Please try again.",
                context={"user_id": str(user_id)},
            )

        can_submit = pending < self.max_pending and today < self.max_daily
        return SubmissionLimits(
            max_pending_submissions=self.max_pending,
            current_pending_count=pending,
            max_daily_submissions=self.max_daily,
            current_daily_count=today,
            can_submit=can_submit,
            next_submission_available="now" if can_submit else self.next_day_start().isoformat(),
        )


quota_tracker = QuotaTracker(
    max_pending=settings.max_pending_submissions,
    max_daily=settings.max_daily_submissions,
)
