"""
BaseSites Backend: Subscription Service
=======================================

What:  Applies billing-provider (RevenueCat) webhook events and client-side
       purchase restores to the subscription columns of `profiles`.
How:   Webhook events map to a SubscriptionStatus through `map_event()`.
       Unmapped event types are acknowledged without a write. A mapped event
       for a profile that does not exist is a NotFoundError, so the provider
       keeps retrying delivery instead of the update being silently lost.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.exceptions import BaseSitesError, ConflictError, DatabaseError, NotFoundError
from basesites.models.enums import SubscriptionStatus
from basesites.models.mixins import utcnow
from basesites.models.profile import Profile
from basesites.schemas.subscription import RestoreRequest, SubscriptionState, WebhookEvent

logger = logging.getLogger(__name__)

_PURCHASE_EVENTS = frozenset({"INITIAL_PURCHASE", "RENEWAL", "PRODUCT_CHANGE"})
# Cancelled subscriptions keep access until they expire
_STILL_ACTIVE_EVENTS = frozenset({"CANCELLATION", "UNCANCELLATION"})
_EXPIRED_EVENTS = frozenset({"EXPIRATION"})


@dataclass(frozen=True)
class StatusChange:
    status: SubscriptionStatus
    expires_at: Optional[datetime]


def map_event(event: WebhookEvent) -> Optional[StatusChange]:
    """The status change an event implies, or None for event types we ignore."""
    if event.type in _PURCHASE_EVENTS:
        status = SubscriptionStatus.TRIAL if event.is_trial_period else SubscriptionStatus.ACTIVE
    elif event.type in _STILL_ACTIVE_EVENTS:
        status = SubscriptionStatus.ACTIVE
    elif event.type in _EXPIRED_EVENTS:
        status = SubscriptionStatus.EXPIRED
    else:
        return None

    expires_at = None
    if event.expiration_at_ms:
        expires_at = datetime.fromtimestamp(event.expiration_at_ms / 1000, tz=timezone.utc)
    return StatusChange(status=status, expires_at=expires_at)


def _parse_user_id(app_user_id: str) -> Optional[UUID]:
    try:
        return UUID(app_user_id)
    except ValueError:
        return None


class SubscriptionService:

    async def apply_webhook(self, db: AsyncSession, event: WebhookEvent) -> bool:
        """
        Apply one webhook event.

        Returns:
            True when a profile was updated, False when the event type is not
            one we process.

        Raises:
            NotFoundError: `app_user_id` is not the id of an existing profile
                (anonymous billing ids included).
        """
        change = map_event(event)
        if change is None:
            logger.info("Ignoring webhook event type %s", event.type)
            return False

        user_id = _parse_user_id(event.app_user_id)
        if user_id is None:
            logger.warning("Webhook %s for non-UUID app_user_id %r", event.type, event.app_user_id)
            raise NotFoundError(resource="Profile", resource_id=event.app_user_id)

        try:
            result = await db.execute(
                update(Profile)
                .where(Profile.id == user_id)
                .values(
                    revenuecat_customer_id=event.app_user_id,
                    subscription_status=change.status.value,
                    subscription_expires_at=change.expires_at,
                    subscription_updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error("Database error applying webhook %s: %s", event.type, e, exc_info=True)
            raise DatabaseError(message="Failed to update subscription")

        if result.rowcount == 0:
            logger.warning("Webhook %s for unknown profile %s", event.type, user_id)
            raise NotFoundError(resource="Profile", resource_id=user_id)

        logger.info("Subscription for %s set to %s via %s", user_id, change.status.value, event.type)
        return True

    async def restore(
        self,
        db: AsyncSession,
        user_id: UUID,
        data: RestoreRequest,
    ) -> SubscriptionState:
        try:
            owner = (
                await db.execute(
                    select(Profile.id).where(
                        Profile.revenuecat_customer_id == data.revenuecat_customer_id,
                        Profile.id != user_id,
                    ).limit(1)
                )
            ).scalar_one_or_none()
            if owner is not None:
                raise ConflictError(
                    "This subscription is already linked to another account",
                    context={"revenuecat_customer_id": data.revenuecat_customer_id},
                )

            profile = await db.get(Profile, user_id)
            if profile is None:
                raise NotFoundError(resource="Profile", resource_id=user_id, message="Profile not found")

            profile.revenuecat_customer_id = data.revenuecat_customer_id
            profile.subscription_status = data.subscription_status.value
            profile.subscription_expires_at = data.subscription_expires_at
            profile.subscription_updated_at = utcnow()
            await db.flush()
        except BaseSitesError:
            raise
        except SQLAlchemyError as e:
            logger.error("Database error restoring subscription for %s: %s", user_id, e, exc_info=True)
            raise DatabaseError(message="Could not restore the subscription. Please try again.")

        logger.info("Subscription restored for %s (%s)", user_id, data.subscription_status.value)
        return SubscriptionState(
            user_id=profile.id,
            revenuecat_customer_id=profile.revenuecat_customer_id,
            subscription_status=profile.subscription_status,
            subscription_expires_at=profile.subscription_expires_at,
        )


subscription_service = SubscriptionService()
