"""
BaseSites Backend: Subscription Service Tests
=============================================
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from basesites.exceptions import ConflictError, NotFoundError
from basesites.models.enums import SubscriptionStatus
from basesites.models.profile import Profile
from basesites.schemas.subscription import RestoreRequest, WebhookEvent
from basesites.services.subscription_service import map_event, subscription_service

EXPIRES_MS = 1_790_000_000_000


def _event(event_type, app_user_id="anon", **fields):
    return WebhookEvent(type=event_type, app_user_id=str(app_user_id), **fields)


class TestMapEvent:

    @pytest.mark.parametrize(
        "event_type,is_trial,expected",
        [
            ("INITIAL_PURCHASE", False, SubscriptionStatus.ACTIVE),
            ("INITIAL_PURCHASE", True, SubscriptionStatus.TRIAL),
            ("RENEWAL", None, SubscriptionStatus.ACTIVE),
            ("PRODUCT_CHANGE", True, SubscriptionStatus.TRIAL),
            ("CANCELLATION", None, SubscriptionStatus.ACTIVE),
            ("UNCANCELLATION", None, SubscriptionStatus.ACTIVE),
            ("EXPIRATION", None, SubscriptionStatus.EXPIRED),
        ],
    )
    def test_status_mapping(self, event_type, is_trial, expected):
        change = map_event(_event(event_type, is_trial_period=is_trial))
        assert change.status == expected

    @pytest.mark.parametrize("event_type", ["BILLING_ISSUE", "TRANSFER", "TEST", "SUBSCRIBER_ALIAS"])
    def test_unmapped_types(self, event_type):
        assert map_event(_event(event_type)) is None

    def test_expiration_is_utc(self):
        change = map_event(_event("RENEWAL", expiration_at_ms=EXPIRES_MS))
        assert change.expires_at == datetime.fromtimestamp(EXPIRES_MS / 1000, tz=timezone.utc)

        assert map_event(_event("RENEWAL")).expires_at is None


class TestApplyWebhook:

    @pytest.mark.asyncio
    async def test_updates_profile(self, session_factory, make_profile):
        user = await make_profile()
        async with session_factory() as session:
            applied = await subscription_service.apply_webhook(
                session,
                _event("INITIAL_PURCHASE", user.id, is_trial_period=True, expiration_at_ms=EXPIRES_MS),
            )
            await session.commit()
        assert applied is True

        async with session_factory() as session:
            profile = await session.get(Profile, user.id)
        assert profile.subscription_status == "trial"
        assert profile.revenuecat_customer_id == str(user.id)
        assert profile.subscription_expires_at is not None
        assert profile.subscription_updated_at is not None

    @pytest.mark.asyncio
    async def test_ignored_type_writes_nothing(self, mock_db_session):
        applied = await subscription_service.apply_webhook(mock_db_session, _event("TRANSFER", uuid4()))
        assert applied is False
        mock_db_session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_profile(self, db_session):
        with pytest.raises(NotFoundError):
            await subscription_service.apply_webhook(db_session, _event("RENEWAL", uuid4()))

    @pytest.mark.asyncio
    async def test_anonymous_billing_id(self, mock_db_session):
        with pytest.raises(NotFoundError):
            await subscription_service.apply_webhook(
                mock_db_session, _event("RENEWAL", "$RCAnonymousID:8c1a")
            )
        mock_db_session.execute.assert_not_called()


class TestRestore:

    @pytest.mark.asyncio
    async def test_links_customer_id(self, db_session, make_profile):
        user = await make_profile()
        state = await subscription_service.restore(
            db_session,
            user.id,
            RestoreRequest(revenuecat_customer_id="rc-123", subscription_status="active"),
        )

        assert state.user_id == user.id
        assert state.revenuecat_customer_id == "rc-123"
        assert state.subscription_status == SubscriptionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_customer_id_owned_by_another_account(self, db_session, make_profile):
        await make_profile(revenuecat_customer_id="rc-123")
        user = await make_profile()

        with pytest.raises(ConflictError) as exc_info:
            await subscription_service.restore(
                db_session,
                user.id,
                RestoreRequest(revenuecat_customer_id="rc-123", subscription_status="active"),
            )
        assert exc_info.value.message == "This subscription is already linked to another account"
