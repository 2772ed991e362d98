"""
BaseSites Backend: Subscription Schemas
=======================================

RevenueCat webhook payloads and the restore-purchases request. Unknown
event keys are ignored; only the fields the status mapping reads are typed.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from basesites.models.enums import SubscriptionStatus


class WebhookEvent(BaseModel):
    type: str
    app_user_id: str
    product_id: Optional[str] = None
    period_type: Optional[str] = None
    purchased_at_ms: Optional[int] = None
    expiration_at_ms: Optional[int] = None
    is_trial_period: Optional[bool] = None
    price: Optional[float] = None
    currency: Optional[str] = None

    model_config = {"extra": "ignore"}


class WebhookPayload(BaseModel):
    api_version: str
    event: WebhookEvent

    model_config = {"extra": "ignore"}


class RestoreRequest(BaseModel):
    revenuecat_customer_id: str = Field(min_length=1, max_length=255)
    subscription_status: SubscriptionStatus
    subscription_expires_at: Optional[datetime] = None


class SubscriptionState(BaseModel):
    user_id: UUID
    revenuecat_customer_id: Optional[str] = None
    subscription_status: SubscriptionStatus
    subscription_expires_at: Optional[datetime] = None
