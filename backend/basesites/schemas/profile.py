"""Profile and account request/response models."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from basesites.models.enums import SubscriptionStatus
from basesites.services.access_policy import Role


class ProfileResponse(BaseModel):
    id: UUID
    email: Optional[str] = None
    name: Optional[str] = None
    username: Optional[str] = None
    jump_number: int = 0
    role: Role = Role.USER
    subscription_status: SubscriptionStatus = SubscriptionStatus.FREE
    subscription_expires_at: Optional[datetime] = None
    subscription_updated_at: Optional[datetime] = None
    revenuecat_customer_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    username: Optional[str] = Field(default=None, min_length=3, max_length=30)
    jump_number: Optional[int] = Field(default=None, ge=0, le=10000)


class DeleteAccountRequest(BaseModel):
    confirmation: str = Field(description='Must be "DELETE" (any case)')
    # Accepted for client compatibility; re-authentication happens in the identity provider
    password: Optional[str] = None
