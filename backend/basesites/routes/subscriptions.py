"""
BaseSites Backend: Subscription Routes
======================================

POST /subscriptions/webhook is called by the billing provider and is
exempt from the client API key. POST /subscriptions/restore is called by
the app after a restore-purchases flow.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.database import get_db_session
from basesites.middleware.auth import AuthenticatedUser, authenticate_user
from basesites.schemas.common import ApiResponse, ErrorResponse
from basesites.schemas.subscription import RestoreRequest, SubscriptionState, WebhookPayload
from basesites.services.subscription_service import subscription_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


@router.post(
    "/webhook",
    response_model=ApiResponse[None],
    responses={404: {"description": "No profile for app_user_id", "model": ErrorResponse}},
    summary="Billing provider webhook",
)
async def subscription_webhook(
    payload: WebhookPayload,
    db: AsyncSession = Depends(get_db_session),
):
    logger.info("Billing webhook received: %s", payload.event.type)
    applied = await subscription_service.apply_webhook(db, payload.event)
    if not applied:
        return ApiResponse(message="Event type not processed")
    return ApiResponse(message="Subscription updated successfully")


@router.post(
    "/restore",
    response_model=ApiResponse[SubscriptionState],
    responses={409: {"model": ErrorResponse}},
    summary="Link a restored purchase to my account",
)
async def restore_subscription(
    body: RestoreRequest,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    state = await subscription_service.restore(db, user.id, body)
    return ApiResponse(message="Subscription restored successfully", data=state)
