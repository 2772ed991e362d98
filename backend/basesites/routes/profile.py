"""
BaseSites Backend: Profile & Account Routes
===========================================

GET/PATCH /profile for the signed-in user, and DELETE /delete-account,
which removes the profile (with everything that cascades from it) and
the identity-provider login.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.database import get_db_session
from basesites.middleware.auth import AuthenticatedUser, authenticate_user, get_identity_gateway
from basesites.schemas.common import ApiResponse, ErrorResponse
from basesites.schemas.profile import DeleteAccountRequest, ProfileResponse, ProfileUpdate
from basesites.services.identity_service import IdentityGateway
from basesites.services.profile_service import profile_service

router = APIRouter(tags=["Profile"])


@router.get(
    "/profile",
    response_model=ApiResponse[ProfileResponse],
    responses={404: {"model": ErrorResponse}},
    summary="Get my profile",
)
async def get_profile(
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    profile = await profile_service.get_profile(db, user.id)
    return ApiResponse(data=profile)


@router.patch(
    "/profile",
    response_model=ApiResponse[ProfileResponse],
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Update my profile",
)
async def update_profile(
    body: ProfileUpdate,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    profile = await profile_service.update_profile(db, user.id, body)
    return ApiResponse(message="Profile updated successfully", data=profile)


@router.delete(
    "/delete-account",
    response_model=ApiResponse[None],
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="Permanently delete my account",
)
async def delete_account(
    body: DeleteAccountRequest,
    user: AuthenticatedUser = Depends(authenticate_user),
    identity: IdentityGateway = Depends(get_identity_gateway),
    db: AsyncSession = Depends(get_db_session),
):
    await profile_service.delete_account(db, identity, user.id, body.confirmation)
    return ApiResponse(
        message="Account has been permanently deleted. All your data has been removed."
    )
