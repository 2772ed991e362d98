"""
BaseSites Backend: Favorites Routes
===================================

Save, list and remove favorite locations for the signed-in user.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.database import get_db_session
from basesites.middleware.auth import AuthenticatedUser, authenticate_user
from basesites.schemas.common import ApiResponse, ErrorResponse
from basesites.schemas.saved_location import (
    SavedLocationCreated,
    SavedLocationListResponse,
    SaveLocationRequest,
)
from basesites.services.saved_location_service import saved_location_service

router = APIRouter(prefix="/locations", tags=["Saved Locations"])


@router.post(
    "/save",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[SavedLocationCreated],
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Save a location to favorites",
)
async def save_location(
    body: SaveLocationRequest,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    saved, name = await saved_location_service.save(db, user.id, body.location_id)
    return ApiResponse(message=f'Location "{name}" saved to favorites', data=saved)


@router.get(
    "/saved",
    response_model=ApiResponse[SavedLocationListResponse],
    summary="List saved locations",
)
async def list_saved_locations(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    result = await saved_location_service.list_saved(db, user.id, limit=limit, offset=offset)
    return ApiResponse(data=result)


@router.delete(
    "/unsave",
    response_model=ApiResponse[None],
    responses={404: {"model": ErrorResponse}},
    summary="Remove a location from favorites",
)
async def unsave_location(
    body: SaveLocationRequest,
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    name = await saved_location_service.unsave(db, user.id, body.location_id)
    return ApiResponse(message=f'Location "{name}" removed from favorites')
