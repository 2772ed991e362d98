"""
BaseSites Backend: Location Directory Routes
============================================

GET /locations: the public site directory (any signed-in user). Hidden
locations are never listed.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from basesites.database import get_db_session
from basesites.middleware.auth import AuthenticatedUser, authenticate_user
from basesites.schemas.common import ApiResponse, ErrorResponse
from basesites.schemas.location import LocationListResponse, LocationQuery
from basesites.services.location_service import location_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/locations", tags=["Locations"])


@router.get(
    "",
    response_model=ApiResponse[LocationListResponse],
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="List BASE jumping locations",
)
async def list_locations(
    country: Optional[str] = Query(default=None, description="Case-insensitive country filter"),
    min_height: Optional[int] = Query(default=None, ge=0, description="Minimum total height in feet"),
    max_height: Optional[int] = Query(default=None, ge=0, description="Maximum total height in feet"),
    search: Optional[str] = Query(default=None, description="Search in name, country or notes"),
    user: AuthenticatedUser = Depends(authenticate_user),
    db: AsyncSession = Depends(get_db_session),
):
    params = LocationQuery(
        country=country, min_height=min_height, max_height=max_height, search=search
    )
    locations = await location_service.list_locations(db, params)
    return ApiResponse(data=LocationListResponse(locations=locations, total_count=len(locations)))
